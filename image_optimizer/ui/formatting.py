from __future__ import annotations

from typing import List

from image_optimizer.models.image_model import OptimizationOutcome, OutcomeStatus
from image_optimizer.models.summary_model import RunSummary

_UNITS = ("B", "KB", "MB", "GB")


def format_bytes(size: int) -> str:
    """512 -> "512 B", 1536 -> "1.5 KB"; шаг 1024, максимум GB."""
    value = float(size)
    unit = 0
    while value >= 1024.0 and unit < len(_UNITS) - 1:
        value /= 1024.0
        unit += 1
    if unit == 0:
        return f"{size} {_UNITS[0]}"
    return f"{value:.1f} {_UNITS[unit]}"


def format_outcome(outcome: OptimizationOutcome) -> str:
    """Строка живого вывода для одного файла."""
    name = outcome.source_path.name
    if outcome.status is OutcomeStatus.OPTIMIZED:
        return (
            f"✓ {name}: {format_bytes(outcome.original_size)} -> "
            f"{format_bytes(outcome.optimized_size)} (-{outcome.percent_saved:.1f}%)"
        )
    if outcome.status is OutcomeStatus.SKIPPED:
        reason = f" ({outcome.error_detail})" if outcome.error_detail else ""
        return f"= {name}: {format_bytes(outcome.original_size)}, без изменений{reason}"
    return f"✗ {outcome.source_path}: {outcome.error_detail}"


def render_summary(summary: RunSummary) -> str:
    lines: List[str] = [""]
    if summary.cancelled:
        lines.append("Прервано пользователем: итог по обработанным файлам")
    lines.append(f"Обработано файлов: {summary.total_files}")
    lines.append(f"  оптимизировано: {summary.optimized}")
    if summary.skipped:
        lines.append(f"  пропущено (уже оптимальны): {summary.skipped}")
    if summary.failed:
        lines.append(f"  с ошибками: {summary.failed}")
    lines.append(
        f"Размер: {format_bytes(summary.total_original_bytes)} -> "
        f"{format_bytes(summary.total_optimized_bytes)}"
    )
    if summary.saved_bytes > 0:
        lines.append(f"Сэкономлено: {format_bytes(summary.saved_bytes)} ({summary.percent_saved:.1f}%)")
    if summary.failures:
        lines.append("Ошибки:")
        lines.extend(f"  {f.path}: {f.detail}" for f in summary.failures)
    if summary.scan_warnings:
        lines.append("Предупреждения сканирования:")
        lines.extend(f"  {w}" for w in summary.scan_warnings)
    return "\n".join(lines)
