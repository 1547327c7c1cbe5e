from pathlib import Path

import pytest

from image_optimizer.models.image_model import OptimizationOutcome
from image_optimizer.models.summary_model import FailureRecord, RunSummary
from image_optimizer.ui.formatting import format_bytes, format_outcome, render_summary


@pytest.mark.parametrize(
    "size, expected",
    [
        (0, "0 B"),
        (512, "512 B"),
        (1023, "1023 B"),
        (1024, "1.0 KB"),
        (1536, "1.5 KB"),
        (1048576, "1.0 MB"),
        (5 * 1024 ** 3, "5.0 GB"),
    ],
)
def test_format_bytes(size, expected):
    assert format_bytes(size) == expected


def test_format_outcome_lines():
    ok = format_outcome(OptimizationOutcome.optimized(Path("/d/a.jpg"), 2048, 1024))
    assert ok == "✓ a.jpg: 2.0 KB -> 1.0 KB (-50.0%)"

    skipped = format_outcome(OptimizationOutcome.skipped(Path("/d/b.png"), 10, "файл уже минимален"))
    assert skipped.startswith("= b.png: 10 B")
    assert "файл уже минимален" in skipped

    failed = format_outcome(OptimizationOutcome.failed(Path("/d/c.webp"), 0, "boom"))
    assert failed == "✗ /d/c.webp: boom"


def test_render_summary_mentions_totals_and_failures():
    summary = RunSummary(
        total_files=3,
        optimized=1,
        skipped=1,
        failed=1,
        total_original_bytes=4096,
        total_optimized_bytes=2048,
        failures=(FailureRecord(Path("/d/c.webp"), "boom"),),
        scan_warnings=("/d/locked: denied",),
    )

    text = render_summary(summary)

    assert "3" in text
    assert "4.0 KB -> 2.0 KB" in text
    assert "50.0%" in text
    assert "/d/c.webp: boom" in text
    assert "/d/locked: denied" in text
