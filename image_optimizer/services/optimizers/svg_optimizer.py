"""Консервативная текстовая оптимизация SVG.

Принципы:
- Удаляется только заведомо безопасное: XML-комментарии, пробельные узлы
  между тегами, блоки `<metadata>`, `<sodipodi:namedview>` и атрибуты
  редакторов (inkscape:, sodipodi:, sketch:, serif:, adobe-*).
- Текстовое содержимое `<text>`, `<style>`, `<script>`, всего поддерева
  `<foreignObject>` и элементов с `xml:space="preserve"`, а также CDATA
  не меняются.
- Преобразование идемпотентно: повторный проход не меняет результат.
"""
from __future__ import annotations

import re
from pathlib import Path
from typing import List, Optional, Tuple

from image_optimizer.models.errors import DecodeError
from image_optimizer.models.image_model import ImageFormat
from image_optimizer.models.run_config import RunConfig
from image_optimizer.services.optimizers.base_optimizer import BaseOptimizer

EDITOR_PREFIXES = frozenset({"inkscape", "sodipodi", "sketch", "serif"})
DROPPED_ELEMENTS = frozenset({"metadata", "sodipodi:namedview"})
PRESERVE_ELEMENTS = frozenset(
    {"text", "tspan", "textPath", "style", "script", "title", "desc", "foreignObject"}
)

_NAME = r"[A-Za-z_][\w:.-]*"
_ATTR = r"""[^\s=/>"']+\s*=\s*(?:"[^"]*"|'[^']*')"""

_TOKEN_RE = re.compile(
    r"(?P<cdata><!\[CDATA\[.*?\]\]>)"
    r"|(?P<comment><!--.*?-->)"
    r"|(?P<pi><\?.*?\?>)"
    r"|(?P<decl><!(?:[^>\[]|\[[^\]]*\])*>)"
    rf"|(?P<end></(?P<end_name>{_NAME})\s*>)"
    rf"|(?P<start><(?P<name>{_NAME})(?P<attrs>(?:\s+{_ATTR})*)\s*(?P<close>/?)>)"
    r"|(?P<text>[^<]+)"
    r"|(?P<other><)",
    re.DOTALL,
)
_ATTR_RE = re.compile(r"""([^\s=/>"']+)\s*=\s*("[^"]*"|'[^']*')""")
_WS_RE = re.compile(r"\s+")


def _is_editor_attribute(name: str) -> bool:
    if name.startswith("xmlns"):
        return False
    prefix, sep, _ = name.partition(":")
    return bool(sep and prefix in EDITOR_PREFIXES) or name.startswith("adobe-")


def _normalize_tag(name: str, raw_attrs: str, self_closing: bool) -> Tuple[str, bool]:
    """
    Пересобирает открывающий тег: по одному пробелу между атрибутами,
    без атрибутов редакторов. Второй элемент: есть ли xml:space="preserve".
    """
    parts: List[str] = [f"<{name}"]
    preserve = False
    for attr_name, quoted in _ATTR_RE.findall(raw_attrs):
        if _is_editor_attribute(attr_name):
            continue
        quote, value = quoted[0], quoted[1:-1]
        if attr_name == "xml:space" and value.strip() == "preserve":
            preserve = True
        parts.append(f" {attr_name}={quote}{_WS_RE.sub(' ', value)}{quote}")
    parts.append("/>" if self_closing else ">")
    return "".join(parts), preserve


def optimize_svg_text(content: str) -> str:
    """Оптимизирует SVG-разметку; безопасно применять многократно."""
    out: List[str] = []
    pending: List[str] = []
    # (element name, preserves whitespace)
    stack: List[Tuple[str, bool]] = []
    drop_depth = 0

    def flush() -> None:
        # adjacent text runs are merged first so a second pass sees the same node
        if not pending:
            return
        text = "".join(pending)
        pending.clear()
        if any(flag for _, flag in stack):
            out.append(text)
        elif text.strip():
            out.append(_WS_RE.sub(" ", text))

    for match in _TOKEN_RE.finditer(content):
        kind = match.lastgroup
        token = match.group(0)

        if drop_depth:
            if kind == "start" and not match.group("close"):
                drop_depth += 1
            elif kind == "end":
                drop_depth -= 1
            continue

        if kind == "text":
            pending.append(token)
        elif kind == "comment":
            # legacy CSS/JS hiding comments inside <style>/<script> are content
            if stack and stack[-1][0] in ("style", "script"):
                flush()
                out.append(token)
        elif kind == "start":
            name = match.group("name")
            self_closing = bool(match.group("close"))
            if name in DROPPED_ELEMENTS:
                if not self_closing:
                    drop_depth = 1
                continue
            flush()
            tag, preserve_attr = _normalize_tag(name, match.group("attrs"), self_closing)
            out.append(tag)
            if not self_closing:
                stack.append((name, preserve_attr or name in PRESERVE_ELEMENTS))
        elif kind == "end":
            flush()
            name = match.group("end_name")
            out.append(f"</{name}>")
            for i in range(len(stack) - 1, -1, -1):
                if stack[i][0] == name:
                    del stack[i:]
                    break
        else:
            flush()
            out.append(token)
    flush()
    return "".join(out)


class SvgOptimizer(BaseOptimizer):
    """SVG не растеризуется и никогда не масштабируется."""
    format = ImageFormat.SVG

    def _optimize_verified(self, data: bytes, config: RunConfig, path: Optional[Path]) -> bytes:
        try:
            content = data.decode("utf-8-sig")
        except UnicodeDecodeError as exc:
            raise DecodeError(path, f"SVG не в кодировке UTF-8: {exc}") from exc
        return optimize_svg_text(content).encode("utf-8")
