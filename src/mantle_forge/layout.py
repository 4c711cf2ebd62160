"""Fixed-width terminal table layout.

Cells are measured by their visible characters only, so text carrying ANSI
styling still lines up with the box-drawing frame.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Sequence

ANSI_RE = re.compile(r"\x1b\[[0-9;?]*[ -/]*[@-~]")

DEFAULT_LABEL_WIDTH = 19
DEFAULT_VALUE_WIDTH = 27


def strip_styles(text: str) -> str:
    return ANSI_RE.sub("", text)


def visible_width(text: str) -> int:
    return len(strip_styles(text))


def pad_visible(text: str, width: int) -> str:
    """Right-pad ``text`` with spaces to ``width`` visible characters.

    Text already at or beyond ``width`` is returned unchanged.
    """
    missing = width - visible_width(text)
    if missing <= 0:
        return text
    return text + " " * missing


def fit_visible(text: str, width: int) -> str:
    """Pad ``text`` to exactly ``width`` visible characters, truncating with ``…``."""
    if visible_width(text) <= width:
        return pad_visible(text, width)
    if width <= 0:
        return ""
    return strip_styles(text)[: width - 1] + "…"


@dataclass(frozen=True)
class TableLayout:
    label_width: int = DEFAULT_LABEL_WIDTH
    value_width: int = DEFAULT_VALUE_WIDTH

    @property
    def widths(self) -> tuple[int, int, int]:
        return (self.label_width, self.value_width, self.value_width)


def _border(widths: Sequence[int], left: str, middle: str, right: str) -> str:
    # +2 for the single space of padding on each side of a cell
    return left + middle.join("─" * (width + 2) for width in widths) + right


def _row(cells: Sequence[str], widths: Sequence[int]) -> str:
    padded = (fit_visible(cell, width) for cell, width in zip(cells, widths))
    return "│ " + " │ ".join(padded) + " │"


def render_table(
    header: Sequence[str],
    rows: Sequence[Sequence[str]],
    *,
    layout: TableLayout = TableLayout(),
) -> list[str]:
    widths = layout.widths
    lines = [_border(widths, "┌", "┬", "┐"), _row(header, widths), _border(widths, "├", "┼", "┤")]
    lines.extend(_row(row, widths) for row in rows)
    lines.append(_border(widths, "└", "┴", "┘"))
    return lines


__all__ = [
    "ANSI_RE",
    "DEFAULT_LABEL_WIDTH",
    "DEFAULT_VALUE_WIDTH",
    "TableLayout",
    "fit_visible",
    "pad_visible",
    "render_table",
    "strip_styles",
    "visible_width",
]
