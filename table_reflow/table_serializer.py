"""
Table serialization module for Table Reflow.
Converts between the canonical grid (every position present, covered ones
hidden) and the rendered table (only visible cells, each with explicit
spans), and reads/writes rendered tables as HTML markup.
"""

import html
import logging
from dataclasses import dataclass
from typing import Any, Dict, List

import numpy as np
from bs4 import BeautifulSoup

from .grid_model import Cell, Grid
from .performance_logger import timed_operation

logger = logging.getLogger(__name__)


class TableParseError(ValueError):
    """Raised when a rendered table does not resolve to a consistent rectangular grid."""


@dataclass
class RenderedCell:
    """A visible cell as it appears in a rendered table."""
    value: str
    row_span: int = 1
    col_span: int = 1
    shadow: bool = False


RenderedTable = List[List[RenderedCell]]


def render_table(grid: Grid) -> RenderedTable:
    """
    Keep only the visible cells of a grid, row by row.

    Works on jagged transform output as well as on rectangular grids.
    """
    return [
        [
            RenderedCell(
                value=cell.value,
                row_span=cell.row_span,
                col_span=cell.col_span,
                shadow=cell.shadow,
            )
            for cell in row
            if not cell.hidden
        ]
        for row in grid
    ]


@timed_operation("Table parse")
def parse_table(rendered: RenderedTable) -> Grid:
    """
    Rebuild the canonical grid from a rendered table.

    The width is taken from the first row, which no earlier row can reach
    into. Each row is then walked left to right: columns already claimed by
    a taller cell from a row above are skipped, the cell is anchored at the
    next free column, and hidden placeholders carrying the anchor's value
    fill the rest of its block.

    Args:
        rendered: Rows of visible cells

    Returns:
        Grid: Rectangular grid satisfying the span invariants

    Raises:
        TableParseError: If spans are not positive, run past the table,
            overlap, or leave a row short of the full width
    """
    if not rendered:
        return []

    num_rows = len(rendered)
    for r, row in enumerate(rendered):
        for cell in row:
            if not isinstance(cell.row_span, int) or not isinstance(cell.col_span, int):
                raise TableParseError(f"Row {r}: spans must be integers")
            if cell.row_span < 1 or cell.col_span < 1:
                raise TableParseError(f"Row {r}: spans must be at least 1")

    num_cols = sum(cell.col_span for cell in rendered[0])
    occupied = np.zeros((num_rows, num_cols), dtype=bool)
    grid: List[List[Cell]] = [[None] * num_cols for _ in range(num_rows)]

    for r, row in enumerate(rendered):
        col = 0
        for cell in row:
            while col < num_cols and occupied[r, col]:
                col += 1

            if r + cell.row_span > num_rows or col + cell.col_span > num_cols:
                raise TableParseError(
                    f"Row {r}: cell '{cell.value}' at column {col} spans "
                    f"{cell.row_span}x{cell.col_span} past the {num_rows}x{num_cols} table"
                )

            block = occupied[r:r + cell.row_span, col:col + cell.col_span]
            if block.any():
                raise TableParseError(f"Row {r}: cell '{cell.value}' overlaps a span from an earlier row")
            block[:, :] = True

            for i in range(cell.row_span):
                for j in range(cell.col_span):
                    anchor = i == 0 and j == 0
                    grid[r + i][col + j] = Cell(
                        value=cell.value,
                        row=r + i,
                        col=col + j,
                        row_span=cell.row_span if anchor else 1,
                        col_span=cell.col_span if anchor else 1,
                        hidden=not anchor,
                        shadow=cell.shadow if anchor else False,
                    )
            col += cell.col_span

        filled = int(occupied[r].sum())
        if filled != num_cols:
            raise TableParseError(f"Row {r} covers {filled} columns, expected {num_cols}")

    logger.debug(f"Parsed rendered table into a {num_rows}x{num_cols} grid")
    return grid


def rendered_to_dicts(rendered: RenderedTable) -> List[List[Dict[str, Any]]]:
    return [
        [
            {"value": cell.value, "rowSpan": cell.row_span, "colSpan": cell.col_span, "shadow": cell.shadow}
            for cell in row
        ]
        for row in rendered
    ]


def rendered_from_dicts(rows: List[List[Dict[str, Any]]]) -> RenderedTable:
    return [
        [
            RenderedCell(
                value=str(item.get("value", "")),
                row_span=item.get("rowSpan", 1),
                col_span=item.get("colSpan", 1),
                shadow=bool(item.get("shadow", False)),
            )
            for item in row
        ]
        for row in rows
    ]


def to_html(rendered: RenderedTable) -> str:
    """Write a rendered table as a <table> element; spans of 1 are left implicit."""
    lines = ["<table>", "  <tbody>"]
    for row in rendered:
        lines.append("    <tr>")
        for cell in row:
            attrs = []
            if cell.row_span > 1:
                attrs.append(f' rowspan="{cell.row_span}"')
            if cell.col_span > 1:
                attrs.append(f' colspan="{cell.col_span}"')
            if cell.shadow:
                attrs.append(' class="shadow"')
            lines.append(f"      <td{''.join(attrs)}>{html.escape(cell.value)}</td>")
        lines.append("    </tr>")
    lines.extend(["  </tbody>", "</table>"])
    return "\n".join(lines)


def _span_attr(element, name: str, row_index: int) -> int:
    raw = element.get(name)
    if raw is None or str(raw).strip() == "":
        return 1
    try:
        return int(str(raw).strip())
    except ValueError:
        raise TableParseError(f"Row {row_index}: {name}='{raw}' is not an integer")


def from_html(markup: str) -> RenderedTable:
    """
    Read the first <table> in a piece of markup into a rendered table.

    Raises:
        TableParseError: If there is no table or a span attribute is not an integer
    """
    soup = BeautifulSoup(markup, "html.parser")
    table = soup.find("table")
    if table is None:
        raise TableParseError("No <table> element found")

    # Rows of nested tables belong to their cells, not to this table
    rows = []
    for child in table.find_all(["thead", "tbody", "tfoot", "tr"], recursive=False):
        rows.extend([child] if child.name == "tr" else child.find_all("tr", recursive=False))

    rendered: RenderedTable = []
    for r, tr in enumerate(rows):
        row = []
        for td in tr.find_all(["td", "th"], recursive=False):
            row.append(RenderedCell(
                value=td.get_text(),
                row_span=_span_attr(td, "rowspan", r),
                col_span=_span_attr(td, "colspan", r),
                shadow="shadow" in (td.get("class") or []),
            ))
        rendered.append(row)
    return rendered
