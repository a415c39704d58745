"""
Transform engine module for Table Reflow.
Contains the TransformEngine class that projects a grid under a
TransformConfig: optional transpose, optional repeated leading cell, and
re-wrapping of every row into sub-rows of a fixed column count.
"""

import logging
from dataclasses import replace
from typing import Dict, List, Optional

from .grid_model import Cell, Grid, TransformConfig, clone_grid
from .performance_logger import timed_operation


class TransformEngine:
    """Derives the projected layout of a grid. Never mutates its input."""

    def __init__(self):
        self.logger = logging.getLogger(__name__)

    def project(self, grid: Grid, config: TransformConfig) -> Optional[Grid]:
        """
        Transform a grid after checking the configuration.

        Returns:
            Optional[Grid]: The projection, or None when the configuration is
            invalid and nothing should be displayed.
        """
        error = config.validation_error()
        if error:
            self.logger.warning(f"Skipping projection: {error}")
            return None
        return self.transform(grid, config)

    @timed_operation("Transform")
    def transform(self, grid: Grid, config: TransformConfig) -> Grid:
        """
        Project a grid under the given configuration.

        Stages run in order: transpose, deep copy, early exit when the grid
        already fits, head setup for Repeat First, reflow with clipping, and
        interleaving of the sub-rows.

        Args:
            grid: Source grid, left untouched
            config: Projection settings; must pass validation_error()

        Returns:
            Grid: Output rows, whose lengths may differ from each other
        """
        table = self._transpose(grid) if config.transpose else grid
        table = clone_grid(table)

        if not table or config.column_count >= len(table[0]):
            return table

        column_count = config.column_count
        heads: Dict[int, Cell] = {}
        start_col = 0
        head_active = config.repeat_first and len(table) > 1

        if head_active:
            start_col = 1
            for r, cells in enumerate(table):
                heads[r] = cells[0]
            widest = max(head.col_span for head in heads.values())
            if widest >= column_count:
                self.logger.debug(f"Head span {widest} leaves no room in {column_count} columns")
                return table

        sub_rows = [
            self._reflow_row(cells, column_count, heads.get(r), start_col)
            for r, cells in enumerate(table)
        ]
        result = self._interleave(sub_rows, head_active)

        self.logger.debug(
            f"Reflowed {len(table)} rows into {len(result)} rows of at most {column_count} cells"
        )
        return result

    def _transpose(self, grid: Grid) -> Grid:
        """Swap rows and columns, swapping each copied cell's spans and anchor."""
        if not grid:
            return []

        transposed: Grid = []
        for r in range(len(grid[0])):
            row = []
            for c in range(len(grid)):
                if r >= len(grid[c]):
                    continue
                source = grid[c][r]
                row.append(replace(
                    source,
                    row=r,
                    col=c,
                    row_span=source.col_span,
                    col_span=source.row_span,
                ))
            transposed.append(row)
        return transposed

    def _reflow_row(self, cells: List[Cell], column_count: int,
                    head: Optional[Cell], start_col: int) -> List[List[Cell]]:
        """
        Wrap one row into sub-rows of column_count cells.

        The filled counter advances by one per placed cell, while the room
        left is measured in columns, so a wide cell followed by more cells can
        let a sub-row take more width than column_count. A clipped cell keeps
        the columns that fit and a shadow filler carrying the same value takes
        over the column slot right after the kept part.
        """
        filled = head.col_span if head else 0
        current = [replace(head)] if head else []
        sub_rows = [current]

        c = start_col - 1
        # The row can grow while it is walked when a filler lands past its end.
        while c + 1 < len(cells):
            c += 1
            cell = cells[c]
            current.append(cell)

            col_span = cell.col_span
            left = column_count - filled
            # A head wider than one column can exhaust the room; a placed
            # cell still keeps at least one column.
            space_used = max(1, min(col_span, left))
            filled += 1

            if space_used < col_span:
                cell.col_span = space_used
                slot = c + space_used
                filler = Cell(
                    value=cell.value,
                    row=cell.row,
                    col=cell.col + space_used,
                    row_span=cell.row_span,
                    col_span=col_span - space_used,
                    hidden=False,
                    shadow=True,
                )
                if slot < len(cells):
                    filler.row = cells[slot].row
                    filler.col = cells[slot].col
                    cells[slot] = filler
                else:
                    cells.append(filler)

            if len(current) == column_count:
                current = [replace(head)] if head else []
                filled = head.col_span if head else 0
                sub_rows.append(current)

        return sub_rows

    @staticmethod
    def _interleave(sub_rows: List[List[List[Cell]]], head_active: bool) -> Grid:
        """Emit sub-row 0 of every row, then sub-row 1 of every row, and so on."""
        head_cells = 1 if head_active else 0
        result: Grid = []
        depth = max(len(rows) for rows in sub_rows)
        for index in range(depth):
            for rows in sub_rows:
                if index >= len(rows):
                    continue
                if len(rows[index]) > head_cells:
                    result.append(rows[index])
        return result


def transform_grid(grid: Grid, config: TransformConfig) -> Grid:
    return TransformEngine().transform(grid, config)
