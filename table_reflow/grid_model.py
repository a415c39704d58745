"""
Grid model module for Table Reflow.
Contains the Cell, MergeBoundary and TransformConfig types and the GridEditor
class for creating and editing span-aware grids.
"""

import copy
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

import numpy as np


@dataclass
class Cell:
    """A single grid position and the block it covers."""
    value: str
    row: int
    col: int
    row_span: int = 1
    col_span: int = 1
    hidden: bool = False
    shadow: bool = False

    @property
    def is_spanned(self) -> bool:
        return self.row_span > 1 or self.col_span > 1

    def to_dict(self) -> Dict[str, Any]:
        return {
            "value": self.value,
            "row": self.row,
            "col": self.col,
            "rowSpan": self.row_span,
            "colSpan": self.col_span,
            "hidden": self.hidden,
            "shadow": self.shadow,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Cell":
        return cls(
            value=str(data.get("value", "")),
            row=int(data.get("row", 0)),
            col=int(data.get("col", 0)),
            row_span=int(data.get("rowSpan", 1)),
            col_span=int(data.get("colSpan", 1)),
            hidden=bool(data.get("hidden", False)),
            shadow=bool(data.get("shadow", False)),
        )


Grid = List[List[Cell]]


@dataclass
class MergeBoundary:
    """Inclusive rectangle of grid indexes targeted by a merge."""
    top: int
    left: int
    bottom: int
    right: int

    @classmethod
    def from_anchors(cls, first: Tuple[int, int], second: Tuple[int, int]) -> "MergeBoundary":
        """
        Build the raw rectangle spanned by two selected positions.

        Args:
            first: (row, col) of the first selected cell
            second: (row, col) of the second selected cell
        """
        return cls(
            top=min(first[0], second[0]),
            left=min(first[1], second[1]),
            bottom=max(first[0], second[0]),
            right=max(first[1], second[1]),
        )

    def is_empty(self) -> bool:
        return self.bottom < self.top or self.right < self.left

    def contains(self, row: int, col: int) -> bool:
        return self.top <= row <= self.bottom and self.left <= col <= self.right

    @property
    def row_span(self) -> int:
        return self.bottom - self.top + 1

    @property
    def col_span(self) -> int:
        return self.right - self.left + 1

    def to_dict(self) -> Dict[str, int]:
        return {"top": self.top, "left": self.left, "bottom": self.bottom, "right": self.right}


@dataclass
class TransformConfig:
    """Projection settings: transpose, repeated leading cell and target width."""
    transpose: bool = False
    repeat_first: bool = False
    column_count: int = 1

    def validation_error(self) -> Optional[str]:
        """
        Check the configuration before it reaches the transform engine.

        Returns:
            Optional[str]: A message to show the user, or None when the
            configuration can be projected.
        """
        if self.column_count < 1:
            return "Column count must be at least 1"
        if self.repeat_first and self.column_count < 2:
            return "Repeat First requires a column count of at least 2"
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "transpose": self.transpose,
            "repeatFirst": self.repeat_first,
            "columnCount": self.column_count,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TransformConfig":
        return cls(
            transpose=bool(data.get("transpose", False)),
            repeat_first=bool(data.get("repeatFirst", False)),
            column_count=int(data.get("columnCount", 1)),
        )


def grid_to_dicts(grid: Grid) -> List[List[Dict[str, Any]]]:
    return [[cell.to_dict() for cell in row] for row in grid]


def grid_from_dicts(rows: List[List[Dict[str, Any]]]) -> Grid:
    return [[Cell.from_dict(item) for item in row] for row in rows]


def clone_grid(grid: Grid) -> Grid:
    """Deep copy a grid so later edits cannot leak into the source."""
    return copy.deepcopy(grid)


def grid_shape(grid: Grid) -> Tuple[int, int]:
    if not grid:
        return 0, 0
    return len(grid), len(grid[0])


def has_merged_cells(grid: Grid) -> bool:
    return any(cell.is_spanned for row in grid for cell in row)


def find_invariant_violations(grid: Grid) -> List[str]:
    """
    Report every way a grid breaks the span invariants.

    Checks that rows are rectangular, that visible spans stay inside the grid
    and do not overlap, that every covered position is hidden, that hidden
    cells are unspanned, and that no hidden position is left uncovered.

    Args:
        grid: Grid to check

    Returns:
        List[str]: Human readable violations, empty when the grid is valid
    """
    problems: List[str] = []
    num_rows, num_cols = grid_shape(grid)

    for r, row in enumerate(grid):
        if len(row) != num_cols:
            problems.append(f"Row {r} has {len(row)} cells, expected {num_cols}")
    if problems:
        return problems

    covered = np.zeros((num_rows, num_cols), dtype=bool)

    for r in range(num_rows):
        for c in range(num_cols):
            cell = grid[r][c]
            if cell.row_span < 1 or cell.col_span < 1:
                problems.append(f"Cell ({r}, {c}) has a non-positive span")
                continue
            if cell.hidden:
                if cell.is_spanned:
                    problems.append(f"Hidden cell ({r}, {c}) carries a span")
                continue
            if r + cell.row_span > num_rows or c + cell.col_span > num_cols:
                problems.append(f"Cell ({r}, {c}) spans past the grid bounds")
                continue

            block = covered[r:r + cell.row_span, c:c + cell.col_span]
            if block.any():
                problems.append(f"Cell ({r}, {c}) overlaps another span")
            block[:, :] = True

            for i in range(cell.row_span):
                for j in range(cell.col_span):
                    if (i or j) and not grid[r + i][c + j].hidden:
                        problems.append(
                            f"Position ({r + i}, {c + j}) is covered by ({r}, {c}) but not hidden"
                        )

    for r, c in zip(*np.nonzero(~covered)):
        if grid[r][c].hidden:
            problems.append(f"Hidden position ({int(r)}, {int(c)}) is not covered by any cell")

    return problems


class GridEditor:
    """Creates grids and applies the editor's merge, split, resize and edit operations."""

    def __init__(self):
        self.logger = logging.getLogger(__name__)

    def initialize(self, rows: int, cols: int) -> Grid:
        """
        Create a fresh grid labelled 1, 2, 3... in row-major order.

        Args:
            rows (int): Number of rows
            cols (int): Number of columns

        Returns:
            Grid: Unspanned grid, empty if either dimension is below 1
        """
        if rows < 1 or cols < 1:
            return []

        grid: Grid = []
        counter = 1
        for r in range(rows):
            row = []
            for c in range(cols):
                row.append(Cell(value=str(counter), row=r, col=c))
                counter += 1
            grid.append(row)
        return grid

    def merge(self, grid: Grid, boundary: Optional[MergeBoundary]) -> bool:
        """
        Merge every position inside a resolved boundary into its top-left cell.

        The boundary must already be expanded by the merge boundary resolver;
        the grid is modified in place.

        Returns:
            bool: False when the boundary is missing, empty or out of bounds
        """
        num_rows, num_cols = grid_shape(grid)
        if boundary is None or boundary.is_empty():
            self.logger.debug("Ignoring merge with empty boundary")
            return False
        if boundary.top < 0 or boundary.left < 0 or boundary.bottom >= num_rows or boundary.right >= num_cols:
            self.logger.debug(f"Ignoring merge outside the grid: {boundary}")
            return False

        for r in range(boundary.top, boundary.bottom + 1):
            for c in range(boundary.left, boundary.right + 1):
                cell = grid[r][c]
                cell.row_span = 1
                cell.col_span = 1
                cell.hidden = True

        anchor = grid[boundary.top][boundary.left]
        anchor.hidden = False
        anchor.row_span = boundary.row_span
        anchor.col_span = boundary.col_span

        self.logger.debug(
            f"Merged ({boundary.top}, {boundary.left}) into {anchor.row_span}x{anchor.col_span}"
        )
        return True

    def split(self, grid: Grid, row: int, col: int) -> bool:
        """
        Undo a merge, restoring every position the anchor covered.

        Returns:
            bool: False when the position is hidden, unspanned or out of range
        """
        num_rows, num_cols = grid_shape(grid)
        if not (0 <= row < num_rows and 0 <= col < num_cols):
            return False

        cell = grid[row][col]
        if cell.hidden or not cell.is_spanned:
            return False

        row_span, col_span = cell.row_span, cell.col_span
        cell.row_span = 1
        cell.col_span = 1

        for r in range(row, min(row + row_span, num_rows)):
            for c in range(col, min(col + col_span, num_cols)):
                grid[r][c].hidden = False

        self.logger.debug(f"Split ({row}, {col}) from {row_span}x{col_span}")
        return True

    def resize(self, grid: Grid, rows: int, cols: int) -> Grid:
        """
        Build a grid of the new size, keeping values entered at overlapping positions.

        Spans are dropped: every copied position starts unspanned.
        """
        resized = self.initialize(rows, cols)
        for r in range(min(len(grid), rows)):
            for c in range(min(len(grid[r]), cols)):
                resized[r][c].value = grid[r][c].value

        self.logger.debug(f"Resized grid to {rows}x{cols}")
        return resized

    def set_value(self, grid: Grid, row: int, col: int, value: str) -> bool:
        num_rows, num_cols = grid_shape(grid)
        if not (0 <= row < num_rows and 0 <= col < num_cols):
            return False
        if grid[row][col].hidden:
            return False
        grid[row][col].value = value
        return True


_default_editor = GridEditor()


def initialize_grid(rows: int, cols: int) -> Grid:
    return _default_editor.initialize(rows, cols)


def merge_cells(grid: Grid, boundary: Optional[MergeBoundary]) -> bool:
    return _default_editor.merge(grid, boundary)


def split_cell(grid: Grid, row: int, col: int) -> bool:
    return _default_editor.split(grid, row, col)


def resize_grid(grid: Grid, rows: int, cols: int) -> Grid:
    return _default_editor.resize(grid, rows, cols)


def set_cell_value(grid: Grid, row: int, col: int, value: str) -> bool:
    return _default_editor.set_value(grid, row, col, value)
