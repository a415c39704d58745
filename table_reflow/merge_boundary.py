"""
Merge boundary module for Table Reflow.
Contains the MergeBoundaryResolver class that expands a selection so that a
merge never slices through an existing span.
"""

import logging
from typing import Optional

from .grid_model import Grid, MergeBoundary, grid_shape


class MergeBoundaryResolver:
    """Grows a raw selection rectangle until every span it touches lies fully inside."""

    def __init__(self, max_passes: Optional[int] = None):
        """
        Initialize the MergeBoundaryResolver.

        Args:
            max_passes (Optional[int]): Upper bound on restarted scans. Growth is
                monotonic so the default (2 * (rows + cols) + 1) is never reached on
                a well-formed grid.
        """
        self.max_passes = max_passes
        self.logger = logging.getLogger(__name__)

    def resolve(self, grid: Grid, boundary: MergeBoundary) -> MergeBoundary:
        """
        Expand a boundary to the smallest rectangle that no visible span crosses.

        Each time a visible cell is found that intersects the working boundary
        without lying fully inside it, the boundary grows to include the whole
        span and the scan restarts from the first row, since the larger
        rectangle may now cut through cells that were outside before.

        Args:
            grid: Grid the selection was drawn on, never modified
            boundary: Raw selection rectangle, never modified

        Returns:
            MergeBoundary: Resolved rectangle
        """
        num_rows, num_cols = grid_shape(grid)
        result = MergeBoundary(
            top=max(boundary.top, 0),
            left=max(boundary.left, 0),
            bottom=min(boundary.bottom, num_rows - 1),
            right=min(boundary.right, num_cols - 1),
        )
        if num_rows == 0 or result.is_empty():
            return result

        max_passes = self.max_passes or (2 * (num_rows + num_cols) + 1)
        passes = 0
        while self._grow_once(grid, result):
            passes += 1
            if passes >= max_passes:
                self.logger.warning(f"Merge boundary did not settle after {passes} passes")
                break

        if passes:
            self.logger.debug(f"Expanded {boundary} to {result} in {passes} passes")
        return result

    def _grow_once(self, grid: Grid, boundary: MergeBoundary) -> bool:
        """Grow the boundary around the first crossing span found; return whether it grew."""
        for r, row in enumerate(grid):
            for c, cell in enumerate(row):
                if cell.hidden:
                    continue

                row_end = r + cell.row_span - 1
                col_end = c + cell.col_span - 1

                intersects = (
                    r <= boundary.bottom and row_end >= boundary.top
                    and c <= boundary.right and col_end >= boundary.left
                )
                if not intersects:
                    continue

                inside = (
                    r >= boundary.top and row_end <= boundary.bottom
                    and c >= boundary.left and col_end <= boundary.right
                )
                if inside:
                    continue

                boundary.top = min(boundary.top, r)
                boundary.left = min(boundary.left, c)
                boundary.bottom = max(boundary.bottom, row_end)
                boundary.right = max(boundary.right, col_end)
                return True
        return False


def resolve_merge_boundary(grid: Grid, boundary: MergeBoundary) -> MergeBoundary:
    return MergeBoundaryResolver().resolve(grid, boundary)
