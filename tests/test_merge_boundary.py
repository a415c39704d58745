"""
Test module for merge_boundary.py
Tests expansion of raw selections around existing spans.
"""

import itertools

import pytest

from table_reflow.challenge_cases import CATALOG_GRIDS
from table_reflow.grid_model import (MergeBoundary, find_invariant_violations, grid_shape,
                                     grid_to_dicts, initialize_grid, merge_cells)
from table_reflow.merge_boundary import MergeBoundaryResolver, resolve_merge_boundary


def crossing_cells(grid, boundary):
    """Visible cells that intersect the boundary without lying fully inside it."""
    crossing = []
    for r, row in enumerate(grid):
        for c, cell in enumerate(row):
            if cell.hidden:
                continue
            r_end, c_end = r + cell.row_span - 1, c + cell.col_span - 1
            intersects = r <= boundary.bottom and r_end >= boundary.top and c <= boundary.right and c_end >= boundary.left
            inside = r >= boundary.top and r_end <= boundary.bottom and c >= boundary.left and c_end <= boundary.right
            if intersects and not inside:
                crossing.append((r, c))
    return crossing


def smallest_closed_rectangle(grid, raw):
    """Grow raw by every crossing span until none is left."""
    top, left, bottom, right = raw.top, raw.left, raw.bottom, raw.right
    while True:
        boundary = MergeBoundary(top, left, bottom, right)
        crossing = crossing_cells(grid, boundary)
        if not crossing:
            return boundary
        for r, c in crossing:
            cell = grid[r][c]
            top, left = min(top, r), min(left, c)
            bottom = max(bottom, r + cell.row_span - 1)
            right = max(right, c + cell.col_span - 1)


class TestMergeBoundaryResolver:
    """Test cases for MergeBoundaryResolver."""

    @pytest.fixture
    def resolver(self):
        return MergeBoundaryResolver()

    def test_unspanned_grid_keeps_selection(self, resolver):
        grid = initialize_grid(3, 3)
        raw = MergeBoundary(top=0, left=1, bottom=1, right=2)

        assert resolver.resolve(grid, raw) == raw

    def test_selection_grows_around_partially_selected_span(self, resolver):
        grid = initialize_grid(3, 3)
        merge_cells(grid, MergeBoundary(top=0, left=1, bottom=1, right=2))

        resolved = resolver.resolve(grid, MergeBoundary(top=1, left=0, bottom=1, right=1))

        assert resolved == MergeBoundary(top=0, left=0, bottom=1, right=2)

    def test_growth_restarts_and_chains(self, resolver):
        grid = initialize_grid(4, 4)
        merge_cells(grid, MergeBoundary(top=0, left=1, bottom=0, right=2))
        merge_cells(grid, MergeBoundary(top=1, left=2, bottom=2, right=3))

        resolved = resolver.resolve(grid, MergeBoundary(top=0, left=0, bottom=1, right=1))

        assert resolved == MergeBoundary(top=0, left=0, bottom=2, right=3)

    def test_selection_inside_merged_block_grows_to_block(self, resolver):
        grid = initialize_grid(3, 3)
        merge_cells(grid, MergeBoundary(top=0, left=0, bottom=2, right=2))

        resolved = resolver.resolve(grid, MergeBoundary(top=1, left=1, bottom=1, right=1))

        assert resolved == MergeBoundary(top=0, left=0, bottom=2, right=2)

    def test_spans_outside_selection_do_not_grow_it(self, resolver):
        grid = initialize_grid(4, 4)
        merge_cells(grid, MergeBoundary(top=2, left=2, bottom=3, right=3))
        raw = MergeBoundary(top=0, left=0, bottom=1, right=1)

        assert resolver.resolve(grid, raw) == raw

    def test_inputs_are_not_mutated(self, resolver):
        grid = initialize_grid(3, 3)
        merge_cells(grid, MergeBoundary(top=0, left=1, bottom=1, right=2))
        before = grid_to_dicts(grid)
        raw = MergeBoundary(top=1, left=0, bottom=1, right=1)

        resolver.resolve(grid, raw)

        assert raw == MergeBoundary(top=1, left=0, bottom=1, right=1)
        assert grid_to_dicts(grid) == before

    def test_selection_is_clamped_to_grid(self, resolver):
        grid = initialize_grid(3, 3)

        resolved = resolver.resolve(grid, MergeBoundary(top=-1, left=0, bottom=5, right=5))

        assert resolved == MergeBoundary(top=0, left=0, bottom=2, right=2)

    def test_empty_grid(self, resolver):
        resolved = resolver.resolve([], MergeBoundary(top=0, left=0, bottom=0, right=0))

        assert resolved.is_empty()

    def test_resolved_boundary_is_smallest_closed_rectangle(self):
        for grid in CATALOG_GRIDS:
            rows, cols = grid_shape(grid)
            corners = list(itertools.product(range(rows), range(cols)))
            for first, second in itertools.product(corners[::3], corners[::5]):
                raw = MergeBoundary.from_anchors(first, second)
                resolved = resolve_merge_boundary(grid, raw)

                assert resolved.top <= raw.top and resolved.left <= raw.left
                assert resolved.bottom >= raw.bottom and resolved.right >= raw.right
                assert crossing_cells(grid, resolved) == []
                assert resolved == smallest_closed_rectangle(grid, raw)

    def test_merging_resolved_boundary_keeps_invariants(self):
        grid = initialize_grid(5, 5)
        merge_cells(grid, MergeBoundary(top=0, left=0, bottom=1, right=1))
        merge_cells(grid, MergeBoundary(top=2, left=2, bottom=4, right=2))

        boundary = resolve_merge_boundary(grid, MergeBoundary(top=1, left=1, bottom=2, right=2))
        assert merge_cells(grid, boundary)

        assert boundary == MergeBoundary(top=0, left=0, bottom=4, right=2)
        assert find_invariant_violations(grid) == []
