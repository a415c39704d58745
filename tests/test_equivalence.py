"""
Test module for equivalence.py
"""

from table_reflow.challenge_cases import CATALOG_GRIDS, make_grid
from table_reflow.equivalence import equivalent, find_mismatches
from table_reflow.grid_model import TransformConfig
from table_reflow.table_serializer import RenderedCell, render_table
from table_reflow.transform_engine import transform_grid


class TestEquivalence:
    """Test cases for comparing a candidate table with the expected projection."""

    def test_engine_output_matches_itself(self):
        config = TransformConfig(transpose=True, repeat_first=True, column_count=2)
        for grid in CATALOG_GRIDS:
            expected = transform_grid(grid, config)
            assert equivalent(expected, render_table(expected))
            assert equivalent(render_table(expected), render_table(expected))

    def test_row_count_mismatch_stops_comparison(self):
        expected = make_grid(2, 2)

        assert find_mismatches(expected, [[RenderedCell("1"), RenderedCell("2")]]) == [
            "Expected 2 rows, got 1"
        ]

    def test_cell_count_mismatch(self):
        actual = [[RenderedCell("1")], [RenderedCell("3"), RenderedCell("4")]]

        assert find_mismatches(make_grid(2, 2), actual) == ["Row 0: expected 2 cells, got 1"]

    def test_value_and_span_mismatches_are_all_reported(self):
        actual = [
            [RenderedCell("1"), RenderedCell("x")],
            [RenderedCell("3", row_span=2), RenderedCell("4", col_span=3)],
        ]

        assert find_mismatches(make_grid(2, 2), actual) == [
            "Row 0, cell 1: expected value '2', got 'x'",
            "Row 1, cell 0: expected rowSpan 1, got 2",
            "Row 1, cell 1: expected colSpan 1, got 3",
        ]
        assert not equivalent(make_grid(2, 2), actual)

    def test_shadow_flag_is_ignored(self):
        expected = [[RenderedCell("1", shadow=True)]]

        assert equivalent(expected, [[RenderedCell("1")]])

    def test_value_comparison_is_exact(self):
        assert not equivalent([[RenderedCell("1")]], [[RenderedCell(" 1")]])

    def test_empty_tables(self):
        assert equivalent([], [])
