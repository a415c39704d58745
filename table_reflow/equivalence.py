"""
Equivalence checking for Table Reflow.
Compares a rendered table against the expected projection cell by cell.
"""

import logging
from typing import List, Union

from .grid_model import Cell, Grid
from .table_serializer import RenderedTable, render_table

logger = logging.getLogger(__name__)


def _as_rendered(table: Union[Grid, RenderedTable]) -> RenderedTable:
    if any(isinstance(cell, Cell) for row in table for cell in row):
        return render_table(table)
    return table


def find_mismatches(expected: Union[Grid, RenderedTable], actual: RenderedTable) -> List[str]:
    """
    List every difference between the expected and the actual table.

    Row counts are compared first and stop the comparison when they differ.
    Then each row's cell count, and for rows of equal length each positional
    pair on value, row span and column span. Shadow flags are display-only
    and ignored.

    Args:
        expected: Engine output, either as a grid or already rendered
        actual: Table produced by the candidate

    Returns:
        List[str]: Descriptions of the mismatches, empty when the tables match
    """
    expected = _as_rendered(expected)
    mismatches: List[str] = []

    if len(expected) != len(actual):
        return [f"Expected {len(expected)} rows, got {len(actual)}"]

    for r, (expected_row, actual_row) in enumerate(zip(expected, actual)):
        if len(expected_row) != len(actual_row):
            mismatches.append(f"Row {r}: expected {len(expected_row)} cells, got {len(actual_row)}")
            continue
        for c, (want, got) in enumerate(zip(expected_row, actual_row)):
            if want.value != got.value:
                mismatches.append(f"Row {r}, cell {c}: expected value '{want.value}', got '{got.value}'")
            if want.row_span != got.row_span:
                mismatches.append(f"Row {r}, cell {c}: expected rowSpan {want.row_span}, got {got.row_span}")
            if want.col_span != got.col_span:
                mismatches.append(f"Row {r}, cell {c}: expected colSpan {want.col_span}, got {got.col_span}")

    if mismatches:
        logger.debug(f"Tables differ in {len(mismatches)} places")
    return mismatches


def equivalent(expected: Union[Grid, RenderedTable], actual: RenderedTable) -> bool:
    """Pass/fail comparison; there is no partial credit."""
    return not find_mismatches(expected, actual)
