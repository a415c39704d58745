"""
Challenge case catalog for Table Reflow.
Pairs a fixed set of source grids with every projection configuration and
runs a caller-supplied candidate transformation against the engine's own
output for each pair.
"""

import logging
from collections import OrderedDict
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple, Union

from .equivalence import find_mismatches
from .grid_model import (Grid, MergeBoundary, TransformConfig, grid_shape,
                         has_merged_cells, initialize_grid, merge_cells)
from .performance_logger import LogContext, timed_operation
from .table_serializer import (RenderedTable, TableParseError, from_html,
                               render_table)
from .transform_engine import TransformEngine

logger = logging.getLogger(__name__)

Candidate = Callable[[RenderedTable, TransformConfig], Union[RenderedTable, str]]

ALL_CONFIGS: List[TransformConfig] = [
    TransformConfig(transpose=False, repeat_first=False, column_count=1),
    TransformConfig(transpose=False, repeat_first=False, column_count=2),
    TransformConfig(transpose=False, repeat_first=False, column_count=3),
    TransformConfig(transpose=False, repeat_first=False, column_count=4),
    TransformConfig(transpose=False, repeat_first=True, column_count=2),
    TransformConfig(transpose=False, repeat_first=True, column_count=3),
    TransformConfig(transpose=True, repeat_first=False, column_count=2),
    TransformConfig(transpose=True, repeat_first=False, column_count=3),
    TransformConfig(transpose=True, repeat_first=True, column_count=2),
    TransformConfig(transpose=True, repeat_first=True, column_count=3),
]


def make_grid(rows: int, cols: int) -> Grid:
    return initialize_grid(rows, cols)


def apply_spans(grid: Grid, spans: Iterable[Tuple[int, int, int, int]]) -> Grid:
    """
    Merge blocks into a grid.

    Args:
        grid: Grid to modify in place
        spans: (row, col, row_span, col_span) for each merge

    Returns:
        Grid: The same grid, for chaining

    Raises:
        ValueError: If a block leaves the grid or touches an existing merge
    """
    num_rows, num_cols = grid_shape(grid)
    for row, col, row_span, col_span in spans:
        if row_span < 1 or col_span < 1 or row + row_span > num_rows or col + col_span > num_cols:
            raise ValueError(f"Invalid span {row_span}x{col_span} at ({row}, {col})")

        block = [grid[r][c] for r in range(row, row + row_span) for c in range(col, col + col_span)]
        if any(cell.hidden or cell.is_spanned for cell in block):
            raise ValueError(f"Span {row_span}x{col_span} at ({row}, {col}) overlaps an existing merge")

        merge_cells(grid, MergeBoundary(top=row, left=col, bottom=row + row_span - 1, right=col + col_span - 1))
    return grid


CATALOG_GRIDS: List[Grid] = [
    make_grid(3, 3),
    apply_spans(make_grid(3, 3), [
        (0, 0, 2, 1),
        (0, 1, 1, 2),
    ]),
    make_grid(5, 5),
    apply_spans(make_grid(5, 5), [
        (0, 0, 2, 2),
        (2, 2, 3, 1),
        (4, 3, 1, 2),
    ]),
    make_grid(8, 8),
    apply_spans(make_grid(8, 8), [
        (0, 0, 3, 3),
        (3, 3, 2, 4),
        (6, 6, 2, 2),
    ]),
]


@dataclass
class ChallengeCase:
    """One source grid paired with one configuration."""
    index: int
    grid: Grid
    config: TransformConfig

    @property
    def has_merged_cells(self) -> bool:
        return has_merged_cells(self.grid)

    @property
    def dimension(self) -> str:
        rows, cols = grid_shape(self.grid)
        return f"{rows}x{cols}"

    @property
    def dimension_key(self) -> str:
        return self.dimension + (" (merged)" if self.has_merged_cells else "")

    @property
    def title(self) -> str:
        flags = []
        if self.config.transpose:
            flags.append("Transpose")
        if self.config.repeat_first:
            flags.append("Repeat")
        flags.append(str(self.config.column_count))
        return f"{self.index}. {self.dimension} - {', '.join(flags)}"

    def expected(self) -> Optional[RenderedTable]:
        """Rendered engine output, or None when the configuration is invalid."""
        projection = TransformEngine().project(self.grid, self.config)
        return None if projection is None else render_table(projection)


@dataclass
class CaseResult:
    title: str
    passed: bool
    error: Optional[str] = None
    has_merged_cells: bool = False


def build_cases(grids: Sequence[Grid] = CATALOG_GRIDS,
                configs: Sequence[TransformConfig] = ALL_CONFIGS) -> List[ChallengeCase]:
    cases = []
    for grid in grids:
        for config in configs:
            cases.append(ChallengeCase(index=len(cases) + 1, grid=grid, config=config))
    return cases


ALL_CASES: List[ChallengeCase] = build_cases()


def group_cases(cases: Sequence[ChallengeCase]) -> "OrderedDict[str, List[ChallengeCase]]":
    groups: "OrderedDict[str, List[ChallengeCase]]" = OrderedDict()
    for case in cases:
        groups.setdefault(case.dimension_key, []).append(case)
    return groups


def run_case(candidate: Candidate, case: ChallengeCase) -> CaseResult:
    """
    Run a candidate on one case and compare its table with the engine's.

    The candidate gets the rendered source table and the configuration and
    may answer with a rendered table or with HTML markup.
    """
    result = CaseResult(title=case.title, passed=False, has_merged_cells=case.has_merged_cells)

    expected = case.expected()
    if expected is None:
        result.error = case.config.validation_error()
        return result

    try:
        output = candidate(render_table(case.grid), case.config)
    except Exception as e:
        logger.debug(f"Candidate raised on case {case.index}: {e}")
        result.error = f"Execution Error: {e}"
        return result

    if isinstance(output, str):
        try:
            output = from_html(output)
        except TableParseError as e:
            result.error = str(e)
            return result
    elif not isinstance(output, list) or not all(isinstance(row, list) for row in output):
        result.error = f"Expected a table, but got {output!r}"
        return result

    mismatches = find_mismatches(expected, output)
    if mismatches:
        result.error = mismatches[0]
        return result

    result.passed = True
    return result


@timed_operation("Challenge run", threshold=1.0)
def run_cases(candidate: Candidate, cases: Optional[Sequence[ChallengeCase]] = None) -> List[CaseResult]:
    cases = ALL_CASES if cases is None else cases
    # Per-case debug lines from these modules would bury the summary
    with LogContext([
        "table_reflow.transform_engine",
        "table_reflow.equivalence",
        "table_reflow.table_serializer",
    ], logging.INFO):
        results = [run_case(candidate, case) for case in cases]

    summary = summarize(results)
    logger.info(f"Challenge run: {summary['passed']}/{summary['total']} cases passed")
    return results


def summarize(results: Sequence[CaseResult]) -> Dict[str, int]:
    passed = sum(1 for result in results if result.passed)
    return {"total": len(results), "passed": passed, "failed": len(results) - passed}
