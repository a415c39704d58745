import argparse
import datetime
import json
import logging
import os
import sys

from table_reflow.challenge_cases import ALL_CASES, group_cases
from table_reflow.grid_model import (GridEditor, MergeBoundary, TransformConfig,
                                     clone_grid, grid_shape, grid_to_dicts)
from table_reflow.merge_boundary import MergeBoundaryResolver
from table_reflow.performance_logger import SamplingHandler
from table_reflow.table_serializer import render_table, rendered_to_dicts, to_html
from table_reflow.transform_engine import TransformEngine


def setup_logging(debug=False, log_level=logging.INFO):
    """
    Configure logging for the entire application - called once at startup.

    Args:
        debug (bool): Enable debug mode with file logging
        log_level (int): Logging level

    Returns:
        logging.Logger: Configured root logger
    """
    if debug and not os.path.exists("logs"):
        os.makedirs("logs")

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers = []

    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s'
    )

    # Console goes to stderr so --format json/html output stays clean on stdout
    console_handler = SamplingHandler(
        base_handler=logging.StreamHandler(sys.stderr),
        sample_every=1 if debug else 10,
    )
    console_handler.setLevel(log_level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if debug:
        timestamp = datetime.datetime.now().strftime("%Y%m%d_%H%M%S")
        file_handler = logging.FileHandler(f"logs/table_reflow_{timestamp}.log")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    return root_logger


def parse_pair(text, name):
    parts = [p.strip() for p in text.split(",")]
    if len(parts) != 2 or not all(p.lstrip("-").isdigit() for p in parts):
        raise ValueError(f"{name} expects ROW,COL, got '{text}'")
    return int(parts[0]), int(parts[1])


def parse_rect(text):
    parts = [p.strip() for p in text.split(",")]
    if len(parts) != 4 or not all(p.lstrip("-").isdigit() for p in parts):
        raise ValueError(f"--merge expects TOP,LEFT,BOTTOM,RIGHT, got '{text}'")
    top, left, bottom, right = (int(p) for p in parts)
    return MergeBoundary.from_anchors((top, left), (bottom, right))


class ProjectionProcessor:
    def __init__(self, debug=False):
        """
        Initialize the Projection Processor.
        """
        self.debug = debug
        self.logger = logging.getLogger(__name__)

        self.editor = GridEditor()
        self.resolver = MergeBoundaryResolver()
        self.engine = TransformEngine()

    def build_grid(self, rows, cols, merges=(), splits=(), case_index=None):
        """
        Create the source grid: a catalog case or a fresh grid, then edits.

        Raises:
            ValueError: If the case index is unknown or the size is not positive
        """
        config = None
        if case_index is not None:
            if not 1 <= case_index <= len(ALL_CASES):
                raise ValueError(f"Case {case_index} does not exist (1-{len(ALL_CASES)})")
            case = ALL_CASES[case_index - 1]
            grid = clone_grid(case.grid)
            config = case.config
            self.logger.info(f"[ProjectionProcessor] Loaded case {case.title}")
        else:
            if rows < 1 or cols < 1:
                raise ValueError(f"Grid size must be positive, got {rows}x{cols}")
            grid = self.editor.initialize(rows, cols)

        for raw in merges:
            boundary = self.resolver.resolve(grid, raw)
            if not self.editor.merge(grid, boundary):
                self.logger.warning(f"[ProjectionProcessor] Merge {raw} ignored")

        for row, col in splits:
            if not self.editor.split(grid, row, col):
                self.logger.warning(f"[ProjectionProcessor] Nothing to split at ({row}, {col})")

        return grid, config

    def process(self, grid, config):
        """Project a grid and collect everything the caller may display."""
        rows, cols = grid_shape(grid)
        self.logger.info(f"[ProjectionProcessor] Projecting {rows}x{cols} grid with {config}")

        projection = self.engine.project(grid, config)
        error = config.validation_error() if projection is None else None

        return {
            "metadata": {
                "processing_timestamp": str(datetime.datetime.now()),
                "config": config.to_dict(),
            },
            "input": {
                "dimensions": {"rows": rows, "columns": cols},
                "grid": grid,
                "rendered": render_table(grid),
            },
            "projection": {
                "error": error,
                "rows": len(projection) if projection is not None else 0,
                "rendered": render_table(projection) if projection is not None else None,
            },
        }


def format_text(rendered):
    lines = []
    for row in rendered:
        parts = []
        for cell in row:
            text = cell.value
            if cell.row_span > 1 or cell.col_span > 1:
                text += f"[{cell.row_span}x{cell.col_span}]"
            if cell.shadow:
                text = "~" + text
            parts.append(text)
        lines.append("| " + " | ".join(parts) + " |" if parts else "|")
    return "\n".join(lines)


def print_result(result, output_format):
    projection = result["projection"]

    if output_format == "json":
        payload = {
            "metadata": result["metadata"],
            "input": {
                "dimensions": result["input"]["dimensions"],
                "grid": grid_to_dicts(result["input"]["grid"]),
            },
            "projection": {
                "error": projection["error"],
                "rendered": rendered_to_dicts(projection["rendered"]) if projection["rendered"] is not None else None,
            },
        }
        print(json.dumps(payload, indent=2))
        return

    if output_format == "html":
        if projection["error"]:
            print(f"<!-- {projection['error']} -->")
        else:
            print(to_html(projection["rendered"]))
        return

    dims = result["input"]["dimensions"]
    print(f"\nSource table ({dims['rows']}x{dims['columns']}):")
    print(format_text(result["input"]["rendered"]))
    print(f"\nConfiguration: {result['metadata']['config']}")
    if projection["error"]:
        print(f"\nInvalid configuration: {projection['error']}")
    else:
        print(f"\nProjection ({projection['rows']} rows):")
        print(format_text(projection["rendered"]))


def list_cases():
    for dimension, cases in group_cases(ALL_CASES).items():
        print(f"{dimension} ({len(cases)} cases)")
        for case in cases:
            print(f"  {case.title}")


def parse_args(argv=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description='Table Reflow projection preview')
    parser.add_argument('--rows', type=int, default=3, help='Number of rows in a fresh grid')
    parser.add_argument('--cols', type=int, default=3, help='Number of columns in a fresh grid')
    parser.add_argument('--merge', action='append', default=[], metavar='TOP,LEFT,BOTTOM,RIGHT',
                        help='Merge a rectangle (expanded around existing spans); repeatable')
    parser.add_argument('--split', action='append', default=[], metavar='ROW,COL',
                        help='Split the merged cell anchored at ROW,COL; repeatable')
    parser.add_argument('--transpose', action='store_true', help='Transpose before reflowing')
    parser.add_argument('--repeat-first', action='store_true', help='Repeat each row\'s first cell')
    parser.add_argument('--columns', type=int, default=1, help='Target column count')
    parser.add_argument('--case', type=int, default=None, help='Load a catalog case by number')
    parser.add_argument('--list-cases', action='store_true', help='List the catalog cases and exit')
    parser.add_argument('--format', choices=['text', 'html', 'json'], default='text', help='Output format')
    parser.add_argument('--debug', action='store_true', help='Enable debug mode')
    parser.add_argument('--log-level', choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
                        default='WARNING', help='Logging level')
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    setup_logging(debug=args.debug, log_level=getattr(logging, args.log_level))

    if args.list_cases:
        list_cases()
        return 0

    processor = ProjectionProcessor(debug=args.debug)

    try:
        merges = [parse_rect(text) for text in args.merge]
        splits = [parse_pair(text, "--split") for text in args.split]
        grid, case_config = processor.build_grid(args.rows, args.cols, merges, splits, args.case)
        config = case_config or TransformConfig(
            transpose=args.transpose,
            repeat_first=args.repeat_first,
            column_count=args.columns,
        )
        result = processor.process(grid, config)
    except ValueError as ve:
        print(f"Error: {str(ve)}")
        return 1

    print_result(result, args.format)
    return 1 if result["projection"]["error"] else 0


if __name__ == "__main__":
    sys.exit(main())
