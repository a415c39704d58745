import logging
from typing import List, Optional

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, ConfigDict, Field

from start import setup_logging
from table_reflow.challenge_cases import ALL_CASES, group_cases
from table_reflow.equivalence import find_mismatches
from table_reflow.grid_model import (GridEditor, MergeBoundary, TransformConfig,
                                     find_invariant_violations, grid_from_dicts,
                                     grid_to_dicts)
from table_reflow.merge_boundary import MergeBoundaryResolver
from table_reflow.table_serializer import (RenderedCell, TableParseError, from_html,
                                           parse_table, render_table,
                                           rendered_to_dicts, to_html)
from table_reflow.transform_engine import TransformEngine

setup_logging(debug=False, log_level=logging.INFO)
logger = logging.getLogger(__name__)

app = FastAPI(title="Table Reflow API", version="1.0.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

editor = GridEditor()
resolver = MergeBoundaryResolver()
engine = TransformEngine()


class CellModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    value: str
    row: int = 0
    col: int = 0
    row_span: int = Field(1, ge=1, alias="rowSpan")
    col_span: int = Field(1, ge=1, alias="colSpan")
    hidden: bool = False
    shadow: bool = False


class RenderedCellModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    value: str
    row_span: int = Field(1, alias="rowSpan")
    col_span: int = Field(1, alias="colSpan")
    shadow: bool = False


class ConfigModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    transpose: bool = False
    repeat_first: bool = Field(False, alias="repeatFirst")
    column_count: int = Field(1, alias="columnCount")


class BoundaryModel(BaseModel):
    top: int
    left: int
    bottom: int
    right: int


class SizeRequest(BaseModel):
    rows: int = Field(3, ge=1)
    cols: int = Field(3, ge=1)


class ResizeRequest(SizeRequest):
    grid: List[List[CellModel]]


class BoundaryRequest(BaseModel):
    grid: List[List[CellModel]]
    boundary: BoundaryModel


class SplitRequest(BaseModel):
    grid: List[List[CellModel]]
    row: int
    col: int


class TransformRequest(BaseModel):
    grid: List[List[CellModel]]
    config: ConfigModel


class ParseRequest(BaseModel):
    rendered: Optional[List[List[RenderedCellModel]]] = None
    html: Optional[str] = None


class CheckRequest(ParseRequest):
    grid: List[List[CellModel]]
    config: ConfigModel


def to_grid(rows: List[List[CellModel]]):
    """Build a grid from request cells, rejecting grids that break the span invariants."""
    grid = grid_from_dicts([[cell.model_dump(by_alias=True) for cell in row] for row in rows])
    problems = find_invariant_violations(grid)
    if problems:
        logger.info(f"Rejected grid: {problems[0]}")
        raise HTTPException(status_code=400, detail=problems[0])
    return grid


def to_config(model: ConfigModel) -> TransformConfig:
    return TransformConfig(
        transpose=model.transpose,
        repeat_first=model.repeat_first,
        column_count=model.column_count,
    )


def to_rendered(request: ParseRequest):
    """Accept a candidate table either as rendered rows or as HTML markup."""
    if request.html is not None:
        try:
            return from_html(request.html)
        except TableParseError as e:
            raise HTTPException(status_code=400, detail=str(e))
    if request.rendered is None:
        raise HTTPException(status_code=400, detail="Provide either 'rendered' or 'html'")
    return [
        [RenderedCell(value=c.value, row_span=c.row_span, col_span=c.col_span, shadow=c.shadow) for c in row]
        for row in request.rendered
    ]


@app.get("/")
async def root():
    return {"message": "Table Reflow API is running"}


@app.post("/api/grid")
async def create_grid(request: SizeRequest):
    return {"grid": grid_to_dicts(editor.initialize(request.rows, request.cols))}


@app.post("/api/resize")
async def resize_grid(request: ResizeRequest):
    resized = editor.resize(to_grid(request.grid), request.rows, request.cols)
    return {"grid": grid_to_dicts(resized)}


@app.post("/api/merge-boundary")
async def merge_boundary(request: BoundaryRequest):
    raw = MergeBoundary.from_anchors(
        (request.boundary.top, request.boundary.left),
        (request.boundary.bottom, request.boundary.right),
    )
    return {"boundary": resolver.resolve(to_grid(request.grid), raw).to_dict()}


@app.post("/api/merge")
async def merge(request: BoundaryRequest):
    """
    Resolve the selection and merge it.
    """
    grid = to_grid(request.grid)
    raw = MergeBoundary.from_anchors(
        (request.boundary.top, request.boundary.left),
        (request.boundary.bottom, request.boundary.right),
    )
    boundary = resolver.resolve(grid, raw)
    merged = editor.merge(grid, boundary)
    return {"merged": merged, "boundary": boundary.to_dict(), "grid": grid_to_dicts(grid)}


@app.post("/api/split")
async def split(request: SplitRequest):
    grid = to_grid(request.grid)
    split_done = editor.split(grid, request.row, request.col)
    return {"split": split_done, "grid": grid_to_dicts(grid)}


@app.post("/api/transform")
async def transform(request: TransformRequest):
    """
    Project a grid and return the rendered rows and their HTML.
    """
    config = to_config(request.config)
    projection = engine.project(to_grid(request.grid), config)
    if projection is None:
        raise HTTPException(status_code=400, detail=config.validation_error())

    rendered = render_table(projection)
    return {"rendered": rendered_to_dicts(rendered), "html": to_html(rendered)}


@app.post("/api/parse")
async def parse(request: ParseRequest):
    rendered = to_rendered(request)
    try:
        grid = parse_table(rendered)
    except TableParseError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"grid": grid_to_dicts(grid)}


@app.post("/api/check")
async def check(request: CheckRequest):
    """
    Compare a candidate table with the engine's projection of the same grid.
    """
    config = to_config(request.config)
    expected = engine.project(to_grid(request.grid), config)
    if expected is None:
        raise HTTPException(status_code=400, detail=config.validation_error())

    mismatches = find_mismatches(expected, to_rendered(request))
    if mismatches:
        logger.info(f"Check failed: {mismatches[0]}")
    return {"passed": not mismatches, "mismatches": mismatches}


@app.get("/api/cases")
async def list_cases():
    return {
        "groups": [
            {
                "dimension": dimension,
                "cases": [
                    {"index": case.index, "title": case.title, "config": case.config.to_dict()}
                    for case in cases
                ],
            }
            for dimension, cases in group_cases(ALL_CASES).items()
        ]
    }


@app.get("/api/cases/{index}")
async def get_case(index: int):
    if not 1 <= index <= len(ALL_CASES):
        raise HTTPException(status_code=404, detail=f"Case {index} does not exist")
    case = ALL_CASES[index - 1]
    return {
        "title": case.title,
        "grid": grid_to_dicts(case.grid),
        "config": case.config.to_dict(),
        "expected": rendered_to_dicts(case.expected()),
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000, reload=False)
