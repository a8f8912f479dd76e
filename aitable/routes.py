# aitable/routes.py
import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from fastapi.responses import Response

from aitable import config, exporters, llm_client, pipeline
from aitable.files import FileReadError
from aitable.schemas import (
    CellUpdate,
    CreateTableRequest,
    CreateTableResponse,
    ParseFileRequest,
    ParseFileResponse,
    RowInsert,
    TableView,
)
from aitable.state import TableState

logger = logging.getLogger(__name__)

router = APIRouter()

STAGE_STATUS = {
    pipeline.STAGE_READ: 400,
    pipeline.STAGE_MODEL: 502,
    pipeline.STAGE_NORMALIZE: 422,
    pipeline.STAGE_SHAPE: 422,
}

# ------------------------------
# Table state (one per process)
# ------------------------------
table_state = TableState(fixed_headers=list(config.FIXED_HEADERS))


def get_table_state() -> TableState:
    return table_state


def _view(state: TableState, parsing_notes: Optional[str] = None) -> TableView:
    return TableView(**state.view(), parsing_notes=parsing_notes)


def _raise_for_pipeline(e: pipeline.PipelineError) -> None:
    raise HTTPException(
        status_code=STAGE_STATUS.get(e.stage, 500),
        detail={"stage": e.stage, "message": e.message},
    ) from e


# ------------------------------
# Raw model endpoints
# ------------------------------
@router.post("/parse_file", response_model=ParseFileResponse, response_model_by_alias=True)
def parse_file(req: ParseFileRequest):
    """
    Send a data-URI encoded file to the LLM and return its reply verbatim.
    No JSON recovery is attempted here.
    """
    try:
        return llm_client.parse_file_with_llm(req.file_data_uri, req.file_type, req.delimiter)
    except FileReadError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    except llm_client.LLMError as e:
        raise HTTPException(status_code=502, detail=str(e)) from e


@router.post("/create_table", response_model=CreateTableResponse, response_model_by_alias=True)
def create_table(req: CreateTableRequest):
    if not req.prompt.strip():
        raise HTTPException(status_code=400, detail="`prompt` must not be empty")
    try:
        return llm_client.create_table_with_llm(req.prompt)
    except llm_client.LLMError as e:
        raise HTTPException(status_code=502, detail=str(e)) from e


# ------------------------------
# Full pipeline
# ------------------------------
@router.post("/upload", response_model=TableView)
def upload(
    file: UploadFile = File(...),
    delimiter: Optional[str] = Form(None),
    state: TableState = Depends(get_table_state),
):
    try:
        _, notes = pipeline.process_upload(state, file.filename or "upload", file.file, file.content_type, delimiter)
    except pipeline.PipelineError as e:
        _raise_for_pipeline(e)
    return _view(state, notes)


@router.post("/prompt", response_model=TableView)
def prompt_table(req: CreateTableRequest, state: TableState = Depends(get_table_state)):
    try:
        pipeline.process_prompt(state, req.prompt)
    except pipeline.PipelineError as e:
        _raise_for_pipeline(e)
    return _view(state)


# ------------------------------
# Table editing
# ------------------------------
@router.get("/table", response_model=TableView)
def get_table(state: TableState = Depends(get_table_state)):
    return _view(state)


@router.post("/table/reset", response_model=TableView)
def reset_table(state: TableState = Depends(get_table_state)):
    state.reset()
    return _view(state)


@router.put("/table/cell", response_model=TableView)
def update_cell(update: CellUpdate, state: TableState = Depends(get_table_state)):
    try:
        state.set_cell(update.row_index, update.header, update.value)
    except IndexError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    return _view(state)


@router.post("/table/rows", response_model=TableView)
def insert_row(req: RowInsert, state: TableState = Depends(get_table_state)):
    try:
        state.insert_row(req.after_index)
    except IndexError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    return _view(state)


@router.delete("/table/rows/{index}", response_model=TableView)
def delete_row(index: int, state: TableState = Depends(get_table_state)):
    try:
        state.remove_row(index)
    except IndexError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    return _view(state)


# ------------------------------
# Export
# ------------------------------
@router.get("/export/{fmt}")
def export(fmt: str, state: TableState = Depends(get_table_state)):
    exporter = exporters.EXPORTERS.get(fmt)
    if exporter is None:
        raise HTTPException(status_code=404, detail=f"Unknown export format {fmt!r}")
    headers, rows = state.snapshot()
    body = exporters.export_table(fmt, headers, rows)
    logger.info("Exported %d rows as %s", len(rows), fmt)
    filename = f"{config.EXPORT_BASENAME}.{exporter.extension}"
    return Response(
        content=body,
        media_type=exporter.media_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
