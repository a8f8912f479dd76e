# aitable/pipeline.py
"""
One parse attempt, start to finish:

    reading -> awaiting_model -> normalize -> coerce -> commit

Any stage failure is recorded on the state and raised as ``PipelineError``;
the table that was showing before the attempt stays in place.
"""
import logging
from typing import BinaryIO, List, Optional, Tuple, Union

from aitable import files, llm_client
from aitable.normalizer import NormalizationError, normalize_response
from aitable.state import AWAITING_MODEL, TableState
from aitable.table import Row, ShapeError, coerce_rows

logger = logging.getLogger(__name__)

STAGE_READ = "read"
STAGE_MODEL = "model"
STAGE_NORMALIZE = "normalize"
STAGE_SHAPE = "shape"


class PipelineError(Exception):
    def __init__(self, stage: str, message: str):
        super().__init__(message)
        self.stage = stage
        self.message = message

    def __str__(self) -> str:
        return f"[{self.stage}] {self.message}"


def _fail(state: TableState, token: int, stage: str, message: str) -> PipelineError:
    logger.warning("Parse attempt %d failed at %s: %s", token, stage, message)
    state.fail(token, stage, message)
    return PipelineError(stage, message)


def _rows_from_reply(state: TableState, token: int, raw: str) -> List[Row]:
    try:
        parsed = normalize_response(raw)
    except NormalizationError as e:
        logger.debug("Raw model reply: %r", raw)
        raise _fail(state, token, STAGE_NORMALIZE, f"Failed to parse the data from AI ({e.condition}): {e}") from e
    try:
        return coerce_rows(parsed)
    except ShapeError as e:
        raise _fail(state, token, STAGE_SHAPE, str(e)) from e


def process_upload(
    state: TableState,
    filename: str,
    content: Union[bytes, BinaryIO],
    mime_type: Optional[str] = None,
    delimiter: Optional[str] = None,
) -> Tuple[bool, str]:
    """
    Run an uploaded file through the model and into ``state``.

    ``content`` is the file's bytes or an open binary file; a file is read
    inside the read stage so an I/O failure lands on the state like any other.

    Returns ``(committed, parsing_notes)``. ``committed`` is False when a newer
    attempt (or a reset) started while this one was waiting on the model.
    """
    token = state.begin(filename)

    if not isinstance(content, bytes):
        try:
            content = content.read()
        except OSError as e:
            logger.exception("Failed to read upload %s", filename)
            raise _fail(state, token, STAGE_READ, f"Failed to read the file: {e}") from e

    file_type = files.guess_mime_type(filename, mime_type)
    if not content:
        raise _fail(state, token, STAGE_READ, "Failed to read the file: it is empty.")
    if file_type is None:
        raise _fail(state, token, STAGE_READ, f"Unsupported file type for {filename!r}.")
    data_uri = files.to_data_uri(content, file_type)

    state.advance(token, AWAITING_MODEL)
    try:
        result = llm_client.parse_file_with_llm(data_uri, file_type, delimiter)
    except files.FileReadError as e:
        raise _fail(state, token, STAGE_READ, str(e)) from e
    except llm_client.LLMError as e:
        raise _fail(state, token, STAGE_MODEL, str(e)) from e

    rows = _rows_from_reply(state, token, result.parsed_data)
    committed = state.commit(token, rows)
    if committed:
        logger.info("Parsed %d rows from %s", len(rows), filename)
    return committed, result.parsing_notes


def process_prompt(state: TableState, prompt: str) -> bool:
    token = state.begin("prompt")
    if not prompt.strip():
        raise _fail(state, token, STAGE_READ, "Please enter a description or paste some data.")

    state.advance(token, AWAITING_MODEL)
    try:
        result = llm_client.create_table_with_llm(prompt)
    except llm_client.LLMError as e:
        raise _fail(state, token, STAGE_MODEL, str(e)) from e

    rows = _rows_from_reply(state, token, result.table_data)
    return state.commit(token, rows)
