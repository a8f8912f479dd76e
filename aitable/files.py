# aitable/files.py
"""Data URI helpers and the text view of an uploaded file that the model reads."""
import base64
import binascii
import io
import mimetypes
import re
from typing import Optional, Tuple

import pandas as pd
import pdfplumber

CSV = "text/csv"
TXT = "text/plain"
JSON = "application/json"
PDF = "application/pdf"
XLS = "application/vnd.ms-excel"
XLSX = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

SUPPORTED_TYPES = {
    ".csv": CSV,
    ".txt": TXT,
    ".json": JSON,
    ".pdf": PDF,
    ".xls": XLS,
    ".xlsx": XLSX,
}


class FileReadError(ValueError):
    """The uploaded file could not be read or decoded."""


DATA_URI_RE = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+)?(?P<params>(;[\w-]+=[^;,]*)*);base64,(?P<payload>.*)$", re.DOTALL)


def guess_mime_type(filename: Optional[str], declared: Optional[str] = None) -> Optional[str]:
    """Pick a supported MIME type from the file name, falling back to the declared one."""
    if filename:
        ext = "." + filename.rsplit(".", 1)[-1].lower() if "." in filename else ""
        if ext in SUPPORTED_TYPES:
            return SUPPORTED_TYPES[ext]
    if declared and declared in SUPPORTED_TYPES.values():
        return declared
    if filename:
        guessed, _ = mimetypes.guess_type(filename)
        if guessed in SUPPORTED_TYPES.values():
            return guessed
    return None


def to_data_uri(content: bytes, mime_type: str) -> str:
    payload = base64.b64encode(content).decode("ascii")
    return f"data:{mime_type};base64,{payload}"


def from_data_uri(uri: str) -> Tuple[str, bytes]:
    match = DATA_URI_RE.match(uri or "")
    if not match:
        raise FileReadError("Expected a data URI of the form 'data:<mime>;base64,<payload>'")
    try:
        content = base64.b64decode(match.group("payload"), validate=True)
    except (binascii.Error, ValueError) as e:
        raise FileReadError(f"Invalid base64 payload in data URI: {e}") from e
    return match.group("mime") or "application/octet-stream", content


def _spreadsheet_text(content: bytes, delimiter: Optional[str]) -> str:
    sheets = pd.read_excel(io.BytesIO(content), sheet_name=None, header=None, dtype=str)
    blocks = []
    for name, df in sheets.items():
        csv_text = df.fillna("").to_csv(index=False, header=False, sep=delimiter or ",")
        blocks.append(f"### Sheet: {name}\n{csv_text}")
    return "\n".join(blocks)


def _pdf_text(content: bytes) -> str:
    pages = []
    with pdfplumber.open(io.BytesIO(content)) as pdf:
        for i, page in enumerate(pdf.pages, start=1):
            pages.append(f"### Page {i}\n{page.extract_text() or ''}")
    return "\n".join(pages)


def extract_text(mime_type: str, content: bytes, delimiter: Optional[str] = None) -> str:
    """Render an uploaded file as plain text for the prompt."""
    try:
        if mime_type in (XLS, XLSX):
            return _spreadsheet_text(content, delimiter)
        if mime_type == PDF:
            return _pdf_text(content)
    except Exception as e:
        raise FileReadError(f"Failed to read the {mime_type} file: {e}") from e
    return content.decode("utf-8", errors="replace")
