# aitable/exporters.py
"""
Exporters for a table snapshot.

Each exporter takes ``(headers, rows)`` as returned by
``TableState.snapshot()`` and returns the encoded file as bytes.
"""
import io
import json
from typing import Any, Callable, Dict, List, NamedTuple, Optional, Sequence

import pandas as pd

from aitable import config
from aitable.renderer import render_table_image, render_table_pages
from aitable.table import ZONE_KEY, is_zone_row

EXCEL_ZONE_COLUMN = "Zone"


def _frame(headers: Sequence[str], rows: Sequence[Dict[str, Any]]) -> pd.DataFrame:
    records = []
    for row in rows:
        if is_zone_row(row):
            # label in the first column, rest blank
            record = {h: "" for h in headers}
            if headers:
                record[headers[0]] = row[ZONE_KEY]
            records.append(record)
        else:
            records.append({h: row.get(h, "") for h in headers})
    return pd.DataFrame(records, columns=list(headers))


def to_csv_bytes(headers: Sequence[str], rows: Sequence[Dict[str, Any]]) -> bytes:
    buf = io.StringIO()
    _frame(headers, rows).to_csv(buf, index=False)
    return buf.getvalue().encode("utf-8")


def to_json_bytes(headers: Sequence[str], rows: Sequence[Dict[str, Any]]) -> bytes:
    return json.dumps(list(rows), ensure_ascii=False, indent=2).encode("utf-8")


def to_excel_bytes(headers: Sequence[str], rows: Sequence[Dict[str, Any]]) -> bytes:
    """Zone rows go into their own ``Zone`` column, after the data columns."""
    records: List[Dict[str, Any]] = []
    has_zone = False
    for row in rows:
        if is_zone_row(row):
            has_zone = True
            records.append({EXCEL_ZONE_COLUMN: row[ZONE_KEY]})
        else:
            records.append({h: row.get(h, "") for h in headers})
    columns = list(headers) + ([EXCEL_ZONE_COLUMN] if has_zone else [])
    df = pd.DataFrame(records, columns=columns)

    buf = io.BytesIO()
    with pd.ExcelWriter(buf, engine="openpyxl") as writer:
        df.to_excel(writer, sheet_name="Data", index=False)
    return buf.getvalue()


def to_pdf_bytes(headers: Sequence[str], rows: Sequence[Dict[str, Any]], title: Optional[str] = None) -> bytes:
    pages = render_table_pages(headers, rows, title=title or config.EXPORT_TITLE)
    buf = io.BytesIO()
    pages[0].save(buf, format="PDF", resolution=150.0, save_all=True, append_images=pages[1:])
    return buf.getvalue()


def to_png_bytes(headers: Sequence[str], rows: Sequence[Dict[str, Any]], title: Optional[str] = None) -> bytes:
    img = render_table_image(headers, rows, title=title or config.EXPORT_TITLE)
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


class Exporter(NamedTuple):
    encode: Callable[..., bytes]
    media_type: str
    extension: str


EXPORTERS: Dict[str, Exporter] = {
    "csv": Exporter(to_csv_bytes, "text/csv", "csv"),
    "json": Exporter(to_json_bytes, "application/json", "json"),
    "xlsx": Exporter(to_excel_bytes, "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet", "xlsx"),
    "pdf": Exporter(to_pdf_bytes, "application/pdf", "pdf"),
    "png": Exporter(to_png_bytes, "image/png", "png"),
}


def export_table(fmt: str, headers: Sequence[str], rows: Sequence[Dict[str, Any]]) -> bytes:
    try:
        exporter = EXPORTERS[fmt]
    except KeyError:
        raise ValueError(f"Unknown export format {fmt!r}; expected one of {sorted(EXPORTERS)}") from None
    return exporter.encode(headers, rows)
