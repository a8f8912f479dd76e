# aitable/table.py
"""
Table reconciliation.

Rows arrive from the model as loosely shaped dicts. Section headings come
through as ``{"zone": "..."}`` rows. Everything here is pure: each operation
returns a new list and never edits the rows it was given.
"""
import json
from datetime import date
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

Row = Dict[str, Any]

ZONE_KEY = "zone"


class ShapeError(ValueError):
    """Decoded JSON is not something we can turn into table rows."""


def default_rows() -> List[Row]:
    today = date.today().isoformat()
    return [
        {
            "SN": "1",
            "Location": "Example Location",
            "Activity": "Example Activity",
            "Engineering Status": "Pending",
            "Engineering": today,
            "Procurement": "In Progress",
            "Procurement Date": today,
            "Execution_clearence": "2024-08-15",
            "Execution_start": "2024-08-20",
            "Execution_finish": "2024-08-30",
        }
    ]


DEFAULT_HEADERS: List[str] = list(default_rows()[0].keys())


def is_zone_row(row: Any) -> bool:
    return isinstance(row, dict) and ZONE_KEY in row


def zone_row(label: Any) -> Row:
    return {ZONE_KEY: "" if label is None else str(label)}


def derive_headers(rows: Any, default_headers: Optional[Sequence[str]] = None) -> List[str]:
    """Ordered union of the keys of every non-zone row."""
    if not isinstance(rows, list) or not rows:
        return list(DEFAULT_HEADERS if default_headers is None else default_headers)

    headers: Dict[str, None] = {}
    for row in rows:
        if isinstance(row, dict) and not is_zone_row(row):
            for key in row:
                headers.setdefault(key, None)
    return list(headers)


def with_serials(rows: Sequence[Row]) -> List[Row]:
    """Number data rows 1..n within each zone, writing into the row's first key."""
    out: List[Row] = []
    serial = 0
    for row in rows:
        if is_zone_row(row):
            serial = 0
            out.append(row)
            continue
        serial += 1
        new_row = dict(row)
        if new_row:
            first_key = next(iter(new_row))
            new_row[first_key] = serial
        out.append(new_row)
    return out


def reconcile_to_fixed_schema(rows: Sequence[Row], fixed_headers: Sequence[str]) -> List[Row]:
    """Force every data row onto exactly ``fixed_headers``; zone rows pass through."""
    out: List[Row] = []
    for row in rows:
        if is_zone_row(row):
            out.append(zone_row(row[ZONE_KEY]))
        else:
            out.append({h: row.get(h, "") for h in fixed_headers})
    return out


def blank_row(headers: Iterable[str]) -> Row:
    return {h: "" for h in headers}


def insert_row(rows: Sequence[Row], after_index: int, headers: Optional[Sequence[str]] = None) -> List[Row]:
    if headers is None:
        headers = derive_headers(list(rows))
    if after_index < -1 or after_index >= len(rows):
        raise IndexError(f"Cannot insert after row {after_index}; table has {len(rows)} rows")
    out = list(rows)
    out.insert(after_index + 1, blank_row(headers))
    return out


def remove_row(rows: Sequence[Row], index: int) -> List[Row]:
    if index < 0 or index >= len(rows):
        raise IndexError(f"Row {index} out of range; table has {len(rows)} rows")
    return [row for i, row in enumerate(rows) if i != index]


def set_cell(rows: Sequence[Row], row_index: int, header: str, value: Any) -> List[Row]:
    if row_index < 0 or row_index >= len(rows):
        raise IndexError(f"Row {row_index} out of range; table has {len(rows)} rows")
    out = list(rows)
    row = out[row_index]
    if is_zone_row(row):
        out[row_index] = zone_row(value)
    else:
        new_row = dict(row)
        new_row[header] = value
        out[row_index] = new_row
    return out


def build_table(rows: Sequence[Row], fixed_headers: Optional[Sequence[str]] = None) -> Tuple[List[str], List[Row]]:
    """Headers and rows ready for display; a fixed header list switches to the strict schema."""
    if fixed_headers:
        return list(fixed_headers), reconcile_to_fixed_schema(rows, fixed_headers)
    return derive_headers(list(rows)), list(rows)


# ------------------------------
# Coercion of decoded model output
# ------------------------------
def _cell(value: Any) -> Any:
    if value is None:
        return ""
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False)
    return value


def _clean_row(row: Dict[Any, Any]) -> Row:
    if ZONE_KEY in row:
        return zone_row(row[ZONE_KEY])
    return {str(k): _cell(v) for k, v in row.items()}


def _rows_from_columns(columns: List[Any], rows: List[Any]) -> List[Row]:
    cols = [str(c) for c in columns]
    out = []
    for r in rows:
        if isinstance(r, dict):
            out.append(_clean_row(r) if ZONE_KEY in r else {c: _cell(r.get(c)) for c in cols})
        elif isinstance(r, list):
            padded = list(r) + [None] * (len(cols) - len(r))
            out.append({c: _cell(v) for c, v in zip(cols, padded)})
        else:
            raise ShapeError(f"Row {r!r} is neither an object nor a list")
    return out


def coerce_rows(parsed: Any) -> List[Row]:
    """
    Turn a decoded JSON value into a list of row dicts.

    Accepted shapes:
    - [{...}, {...}]                      list of row objects
    - {...}                               a single row object
    - {"columns": [...], "rows": [...]}   rows as lists or objects
    - [[header...], [cells...], ...]      first row is the header
    """
    if isinstance(parsed, dict):
        if isinstance(parsed.get("columns"), list) and isinstance(parsed.get("rows"), list):
            return _rows_from_columns(parsed["columns"], parsed["rows"])
        if isinstance(parsed.get("rows"), list) and all(isinstance(r, dict) for r in parsed["rows"]):
            return [_clean_row(r) for r in parsed["rows"]]
        return [_clean_row(parsed)]

    if not isinstance(parsed, list):
        raise ShapeError("Parsed data is not in a valid table format (array of objects).")

    if parsed and all(isinstance(r, list) for r in parsed):
        return _rows_from_columns(parsed[0], parsed[1:])
    if all(isinstance(r, dict) for r in parsed):
        return [_clean_row(r) for r in parsed]
    raise ShapeError("Parsed data is not in a valid table format (array of objects).")
