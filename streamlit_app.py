# streamlit_app.py
import streamlit as st
import requests
import pandas as pd
import plotly.graph_objects as go
from typing import Any, Dict, List, Optional

from aitable.config import API_BASE, EXPORT_BASENAME
from aitable.table import ZONE_KEY, is_zone_row

st.set_page_config(page_title="AI Data Table", layout="wide")
st.title("AI Data Table")
st.write("Upload a file or describe a table. The LLM extracts the rows; edit them below and export.")

EXPORT_FORMATS = [("pdf", "PDF"), ("xlsx", "Excel"), ("csv", "CSV"), ("json", "JSON"), ("png", "Image (PNG)")]

# -------------------------
# Helpers
# -------------------------
def api(method: str, path: str, **kwargs) -> Optional[Dict[str, Any]]:
    """Call the backend; show the failing stage and return None on error."""
    try:
        resp = requests.request(method, f"{API_BASE}{path}", timeout=kwargs.pop("timeout", 120), **kwargs)
    except requests.RequestException as e:
        st.error("Failed to call API")
        st.exception(e)
        return None

    if resp.ok:
        return resp.json()

    try:
        detail = resp.json().get("detail")
    except ValueError:
        detail = resp.text
    if isinstance(detail, dict):
        st.error(f"Parsing issue ({detail.get('stage')}): {detail.get('message')}")
    else:
        st.error(f"Backend returned error {resp.status_code}: {detail}")
    return None


def table_to_df(headers: List[str], rows: List[Dict[str, Any]]) -> pd.DataFrame:
    records = []
    for row in rows:
        if is_zone_row(row):
            records.append({h: (row[ZONE_KEY] if i == 0 else "") for i, h in enumerate(headers)})
        else:
            records.append({h: row.get(h, "") for h in headers})
    return pd.DataFrame(records, columns=headers)


def plotly_table(headers: List[str], rows: List[Dict[str, Any]]) -> go.Figure:
    df = table_to_df(headers, rows).astype(str)
    zone_flags = [is_zone_row(r) for r in rows]
    fills = ["#e6e6e6" if z else ("#f8fbff" if i % 2 == 0 else "white") for i, z in enumerate(zone_flags)]
    fig = go.Figure(data=[go.Table(
        header=dict(values=headers, fill_color="#0f62fe", font=dict(color="white", size=12)),
        cells=dict(values=[df[h] for h in headers], fill_color=[fills for _ in headers], align="left"),
    )])
    fig.update_layout(margin=dict(l=5, r=5, t=5, b=5), height=min(120 + 32 * len(rows), 800))
    return fig


def store(view: Optional[Dict[str, Any]]) -> None:
    if view is not None:
        st.session_state["table"] = view
        st.session_state["exports"] = {}


if "table" not in st.session_state:
    store(api("GET", "/table"))

# -------------------------
# UI: input
# -------------------------
col_upload, col_prompt = st.columns(2)

with col_upload:
    st.subheader("1. Upload File")
    uploaded = st.file_uploader("CSV, TXT, JSON, PDF or Excel", type=["csv", "txt", "json", "pdf", "xls", "xlsx"])
    delimiter = st.text_input("Delimiter (optional)", value="", max_chars=3)
    if st.button("Parse file", disabled=uploaded is None):
        with st.spinner("Parsing your data..."):
            view = api(
                "POST", "/upload",
                files={"file": (uploaded.name, uploaded.getvalue(), uploaded.type or "application/octet-stream")},
                data={"delimiter": delimiter} if delimiter else None,
            )
        if view is not None:
            st.success("Data parsed successfully.")
            if view.get("parsing_notes"):
                st.info(view["parsing_notes"])
            store(view)

with col_prompt:
    st.subheader("2. Create from Prompt")
    prompt = st.text_area("Describe the table, or paste raw data", height=150,
                          placeholder="e.g. 'A table of the top 5 largest countries by area'")
    if st.button("Create table"):
        if not prompt.strip():
            st.warning("Please enter a description or paste some data.")
        else:
            with st.spinner("Creating table..."):
                store(api("POST", "/prompt", json={"prompt": prompt}))

# -------------------------
# UI: table
# -------------------------
view = st.session_state.get("table")
if not view:
    st.info("Start the API with `uvicorn aitable.main:app` and reload this page.")
    st.stop()

headers, rows = view["headers"], view["rows"]

st.subheader("Extracted Data")
if view.get("error"):
    st.warning(f"Last attempt failed at '{view['error']['stage']}': {view['error']['message']}")

if not rows or not headers:
    st.write("No data to display. Upload a file to get started.")
else:
    st.plotly_chart(plotly_table(headers, rows), use_container_width=True)

with st.expander("Edit table", expanded=False):
    edit_col, row_col = st.columns(2)
    with edit_col:
        row_index = st.number_input("Row", min_value=0, max_value=max(len(rows) - 1, 0), step=1)
        current = rows[row_index] if rows else {}
        if is_zone_row(current):
            header = ZONE_KEY
            st.caption("Zone heading row: the new value replaces the heading.")
        else:
            header = st.selectbox("Column", headers)
        value = st.text_input("Value", value=str(current.get(header, "")) if current else "")
        if st.button("Update cell", disabled=not rows):
            store(api("PUT", "/table/cell", json={"row_index": int(row_index), "header": header, "value": value}))
            st.rerun()
    with row_col:
        target = st.number_input("Row position", min_value=-1, max_value=max(len(rows) - 1, -1), value=len(rows) - 1, step=1)
        if st.button("Insert row after"):
            store(api("POST", "/table/rows", json={"after_index": int(target)}))
            st.rerun()
        if st.button("Delete row", disabled=not rows or target < 0):
            store(api("DELETE", f"/table/rows/{int(target)}"))
            st.rerun()
        if st.button("Reset to example table"):
            store(api("POST", "/table/reset"))
            st.rerun()

# -------------------------
# UI: export
# -------------------------
st.subheader("Export Data")
# files are fetched on demand and kept until the table changes
exports = st.session_state.setdefault("exports", {})
export_cols = st.columns(len(EXPORT_FORMATS))
for col, (fmt, label) in zip(export_cols, EXPORT_FORMATS):
    with col:
        if fmt not in exports and st.button(f"Prepare {label}", key=f"prepare_{fmt}"):
            try:
                resp = requests.get(f"{API_BASE}/export/{fmt}", timeout=60)
            except requests.RequestException as e:
                st.error(f"{label} export failed")
                st.exception(e)
                continue
            if not resp.ok:
                st.error(f"{label} export failed: {resp.status_code}")
                continue
            exports[fmt] = (resp.content, resp.headers.get("content-type"))
        if fmt in exports:
            data, mime = exports[fmt]
            st.download_button(
                f"Export to {label}",
                data=data,
                file_name=f"{EXPORT_BASENAME}.{fmt}",
                mime=mime,
                key=f"download_{fmt}",
            )
