"""API tests against the FastAPI app with the model call patched out."""

# pylint: disable=missing-class-docstring,missing-function-docstring,redefined-outer-name

from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from aitable.llm_client import LLMError
from aitable.main import app
from aitable.routes import get_table_state
from aitable.schemas import CreateTableResponse, ParseFileResponse
from aitable.state import TableState
from aitable.table import DEFAULT_HEADERS

_PATCH_PARSE = "aitable.llm_client.parse_file_with_llm"
_PATCH_CREATE = "aitable.llm_client.create_table_with_llm"

ZONED_REPLY = '```json\n[{"zone": "ZONE 1"}, {"SN": "", "Activity": "Dig"}, {"SN": "", "Activity": "Pour"}]\n```\nTwo rows.'


@pytest.fixture
def state():
    return TableState()


@pytest.fixture
def client(state):
    app.dependency_overrides[get_table_state] = lambda: state
    yield TestClient(app)
    app.dependency_overrides.clear()


def _upload(client, reply: str, notes: str = ""):
    with patch(_PATCH_PARSE, return_value=ParseFileResponse(parsed_data=reply, parsing_notes=notes)):
        return client.post("/api/upload", files={"file": ("plan.csv", b"SN,Activity\n1,Dig\n", "text/csv")})


class TestRawEndpoints:

    def test_parse_file_returns_camel_case(self, client):
        reply = ParseFileResponse(parsed_data="[]", parsing_notes="none")
        with patch(_PATCH_PARSE, return_value=reply) as mock_parse:
            resp = client.post("/api/parse_file", json={"fileDataUri": "data:text/csv;base64,YQ==", "fileType": "text/csv"})

        assert resp.status_code == 200
        assert resp.json() == {"parsedData": "[]", "parsingNotes": "none"}
        mock_parse.assert_called_once_with("data:text/csv;base64,YQ==", "text/csv", None)

    def test_parse_file_model_error(self, client):
        with patch(_PATCH_PARSE, side_effect=LLMError("down")):
            resp = client.post("/api/parse_file", json={"fileDataUri": "data:text/csv;base64,YQ==", "fileType": "text/csv"})
        assert resp.status_code == 502

    def test_create_table(self, client):
        with patch(_PATCH_CREATE, return_value=CreateTableResponse(table_data='[{"a": 1}]')):
            resp = client.post("/api/create_table", json={"prompt": "one row"})
        assert resp.json() == {"tableData": '[{"a": 1}]'}

    def test_create_table_empty_prompt(self, client):
        assert client.post("/api/create_table", json={"prompt": " "}).status_code == 400


class TestUpload:

    def test_upload_builds_table(self, client):
        resp = _upload(client, ZONED_REPLY, notes="Two rows.")
        body = resp.json()

        assert resp.status_code == 200
        assert body["headers"] == ["SN", "Activity"]
        assert body["rows"] == [{"zone": "ZONE 1"}, {"SN": 1, "Activity": "Dig"}, {"SN": 2, "Activity": "Pour"}]
        assert body["status"] == "reconciled"
        assert body["parsing_notes"] == "Two rows."

    def test_upload_normalization_failure(self, client, state):
        resp = _upload(client, "I could not find any table in this file.")

        assert resp.status_code == 422
        assert resp.json()["detail"]["stage"] == "normalize"
        assert state.headers == DEFAULT_HEADERS

    def test_upload_model_failure(self, client):
        with patch(_PATCH_PARSE, side_effect=LLMError("quota")):
            resp = client.post("/api/upload", files={"file": ("plan.csv", b"a\n1\n", "text/csv")})
        assert resp.status_code == 502
        assert resp.json()["detail"] == {"stage": "model", "message": "quota"}

    def test_prompt_pipeline(self, client):
        with patch(_PATCH_CREATE, return_value=CreateTableResponse(table_data='Sure! [{"Country": "Canada"}]')):
            resp = client.post("/api/prompt", json={"prompt": "countries"})
        assert resp.json()["rows"] == [{"Country": 1}]

        exported = client.get("/api/export/json").json()
        assert exported == [{"Country": "Canada"}]


class TestEditing:

    def test_get_default_table(self, client):
        body = client.get("/api/table").json()
        assert body["headers"] == DEFAULT_HEADERS
        assert body["status"] == "idle"

    def test_edit_zone_cell(self, client):
        _upload(client, ZONED_REPLY)
        resp = client.put("/api/table/cell", json={"row_index": 0, "header": "Activity", "value": "ZONE A"})
        assert resp.json()["rows"][0] == {"zone": "ZONE A"}

    def test_insert_and_delete_rows(self, client):
        _upload(client, ZONED_REPLY)
        rows = client.post("/api/table/rows", json={"after_index": 2}).json()["rows"]
        assert len(rows) == 4
        assert rows[3] == {"SN": 3, "Activity": ""}

        rows = client.delete("/api/table/rows/1").json()["rows"]
        assert [r.get("Activity") for r in rows] == [None, "Pour", ""]

    def test_out_of_range_edits(self, client):
        assert client.delete("/api/table/rows/9").status_code == 404
        assert client.put("/api/table/cell", json={"row_index": 9, "header": "a", "value": 1}).status_code == 404
        assert client.post("/api/table/rows", json={"after_index": 9}).status_code == 404

    def test_reset(self, client):
        _upload(client, ZONED_REPLY)
        body = client.post("/api/table/reset").json()
        assert body["headers"] == DEFAULT_HEADERS


class TestExport:

    @pytest.mark.parametrize("fmt,media_type", [
        ("csv", "text/csv"),
        ("json", "application/json"),
        ("pdf", "application/pdf"),
        ("png", "image/png"),
        ("xlsx", "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"),
    ])
    def test_export_formats(self, client, fmt, media_type):
        _upload(client, ZONED_REPLY)
        resp = client.get(f"/api/export/{fmt}")
        assert resp.status_code == 200
        assert resp.headers["content-type"].startswith(media_type)
        assert f".{fmt}" in resp.headers["content-disposition"]

    def test_unknown_format(self, client):
        assert client.get("/api/export/docx").status_code == 404

    def test_exports_keep_first_column(self, client):
        _upload(client, '[{"Activity": "Dig", "Owner": "Ana"}, {"Activity": "Pour", "Owner": "Ben"}]')
        assert client.get("/api/table").json()["rows"][0] == {"Activity": 1, "Owner": "Ana"}

        csv_text = client.get("/api/export/csv").text
        assert "Dig" in csv_text
        assert "Pour" in csv_text
