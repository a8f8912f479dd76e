"""Unit tests for the Groq client wrapper, with the SDK client mocked."""

# pylint: disable=missing-class-docstring,missing-function-docstring

from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import groq
import httpx
import pytest

from aitable import llm_client
from aitable.files import to_data_uri
from aitable.llm_client import LLMError, create_table_with_llm, parse_file_with_llm

_PATCH_CLIENT = "aitable.llm_client.get_client"

CSV_URI = to_data_uri(b"SN,Activity\n1,Dig\n", "text/csv")


def _completion(content: str):
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


def _client_returning(content: str) -> MagicMock:
    client = MagicMock()
    client.chat.completions.create.return_value = _completion(content)
    return client


class TestParseFile:

    def test_prompt_contains_file_text(self):
        client = _client_returning('```json\n[{"SN": "1", "Activity": "Dig"}]\n```\nNo issues.')
        with patch(_PATCH_CLIENT, return_value=client):
            result = parse_file_with_llm(CSV_URI, "text/csv", ";")

        messages = client.chat.completions.create.call_args.kwargs["messages"]
        assert messages[0]["content"] == llm_client.PARSE_SYSTEM_PROMPT
        assert "SN,Activity\n1,Dig" in messages[1]["content"]
        assert "Delimiter (if applicable): ;" in messages[1]["content"]
        assert result.parsed_data.startswith("```json")
        assert result.parsing_notes == "No issues."

    def test_notes_empty_when_reply_has_no_json(self):
        with patch(_PATCH_CLIENT, return_value=_client_returning("I found nothing.")):
            result = parse_file_with_llm(CSV_URI, "text/csv")
        assert result.parsed_data == "I found nothing."
        assert result.parsing_notes == ""

    def test_empty_reply_is_an_error(self):
        with patch(_PATCH_CLIENT, return_value=_client_returning("   ")):
            with pytest.raises(LLMError, match="could not parse any data from the file"):
                parse_file_with_llm(CSV_URI, "text/csv")

    def test_authentication_error_wrapped(self):
        client = MagicMock()
        request = httpx.Request("POST", "https://api.groq.com/openai/v1/chat/completions")
        client.chat.completions.create.side_effect = groq.AuthenticationError(
            "bad key", response=httpx.Response(401, request=request), body=None
        )
        with patch(_PATCH_CLIENT, return_value=client):
            with pytest.raises(LLMError, match="GROQ_API_KEY"):
                parse_file_with_llm(CSV_URI, "text/csv")

    def test_missing_key_fails_before_client_is_built(self):
        with patch("aitable.config.GROQ_API_KEY", None), patch(_PATCH_CLIENT) as mock_client:
            with pytest.raises(LLMError, match="GROQ_API_KEY not set"):
                parse_file_with_llm(CSV_URI, "text/csv")
        mock_client.assert_not_called()

    def test_client_construction_error_wrapped(self):
        with patch(_PATCH_CLIENT, side_effect=groq.GroqError("The api_key client option must be set")):
            with pytest.raises(LLMError, match="api_key client option"):
                parse_file_with_llm(CSV_URI, "text/csv")


class TestCreateTable:

    def test_returns_raw_reply(self):
        client = _client_returning('[{"Country": "Russia"}]')
        with patch(_PATCH_CLIENT, return_value=client):
            result = create_table_with_llm("largest countries")

        assert result.table_data == '[{"Country": "Russia"}]'
        messages = client.chat.completions.create.call_args.kwargs["messages"]
        assert messages[1]["content"] == "Prompt: largest countries"

    def test_empty_reply_names_the_prompt(self):
        with patch(_PATCH_CLIENT, return_value=_client_returning("")):
            with pytest.raises(LLMError, match="could not generate a table from your prompt"):
                create_table_with_llm("largest countries")

    def test_missing_key(self):
        with patch("aitable.config.GROQ_API_KEY", ""):
            with pytest.raises(LLMError, match="GROQ_API_KEY not set"):
                create_table_with_llm("largest countries")
