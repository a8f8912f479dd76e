import logging
from typing import List, Optional

import groq
from groq import Groq

from aitable import config, files
from aitable.normalizer import NormalizationError, split_parsing_notes
from aitable.schemas import CreateTableResponse, ParseFileResponse

logger = logging.getLogger(__name__)


class LLMError(RuntimeError):
    """The model call failed or came back empty."""


PARSE_SYSTEM_PROMPT = """
You are an expert data parser, skilled at extracting tabular data from various file formats, maintaining the exact structure of the source file.

You will receive the contents of a file, its file type, and optionally a delimiter.

### Instructions
1. Process the entire document, including all pages and sheets.
2. Maintain the exact structure of the source. Do NOT alter, add, or remove any rows or columns.
3. The keys of every row object must match the headers in the source file exactly.
4. Some rows are a "zone" or section heading: they have a value in only one or two columns and are otherwise empty.
   Preserve each one as its own object whose only key is "zone", e.g. { "zone": "ZONE 1 CIVIL WORKS" }.
5. Every other row is a data row: an object whose keys are the column headers and whose values are the cell contents.

### Output
Return the table as a JSON array of objects inside a single ```json fenced block.
After the block, write a few short notes on the parsing process: issues you met and how you handled them.
"""

CREATE_SYSTEM_PROMPT = """
You are an expert table generator. Based on the user's prompt, which could be a description or raw, messy data
(like a copy-paste from a PDF or Excel sheet), create a table.

It is critical that you return the data as a JSON array of objects. Each object is a row and its keys are the column headers.
Do not include any explanatory text in your response, only the JSON data.
"""

_client: Optional[Groq] = None


def get_client() -> Groq:
    global _client
    if _client is None:
        _client = Groq(api_key=config.GROQ_API_KEY)
    return _client


def _content_of(completion) -> str:
    """Pull the assistant text out of whichever response shape the SDK returned."""
    out_text = ""
    if getattr(completion, "choices", None):
        first = completion.choices[0]
        # new shape: .message.content
        if getattr(first, "message", None) is not None and getattr(first.message, "content", None):
            out_text = first.message.content
        # older shape: .text
        elif getattr(first, "text", None):
            out_text = first.text
        elif getattr(first, "delta", None) is not None and getattr(first.delta, "content", None):
            out_text = first.delta.content
    return out_text or ""


def _complete(messages: List[dict], empty_message: str) -> str:
    if not config.GROQ_API_KEY:
        raise LLMError("GROQ_API_KEY not set in environment. Set your Groq API key and restart the server.")

    try:
        completion = get_client().chat.completions.create(
            model=config.MODEL_NAME,
            messages=messages,
            temperature=config.TEMPERATURE,
            max_completion_tokens=config.MAX_TOKENS,
            top_p=1,
            stream=False,
        )
    except groq.AuthenticationError as e:
        logger.exception("Groq rejected the API key")
        raise LLMError("Invalid GROQ_API_KEY (authentication failed). Check your key.") from e
    except groq.RateLimitError as e:
        logger.exception("Groq quota exceeded")
        raise LLMError(f"Model quota exceeded: {e}") from e
    except groq.APIError as e:
        logger.exception("Exception calling Groq")
        raise LLMError(f"Error calling LLM: {e}") from e
    except groq.GroqError as e:
        # client construction and configuration problems
        logger.exception("Groq client could not be used")
        raise LLMError(f"Error calling LLM: {e}") from e

    content = _content_of(completion)
    if not content.strip():
        raise LLMError(empty_message)
    return content


def parse_file_with_llm(file_data_uri: str, file_type: str, delimiter: Optional[str] = None) -> ParseFileResponse:
    """
    Ask the model to turn an uploaded file (as a data URI) into JSON rows.

    ``parsed_data`` is the model's raw reply, fence and all. ``parsing_notes`` is
    the prose the model wrote around the JSON, when it can be told apart.
    """
    mime_type, content = files.from_data_uri(file_data_uri)
    text = files.extract_text(mime_type, content, delimiter)

    user_prompt = (
        f"File Type: {file_type}\n"
        f"Delimiter (if applicable): {delimiter or ''}\n\n"
        f"Here is the file data:\n```\n{text}\n```"
    )
    raw = _complete([
        {"role": "system", "content": PARSE_SYSTEM_PROMPT},
        {"role": "user", "content": user_prompt},
    ], "The AI could not parse any data from the file.")

    try:
        _, notes = split_parsing_notes(raw)
    except NormalizationError:
        notes = ""
    return ParseFileResponse(parsed_data=raw, parsing_notes=notes)


def create_table_with_llm(prompt: str) -> CreateTableResponse:
    raw = _complete([
        {"role": "system", "content": CREATE_SYSTEM_PROMPT},
        {"role": "user", "content": f"Prompt: {prompt}"},
    ], "The AI could not generate a table from your prompt.")
    return CreateTableResponse(table_data=raw)
