# aitable/config.py
import os
from typing import List, Optional

from dotenv import load_dotenv

load_dotenv()


def _split_list(value: Optional[str]) -> List[str]:
    if not value:
        return []
    return [part.strip() for part in value.split(",") if part.strip()]


GROQ_API_KEY = os.environ.get("GROQ_API_KEY", None)

MODEL_NAME = os.environ.get("AITABLE_MODEL", "llama-3.1-8b-instant")
TEMPERATURE = float(os.environ.get("AITABLE_TEMPERATURE", "0.0"))
MAX_TOKENS = int(os.environ.get("AITABLE_MAX_TOKENS", "4096"))

# When set, every parsed table is forced onto this exact header list.
FIXED_HEADERS: List[str] = _split_list(os.environ.get("AITABLE_FIXED_HEADERS"))

EXPORT_TITLE = os.environ.get("AITABLE_EXPORT_TITLE", "NCSI Action Plan")
EXPORT_BASENAME = os.environ.get("AITABLE_EXPORT_BASENAME", "ncsi-action-plan")

CORS_ORIGINS = _split_list(os.environ.get("AITABLE_CORS_ORIGINS")) or [
    "http://localhost",
    "http://localhost:8501",
    "http://127.0.0.1",
    "http://127.0.0.1:8501",
]

LOG_LEVEL = os.environ.get("AITABLE_LOG_LEVEL", "INFO")

API_BASE = os.environ.get("AITABLE_API_BASE", "http://127.0.0.1:8000/api")
