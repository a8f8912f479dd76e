"""Shared test configuration and fixtures."""

import os

# The Groq client is always mocked in tests; a placeholder key keeps the SDK quiet.
os.environ.setdefault("GROQ_API_KEY", "test-key")
