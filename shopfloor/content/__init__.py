"""Practice content: the provider contract and its implementations."""

from .provider import ContentProvider, ScriptedContentProvider
from .offline import (
    OFFLINE_CUSTOMER_LINES,
    OFFLINE_QUESTIONS,
    OFFLINE_SCENARIO,
    OfflineContentProvider,
)
from .llm_provider import LLMContentProvider, format_transcript
from .parsing import extract_json_text, parse_model

__all__ = [
    "ContentProvider",
    "ScriptedContentProvider",
    "OfflineContentProvider",
    "OFFLINE_CUSTOMER_LINES",
    "OFFLINE_QUESTIONS",
    "OFFLINE_SCENARIO",
    "LLMContentProvider",
    "format_transcript",
    "extract_json_text",
    "parse_model",
]
