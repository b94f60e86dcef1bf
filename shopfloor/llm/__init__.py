"""LLM backend clients for shopfloor content generation."""

import logging
import os
from typing import Literal

from .base import LLMClient, LLMResponse, Message
from .lmstudio import LMStudioClient

logger = logging.getLogger(__name__)

__all__ = [
    "LLMClient",
    "LLMResponse",
    "Message",
    "LMStudioClient",
    "MockLLMClient",
    "BackendType",
    "create_llm_client",
]


# -----------------------------------------------------------------------------
# Mock Client for Testing
# -----------------------------------------------------------------------------

class MockLLMClient(LLMClient):
    """
    Mock LLM client for testing.

    Allows configuring responses without actual API calls. An Exception
    instance in `responses` is raised instead of returned.
    """

    def __init__(
        self,
        responses: list[str | Exception] | None = None,
        model_name: str = "mock-model",
    ):
        """
        Initialize mock client.

        Args:
            responses: List of responses to return in order.
                       Cycles through if more calls than responses.
            model_name: Name to report as model_name property.
        """
        self._responses = responses or ["Mock response"]
        self._call_count = 0
        self._model_name = model_name
        self.calls: list[dict] = []  # Record of all calls made

    @property
    def model_name(self) -> str:
        return self._model_name

    def chat(
        self,
        messages: list[Message],
        system: str | None = None,
        temperature: float = 0.7,
        max_tokens: int = 2048,
        json_mode: bool = False,
    ) -> LLMResponse:
        """Return next mock response."""
        self.calls.append({
            "method": "chat",
            "messages": messages,
            "system": system,
            "json_mode": json_mode,
        })
        response = self._responses[self._call_count % len(self._responses)]
        self._call_count += 1
        if isinstance(response, Exception):
            raise response
        return LLMResponse(content=response)

    def set_responses(self, responses: list[str | Exception]) -> None:
        """Update the list of responses."""
        self._responses = responses
        self._call_count = 0

    def reset(self) -> None:
        """Reset call count and recorded calls."""
        self._call_count = 0
        self.calls.clear()


# -----------------------------------------------------------------------------
# Backend Factory
# -----------------------------------------------------------------------------

BackendType = Literal["lmstudio", "offline", "auto"]


def create_llm_client(
    backend: BackendType = "auto",
    lmstudio_url: str = "http://127.0.0.1:1234/v1",
    model: str | None = None,
) -> tuple[str, LLMClient | None]:
    """
    Create an LLM client for the specified backend.

    Args:
        backend: Backend to use ("auto" checks LM Studio, "offline" uses none)
        lmstudio_url: URL for the OpenAI-compatible server
        model: Model name, or None for whatever the server has loaded

    Returns:
        Tuple of (backend_name, client). Client is None when content
        should come from the offline set.
    """
    lmstudio_url = os.environ.get("LMSTUDIO_BASE_URL", lmstudio_url)

    if backend == "offline":
        return ("offline", None)

    client = LMStudioClient(base_url=lmstudio_url, model=model)
    if client.is_available():
        return ("lmstudio", client)

    if backend == "lmstudio":
        logger.warning(f"LM Studio not reachable at {lmstudio_url}")
        return ("lmstudio", None)

    return ("offline", None)
