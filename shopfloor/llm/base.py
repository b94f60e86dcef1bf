"""
Base LLM client abstraction.

Defines the interface that all chat backends must implement. Content
generation and evaluation prompts are built on top of it in
`shopfloor.content`.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Literal


@dataclass
class Message:
    """A message in the conversation."""
    role: Literal["system", "user", "assistant"]
    content: str


@dataclass
class LLMResponse:
    """Response from the LLM."""
    content: str
    finish_reason: str = "stop"


class LLMClient(ABC):
    """
    Abstract base class for LLM backends.

    All backends must implement:
    - chat(): Send messages and get a response
    - model_name: The model identifier
    """

    @property
    @abstractmethod
    def model_name(self) -> str:
        """The model identifier."""
        pass

    @abstractmethod
    def chat(
        self,
        messages: list[Message],
        system: str | None = None,
        temperature: float = 0.7,
        max_tokens: int = 2048,
        json_mode: bool = False,
    ) -> LLMResponse:
        """
        Send a chat completion request.

        Args:
            messages: Conversation history
            system: System prompt
            temperature: Sampling temperature
            max_tokens: Maximum response tokens
            json_mode: Ask the backend for a JSON object response

        Returns:
            LLMResponse with the generated content
        """
        pass

    def is_available(self) -> bool:
        """Whether the backend can currently serve requests."""
        return True
