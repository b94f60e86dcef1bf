"""
LM Studio client.

LM Studio exposes an OpenAI-compatible API at localhost:1234. Any other
OpenAI-compatible server (Ollama's /v1, llama.cpp server) works the same
way when pointed at with LMSTUDIO_BASE_URL.
"""

import json
import logging
import os
import time
import urllib.error
import urllib.request

from .base import LLMClient, LLMResponse, Message

logger = logging.getLogger(__name__)


class LMStudioClient(LLMClient):
    """
    Client for LM Studio's local API.

    Default: http://127.0.0.1:1234/v1
    """

    def __init__(
        self,
        base_url: str = "http://127.0.0.1:1234/v1",
        model: str | None = None,
        timeout: int = 120,
        api_key: str | None = None,
    ):
        """
        Initialize LM Studio client.

        Args:
            base_url: LM Studio API base URL
            model: Model name (or None to use whatever's loaded)
            timeout: Request timeout in seconds
            api_key: Bearer token, for servers that require one
        """
        self.base_url = base_url.rstrip("/")
        self._model = model
        self.timeout = timeout
        self._api_key = api_key

    def _make_headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        api_key = self._api_key or os.environ.get("LMSTUDIO_API_KEY")
        if api_key:
            headers["Authorization"] = f"Bearer {api_key}"
        return headers

    @property
    def model_name(self) -> str:
        if self._model:
            return self._model
        # Try to get loaded model from server
        try:
            models = self._get_models()
            if models:
                return models[0]
        except (ConnectionError, RuntimeError):
            pass
        return "local-model"

    def _get_models(self) -> list[str]:
        """Get list of available models."""
        response = self._make_request("models", method="GET")
        data = response.get("data", []) if isinstance(response, dict) else []
        return [
            item["id"] for item in data
            if isinstance(item, dict) and isinstance(item.get("id"), str) and item["id"]
        ]

    def _extract_error_message(self, response: object) -> str:
        if not isinstance(response, dict):
            return f"Unexpected LM Studio response type: {type(response).__name__}"

        err = response.get("error")
        if isinstance(err, dict):
            msg = err.get("message") or err.get("error") or err.get("detail")
            if isinstance(msg, str) and msg:
                return msg
            return json.dumps(err)
        if isinstance(err, str) and err:
            return err

        return f"Unexpected LM Studio response (missing 'choices'): keys={list(response.keys())}"

    def _make_request(
        self,
        endpoint: str,
        data: dict | None = None,
        method: str = "POST",
    ) -> dict:
        """Make HTTP request to LM Studio API."""
        url = f"{self.base_url}/{endpoint}"
        req = urllib.request.Request(
            url,
            data=json.dumps(data).encode("utf-8") if data else None,
            headers=self._make_headers(),
            method=method,
        )

        # LM Studio can briefly refuse connections when the server (re)starts.
        attempts = 4
        for attempt in range(1, attempts + 1):
            try:
                with urllib.request.urlopen(req, timeout=self.timeout) as resp:
                    return json.loads(resp.read().decode("utf-8"))
            except urllib.error.HTTPError as e:
                raise RuntimeError(f"LM Studio returned HTTP {e.code} for {endpoint}") from e
            except urllib.error.URLError as e:
                if attempt < attempts:
                    time.sleep(min(0.25 * (2 ** (attempt - 1)), 1.5))
                    continue
                raise ConnectionError(
                    f"Cannot connect to LM Studio at {self.base_url}. "
                    f"Make sure LM Studio is running with a model loaded. "
                    f"Error: {getattr(e, 'reason', e)}"
                ) from e
            except json.JSONDecodeError as e:
                raise RuntimeError(f"LM Studio returned invalid JSON for {endpoint}") from e

        raise ConnectionError(f"Cannot connect to LM Studio at {self.base_url}")

    def chat(
        self,
        messages: list[Message],
        system: str | None = None,
        temperature: float = 0.7,
        max_tokens: int = 2048,
        json_mode: bool = False,
    ) -> LLMResponse:
        """Send chat completion request."""
        api_messages = []
        if system:
            api_messages.append({"role": "system", "content": system})
        api_messages.extend({"role": m.role, "content": m.content} for m in messages)

        request_data = {
            "model": self.model_name,
            "messages": api_messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
            "stream": False,
        }
        if json_mode:
            request_data["response_format"] = {"type": "json_object"}

        response = self._make_request("chat/completions", request_data)

        if not isinstance(response, dict) or "choices" not in response:
            raise RuntimeError(self._extract_error_message(response))

        choices = response["choices"]
        if not isinstance(choices, list) or not choices:
            raise RuntimeError("LM Studio returned no choices")
        choice = choices[0]
        message = choice.get("message") if isinstance(choice, dict) else None
        if not isinstance(message, dict) or not isinstance(message.get("content"), str):
            raise RuntimeError("LM Studio returned a choice without message content")
        return LLMResponse(
            content=message["content"],
            finish_reason=choice.get("finish_reason", "stop"),
        )

    def is_available(self, timeout: float = 1.0) -> bool:
        """Check if LM Studio is running and has a model loaded.

        Uses a short timeout for fast availability detection during startup.
        """
        url = f"{self.base_url}/models"
        req = urllib.request.Request(url, headers=self._make_headers())
        try:
            with urllib.request.urlopen(req, timeout=timeout) as resp:
                data = json.loads(resp.read().decode("utf-8"))
                models = data.get("data", [])
                return isinstance(models, list) and len(models) > 0
        except (OSError, ValueError):
            return False

    def set_model(self, model: str) -> None:
        """Set the model to use for requests."""
        self._model = model
