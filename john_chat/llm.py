"""Generator client — HTTP connection to the persona's text-generation backend.

The controller injects a generator callable matching the protocol:

    async def __call__(self, turns: list[Turn], system_prompt: str) -> str: ...

`turns` is the windowed history, oldest first. The reply is returned raw,
status tag and all; parsing happens in the controller.

Two implementations are provided:

    HttpGenerator — real HTTP client, supports KoboldCpp raw completion and
                    OpenAI-compatible chat completion. Selected by
                    provider_format.
    EchoGenerator — returns the last user turn back unchanged. Useful for
                    exercising the app without a running model.

Production code builds one with make_generator(config). Tests use
StubGenerator (see conftest.py) instead.
"""

from __future__ import annotations

import logging
from typing import Any, Literal, Protocol

import httpx

from john_chat.models import Turn
from john_chat.prompts import build_completion_prompt

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Protocol — every generator must match this signature
# ---------------------------------------------------------------------------

class Generator(Protocol):
    async def __call__(self, turns: list[Turn], system_prompt: str) -> str: ...


# ---------------------------------------------------------------------------
# HttpGenerator — connects to a real backend
# ---------------------------------------------------------------------------

ProviderFormat = Literal["koboldcpp", "openai", "echo"]

DEFAULT_STOP_SEQUENCE = ["You:", "\nYou ", "User:", "\nUser "]


class HttpGenerator:
    """Async HTTP client for the generation backend.

    Supported formats:
      "koboldcpp"  — POST /api/v1/generate  {"prompt": ..., <sampler settings>}
                     Response: {"results": [{"text": "..."}]}
      "openai"     — POST /v1/chat/completions  {"messages": [...], "model": ...}
                     Response: {"choices": [{"message": {"content": "..."}}]}

    Args:
        provider_url:    Base URL of the backend, e.g. "http://localhost:5001".
        api_key:         Bearer token, or empty string if not required.
        provider_format: Wire format to use. Defaults to "koboldcpp".
        model:           Model identifier, used only by the openai format.
        timeout:         HTTP timeout in seconds. Defaults to 30.
        generation:      Sampler settings (max_length, temperature, ...,
                         stop_sequence). KoboldCpp receives them verbatim;
                         the openai format maps the common ones.
        user_label:      Speaker label for user turns in the flat prompt.
        persona_label:   Speaker label for the persona in the flat prompt.
    """

    def __init__(
        self,
        provider_url: str,
        api_key: str = "",
        provider_format: ProviderFormat = "koboldcpp",
        model: str = "",
        timeout: float = 30.0,
        generation: dict[str, Any] | None = None,
        user_label: str = "You",
        persona_label: str = "John",
    ) -> None:
        self._base_url = provider_url.rstrip("/")
        self._api_key = api_key
        self._format = provider_format
        self._model = model
        self._timeout = timeout
        self._generation = dict(generation or {})
        self._user_label = user_label
        self._persona_label = persona_label

    def _headers(self) -> dict[str, str]:
        headers: dict[str, str] = {"Content-Type": "application/json"}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"
        return headers

    def _stop_sequence(self) -> list[str]:
        return list(self._generation.get("stop_sequence", DEFAULT_STOP_SEQUENCE))

    def _build_request(self, turns: list[Turn], system_prompt: str) -> tuple[str, dict]:
        """Return (url, body) for the configured format."""
        if self._format == "openai":
            url = f"{self._base_url}/v1/chat/completions"
            messages = [{"role": "system", "content": system_prompt}]
            messages.extend({"role": t.role, "content": t.content} for t in turns)
            body: dict = {"messages": messages, "stop": self._stop_sequence()}
            if self._model:
                body["model"] = self._model
            if "max_length" in self._generation:
                body["max_tokens"] = self._generation["max_length"]
            for key in ("temperature", "top_p"):
                if key in self._generation:
                    body[key] = self._generation[key]
            return url, body

        # koboldcpp (default)
        url = f"{self._base_url}/api/v1/generate"
        body = {k: v for k, v in self._generation.items() if k != "stop_sequence"}
        body["prompt"] = build_completion_prompt(
            system_prompt, turns, self._user_label, self._persona_label,
        )
        body["stop_sequence"] = self._stop_sequence()
        return url, body

    def _parse_response(self, data: Any) -> str:
        """Extract the reply text from the response body."""
        if not isinstance(data, dict):
            raise CollaboratorUnavailable("Unexpected response format from generation backend")

        if self._format == "openai":
            choices = data.get("choices")
            try:
                text = choices[0]["message"]["content"]
            except (TypeError, IndexError, KeyError):
                text = None
            if not isinstance(text, str) or not text:
                raise CollaboratorUnavailable(
                    "Unexpected response format from OpenAI-compatible backend"
                )
            return text

        # koboldcpp
        results = data.get("results")
        try:
            text = results[0]["text"]
        except (TypeError, IndexError, KeyError):
            text = None
        if not isinstance(text, str) or not text:
            raise CollaboratorUnavailable("Unexpected response format from KoboldCpp backend")
        return text

    async def __call__(self, turns: list[Turn], system_prompt: str) -> str:
        url, body = self._build_request(turns, system_prompt)
        logger.debug("generate url=%s turns=%d format=%s", url, len(turns), self._format)

        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                resp = await client.post(url, json=body, headers=self._headers())
                resp.raise_for_status()
        except httpx.ConnectError as e:
            raise CollaboratorUnavailable(
                f"Cannot connect to generation backend at {self._base_url}"
            ) from e
        except httpx.HTTPStatusError as e:
            raise CollaboratorUnavailable(
                f"Generation backend returned HTTP {e.response.status_code}"
            ) from e
        except httpx.TimeoutException as e:
            raise CollaboratorUnavailable(
                f"Generation backend timed out after {self._timeout}s"
            ) from e
        except httpx.HTTPError as e:
            raise CollaboratorUnavailable(f"Generation request failed: {e}") from e

        try:
            data = resp.json()
        except ValueError as e:
            raise CollaboratorUnavailable("Generation backend returned a non-JSON body") from e

        text = self._parse_response(data)
        logger.debug("generate response len=%d", len(text))
        return text


# ---------------------------------------------------------------------------
# EchoGenerator — echoes the user; no network calls
# ---------------------------------------------------------------------------

class EchoGenerator:
    """Returns the most recent user turn as-is. No network calls.

    Lets you drive the whole controller and API without a running model.
    There is no status tag in the reply, so the status panel stays put.
    """

    async def __call__(self, turns: list[Turn], system_prompt: str) -> str:
        logger.debug("EchoGenerator turns=%d", len(turns))
        for turn in reversed(turns):
            if turn.role == "user":
                return turn.content
        return ""


def make_generator(config: dict[str, Any]) -> Generator:
    """Build the generator selected by config["llm_connection"]["provider_format"]."""
    conn = config["llm_connection"]
    persona = config.get("persona", {})
    if conn.get("provider_format") == "echo":
        return EchoGenerator()
    return HttpGenerator(
        provider_url=conn["provider_url"],
        api_key=conn.get("api_key", ""),
        provider_format=conn.get("provider_format", "koboldcpp"),
        model=conn.get("model", ""),
        timeout=float(conn.get("timeout", 30)),
        generation=config.get("generation"),
        user_label=persona.get("user_label", "You"),
        persona_label=persona.get("name", "John"),
    )


# ---------------------------------------------------------------------------
# CollaboratorUnavailable — raised for all connection and protocol failures
# ---------------------------------------------------------------------------

class CollaboratorUnavailable(RuntimeError):
    """Raised when the generation backend cannot be reached or returns an error."""
