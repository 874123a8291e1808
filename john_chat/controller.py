"""Conversation controller — runs one chat exchange end-to-end.

Exchange flow for submit(text):
  1. Reject if a reply is still pending (one request at a time).
  2. Pasted transcript? Decode it, replace the history, re-render, done.
  3. Append the user turn, render it, show the typing indicator, emotion
     "thinking".
  4. Call the generator with the last `window_size` turns and the system
     prompt, bounded by `timeout`.
  5. Parse the reply: apply the status partial, store the raw reply as an
     assistant turn, render the display text, set the reply's emotion.
  6. On any generator failure: hide the typing indicator, render a system
     error message (not stored in history), emotion "sad".

States: idle → sending → processing → idle, or sending → error → idle.

Every change the presentation layer needs is emitted as an event. Listeners
registered with subscribe() see events as they happen; each public
operation also returns the events it emitted.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from datetime import datetime
from typing import Any, Literal

from john_chat import expressions
from john_chat.history import HistoryStore
from john_chat.llm import CollaboratorUnavailable, Generator, make_generator
from john_chat.models import (
    Cleared,
    DisplayMessage,
    EmotionChanged,
    Event,
    ImportFailure,
    MessageEdited,
    MessageReady,
    PendingChanged,
    StatusChanged,
    StatusRecord,
    TranscriptReplaced,
    Turn,
)
from john_chat.parser import parse_response
from john_chat.prompts import build_greeting, build_system_prompt
from john_chat.status import StatusModel
from john_chat.transcript import TranscriptCodec

logger = logging.getLogger(__name__)

State = Literal["idle", "sending", "processing", "error"]

DEFAULT_TIMEOUT = 30.0
DEFAULT_PERSONA = {"name": "John", "full_name": "John Timbles", "user_label": "You"}

Listener = Callable[[Event], None]


class ConversationBusy(RuntimeError):
    """Raised when a message is submitted while a reply is still pending."""


class ConversationController:
    """Owns one conversation: history, status, rendered transcript.

    Args:
        generator:     Async callable producing the persona's raw reply.
        status:        Status model; a fresh one by default.
        history:       Turn log; a fresh one (window 10) by default.
        codec:         Transcript codec used for paste import and export.
        system_prompt: Fixed instruction sent with every request.
        greeting:      Instruction used by greet(); never stored.
        timeout:       Seconds to wait for a reply before giving up.
    """

    def __init__(
        self,
        generator: Generator,
        *,
        status: StatusModel | None = None,
        history: HistoryStore | None = None,
        codec: TranscriptCodec | None = None,
        system_prompt: str | None = None,
        greeting: str | None = None,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self.generator = generator
        self.status = status if status is not None else StatusModel()
        self.history = history if history is not None else HistoryStore()
        self.codec = codec if codec is not None else TranscriptCodec()
        self.system_prompt = system_prompt if system_prompt is not None else build_system_prompt(DEFAULT_PERSONA)
        self.greeting = greeting if greeting is not None else build_greeting(DEFAULT_PERSONA)
        self.timeout = timeout
        self.state: State = "idle"
        self.transcript: list[DisplayMessage] = []
        self._listeners: list[Listener] = []
        self._emitted: list[Event] = []

    @classmethod
    def from_config(
        cls, config: dict[str, Any], generator: Generator | None = None
    ) -> ConversationController:
        if generator is None:
            generator = make_generator(config)
        controller = cls(generator)
        controller.apply_config(config, generator=generator)
        return controller

    def apply_config(self, config: dict[str, Any], generator: Generator | None = None) -> None:
        """Rebuild generator, prompts and limits from config; keeps the conversation.

        Everything is built before anything is swapped in, so a bad value
        (ValueError / TypeError) leaves the controller unchanged.
        """
        self._check_idle()
        persona = config["persona"]
        if generator is None:
            generator = make_generator(config)
        window_size = int(config["history_window"])
        if window_size < 1:
            raise ValueError(f"history_window must be at least 1, got {window_size}")
        timeout = float(config["llm_connection"]["timeout"])
        if timeout <= 0:
            raise ValueError(f"timeout must be positive, got {timeout:g}")
        codec = TranscriptCodec(
            user_label=persona["user_label"], persona_label=persona["name"],
        )
        system_prompt = build_system_prompt(persona)
        greeting = build_greeting(persona)

        self.generator = generator
        self.status.clamp_vitals = bool(config["clamp_vitals"])
        self.history.window_size = window_size
        self.codec = codec
        self.system_prompt = system_prompt
        self.greeting = greeting
        self.timeout = timeout

    @property
    def busy(self) -> bool:
        return self.state in ("sending", "processing")

    def subscribe(self, listener: Listener) -> None:
        self._listeners.append(listener)

    # ------------------------------------------------------------------
    # Chat
    # ------------------------------------------------------------------

    async def submit(self, text: str) -> list[Event]:
        """Handle one line of user input (chat message or pasted transcript)."""
        self._check_idle()
        self._emitted = []
        text = text.strip()
        if not text:
            return []

        if self.codec.sniff(text):
            result = self._import(text)
            if not isinstance(result, ImportFailure):
                return self._drain()
            logger.info("Input looked like a transcript but is not (%s); sending as chat", result.reason)

        self.history.append(Turn(role="user", content=text))
        self._render("user", text)
        await self._exchange(self.history.window())
        return self._drain()

    async def greet(self) -> list[Event]:
        """Ask the persona to introduce itself; checks the backend is reachable.

        The instruction turn is not stored, only the reply is.
        """
        self._check_idle()
        self._emitted = []
        await self._exchange([Turn(role="user", content=self.greeting)], failure_label="Connection error")
        return self._drain()

    async def _exchange(self, turns: list[Turn], failure_label: str = "Error") -> None:
        self.state = "sending"
        self._emit(PendingChanged(pending=True))
        self._set_emotion("thinking")
        try:
            try:
                raw = await asyncio.wait_for(
                    self.generator(turns, self.system_prompt), self.timeout,
                )
            except asyncio.TimeoutError:
                self._fail(failure_label, f"No reply after {self.timeout:g}s")
                return
            except CollaboratorUnavailable as e:
                self._fail(failure_label, str(e))
                return
            except Exception as e:
                logger.exception("Generator raised unexpectedly")
                self._fail(failure_label, str(e) or type(e).__name__)
                return

            self.state = "processing"
            self._process(raw)
        finally:
            self.state = "idle"

    def _process(self, raw: str) -> None:
        result = parse_response(raw)
        if result.status_partial is not None:
            self.status.apply_partial(result.status_partial)

        self.history.append(Turn(role="assistant", content=raw))
        self._emit(PendingChanged(pending=False))
        self._render("john", result.display_text)
        self._set_emotion(result.emotion)
        self._emit(StatusChanged(status=self.status.snapshot()))

    def _fail(self, label: str, reason: str) -> None:
        self.state = "error"
        logger.warning("%s: %s", label, reason)
        self._emit(PendingChanged(pending=False))
        self._render("system", f"[{label}: {reason}]", is_error=True)
        self._set_emotion("sad")

    # ------------------------------------------------------------------
    # Transcript import / export
    # ------------------------------------------------------------------

    def import_transcript(self, text: str) -> list[Turn] | ImportFailure:
        """Replace the conversation with a pasted transcript.

        Returns the imported turns, or ImportFailure (nothing changed).
        """
        self._check_idle()
        self._emitted = []
        return self._import(text)

    def _import(self, text: str) -> list[Turn] | ImportFailure:
        result = self.codec.decode(text)
        if isinstance(result, ImportFailure):
            return result

        self.history.replace_all(result)
        self.transcript = [
            self._message("user" if t.role == "user" else "john", self.codec.display_text(t))
            for t in result
        ]
        self._emit(TranscriptReplaced(messages=list(self.transcript)))
        self._set_emotion("default")
        logger.info("Imported transcript turns=%d", len(result))
        return result

    def export_transcript(self) -> str:
        return self.codec.encode(self.history.snapshot())

    # ------------------------------------------------------------------
    # Session state
    # ------------------------------------------------------------------

    def clear(self) -> list[Event]:
        """Forget the conversation. Status vitals are kept."""
        self._check_idle()
        self._emitted = []
        self.history.clear()
        self.transcript = []
        self._emit(Cleared())
        self._set_emotion("default")
        return self._drain()

    def edit_message(self, index: int, text: str) -> list[Event]:
        """Replace the displayed text of one of John's messages.

        Only the rendered bubble changes; the stored turn (and so what the
        generator sees and what export produces) keeps the original reply.
        Raises IndexError for a bad index, ValueError for a non-John message.
        """
        self._check_idle()
        self._emitted = []
        if index < 0 or index >= len(self.transcript):
            raise IndexError(f"Message index {index} out of range")
        msg = self.transcript[index]
        if msg.sender != "john":
            raise ValueError("Only John's messages can be edited")
        edited = msg.model_copy(update={"text": text.strip()})
        self.transcript[index] = edited
        self._emit(MessageEdited(index=index, message=edited))
        return self._drain()

    def restore_status(self, record: dict[str, Any] | StatusRecord) -> list[Event]:
        """Replace the whole status record (pydantic.ValidationError on bad input)."""
        self._check_idle()
        self._emitted = []
        new = self.status.import_replace(record)
        self._emit(EmotionChanged(expression=expressions.describe(new.emotion)))
        self._emit(StatusChanged(status=self.status.snapshot()))
        return self._drain()

    def reset_status(self) -> list[Event]:
        """Put the status panel back to the session defaults. History is kept."""
        self._check_idle()
        self._emitted = []
        new = self.status.reset()
        self._emit(EmotionChanged(expression=expressions.describe(new.emotion)))
        self._emit(StatusChanged(status=self.status.snapshot()))
        return self._drain()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _check_idle(self) -> None:
        if self.busy:
            raise ConversationBusy("Still waiting for the previous reply")

    def _emit(self, event: Event) -> None:
        self._emitted.append(event)
        for listener in self._listeners:
            listener(event)

    def _drain(self) -> list[Event]:
        events, self._emitted = self._emitted, []
        return events

    @staticmethod
    def _message(sender: str, text: str, is_error: bool = False) -> DisplayMessage:
        return DisplayMessage(
            sender=sender, text=text,
            timestamp=datetime.now().strftime("%H:%M"),
            is_error=is_error,
        )

    def _render(self, sender: str, text: str, is_error: bool = False) -> DisplayMessage:
        msg = self._message(sender, text, is_error)
        self.transcript.append(msg)
        self._emit(MessageReady(message=msg))
        return msg

    def _set_emotion(self, emotion: str) -> None:
        normalized = self.status.set_emotion(emotion)
        self._emit(EmotionChanged(expression=expressions.describe(normalized)))
