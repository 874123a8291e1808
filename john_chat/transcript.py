"""Transcript import/export for copy and paste.

Import accepts three shapes, tried in order:

  labeled    — "You: hi\\n\\nJohn: hello" (blocks separated by blank lines;
               a label opens a turn, unlabeled blocks continue it)
  structured — JSON array of {"role": "user"|"assistant", "content": "..."}
  loose      — any text where lines contain a label somewhere; each label
               line opens a new turn and following lines belong to it

Export always produces the labeled form with status tags removed.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any

from john_chat.models import ImportFailure, Turn
from john_chat.parser import strip_tags

logger = logging.getLogger(__name__)

_BLOCK_SPLIT_RE = re.compile(r"(\n\s*\n)")


class TranscriptCodec:
    """Encode/decode chat transcripts using the given speaker labels."""

    def __init__(self, user_label: str = "You", persona_label: str = "John") -> None:
        self.user_marker = f"{user_label}:"
        self.persona_marker = f"{persona_label}:"

    def _roles(self) -> dict[str, str]:
        return {self.user_marker: "user", self.persona_marker: "assistant"}

    def _has_marker(self, text: str) -> bool:
        return self.user_marker in text or self.persona_marker in text

    # ------------------------------------------------------------------
    # Detection
    # ------------------------------------------------------------------

    def sniff(self, text: str) -> bool:
        """Cheap check used to decide whether pasted text may be a transcript."""
        stripped = text.strip()
        if self._has_marker(stripped):
            return True
        return stripped.startswith(("[", "{")) and '"role"' in stripped

    # ------------------------------------------------------------------
    # Decoding
    # ------------------------------------------------------------------

    def decode(self, text: str) -> list[Turn] | ImportFailure:
        """Decode a pasted transcript. Never raises."""
        text = text.replace("\r\n", "\n").strip()
        if not text:
            return ImportFailure(reason="Empty text")

        if self._has_marker(text):
            turns = self._decode_labeled(text)
            if turns:
                logger.debug("decoded labeled transcript turns=%d", len(turns))
                return turns

        turns = self._decode_structured(text)
        if turns:
            logger.debug("decoded structured transcript turns=%d", len(turns))
            return turns

        if self._has_marker(text):
            turns = self._decode_loose(text)
            if turns:
                logger.debug("decoded loose transcript turns=%d", len(turns))
                return turns

        return ImportFailure(reason="Text is not a chat transcript")

    def _decode_labeled(self, text: str) -> list[Turn] | None:
        """Blank-line separated blocks, each turn starting with a label.

        An unlabeled block after a labeled one is a further paragraph of
        that turn; unlabeled blocks before the first label are ignored.
        Returns None when a label shows up anywhere other than the start of
        a block; that text is handled by the loose scan instead.
        """
        turns: list[Turn] = []
        role: str | None = None
        content = ""
        # split() keeps the separators: block, sep, block, sep, ...
        parts = _BLOCK_SPLIT_RE.split(text)
        for i in range(0, len(parts), 2):
            block = parts[i].strip()
            if not block:
                continue
            for marker in self._roles():
                if block.find(marker, 1) != -1:
                    return None
            for marker, block_role in self._roles().items():
                if block.startswith(marker):
                    if role is not None:
                        turns.append(Turn(role=role, content=content.strip()))
                    role, content = block_role, block[len(marker):]
                    break
            else:
                if role is not None:
                    content += parts[i - 1] + block
        if role is not None:
            turns.append(Turn(role=role, content=content.strip()))
        return turns or None

    def _decode_structured(self, text: str) -> list[Turn] | None:
        try:
            data: Any = json.loads(text)
        except (json.JSONDecodeError, RecursionError):
            return None
        if isinstance(data, dict):
            data = [data]
        if not isinstance(data, list) or not data:
            return None
        turns: list[Turn] = []
        for item in data:
            if not isinstance(item, dict):
                return None
            role = item.get("role")
            content = item.get("content")
            if role not in ("user", "assistant") or not isinstance(content, str):
                return None
            # Raw content is kept, tags included; rendering strips them.
            turns.append(Turn(role=role, content=content))
        return turns

    def _decode_loose(self, text: str) -> list[Turn] | None:
        turns: list[Turn] = []
        role: str | None = None
        lines: list[str] = []

        def _flush() -> None:
            content = "\n".join(lines).strip()
            if role and content:
                turns.append(Turn(role=role, content=content))

        for line in text.split("\n"):
            hits = [(line.find(m), m) for m in self._roles() if m in line]
            if hits:
                _flush()
                pos, marker = min(hits)
                role = self._roles()[marker]
                lines = [line[pos + len(marker):].strip()]
            elif role:
                lines.append(line)
        _flush()
        return turns or None

    # ------------------------------------------------------------------
    # Encoding
    # ------------------------------------------------------------------

    def encode(self, turns: list[Turn]) -> str:
        """Labeled transcript, one block per turn, tags stripped."""
        blocks = []
        for turn in turns:
            marker = self.user_marker if turn.role == "user" else self.persona_marker
            blocks.append(f"{marker} {strip_tags(turn.content)}")
        return "\n\n".join(blocks)

    @staticmethod
    def display_text(turn: Turn) -> str:
        return strip_tags(turn.content)
