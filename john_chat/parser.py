"""Reply parsing: split generated text into display text, emotion and status.

Reply format (requested by the system prompt):
  Spoken reply text.
  [STATUS:{"emotion":"happy","location":"Park","energy":75}]

Older prompts asked for a bare emotion tag instead:
  Spoken reply text. [emotion:happy]

The STATUS pattern is non-greedy: it captures from the first "{" to the
first "}" that is directly followed by "]", across line breaks, so
pretty-printed payloads parse. Payloads containing "}]" inside a string
or array are cut short there and fail to parse.
"""

from __future__ import annotations

import json
import logging
import re

from john_chat.models import EMOTIONS, ParseResult, normalize_emotion

logger = logging.getLogger(__name__)

STATUS_RE = re.compile(r"\[STATUS:(\{.*?\})\]", re.DOTALL)
# A tag cut off by the generation length limit; runs to end of text.
TRUNCATED_STATUS_RE = re.compile(r"\[STATUS:[^\]]*$", re.DOTALL)
EMOTION_TAG_RE = re.compile(r"\[emotion:(" + "|".join(EMOTIONS) + r")\]", re.IGNORECASE)
JSON_FENCE_RE = re.compile(r"```json[\s\S]*?```")
FENCE_RE = re.compile(r"```[\s\S]*?```")


def strip_fences(text: str) -> str:
    """Remove fenced code blocks (```json ... ``` and ``` ... ```)."""
    text = JSON_FENCE_RE.sub("", text).strip()
    return FENCE_RE.sub("", text).strip()


def strip_tags(text: str) -> str:
    """Remove every STATUS and legacy emotion tag from text."""
    text = STATUS_RE.sub("", text).strip()
    return EMOTION_TAG_RE.sub("", text).strip()


def parse_response(raw: str) -> ParseResult:
    """Parse one generated reply. Never raises on malformed markup."""
    emotion = "default"
    partial: dict | None = None
    error: str | None = None
    display = raw

    match = STATUS_RE.search(raw)
    if match:
        display = (raw[:match.start()] + raw[match.end():]).strip()
        try:
            data = json.loads(match.group(1))
        except json.JSONDecodeError as e:
            error = f"Status payload is not valid JSON: {e}"
            logger.warning("%s: %r", error, match.group(1))
        else:
            if isinstance(data, dict):
                partial = data
                emotion = normalize_emotion(data.get("emotion", "default"))
            else:
                error = f"Status payload must be an object, got {type(data).__name__}"
                logger.warning(error)
    else:
        truncated = TRUNCATED_STATUS_RE.search(raw)
        if truncated:
            display = raw[:truncated.start()].strip()
            error = "Status tag was not closed"
            logger.warning("%s: %r", error, truncated.group(0))
        legacy = EMOTION_TAG_RE.search(display)
        if legacy:
            emotion = legacy.group(1).lower()
            display = (display[:legacy.start()] + display[legacy.end():]).strip()

    display = strip_fences(display.strip())

    return ParseResult(
        display_text=display,
        emotion=emotion,
        status_partial=partial,
        status_error=error,
    )
