"""Status model: the record behind the avatar's side panel.

Two ways to change it:

    apply_partial   — merge whatever keys a generated payload carries.
                      Missing or null keys leave the field alone.
    import_replace  — swap in a whole record (session restore). Missing
                      fields fall back to the session defaults.

Generated payloads are not validated: a string where a number belongs is
stored as-is unless clamping is switched on.
"""

from __future__ import annotations

import logging
from typing import Any

from john_chat.models import (
    STRING_FIELDS,
    VITAL_FIELDS,
    StatusRecord,
    normalize_emotion,
)

logger = logging.getLogger(__name__)

VITAL_MIN = 0
VITAL_MAX = 100


class StatusModel:
    """Owns the current StatusRecord for one conversation.

    Args:
        clamp_vitals: Clamp energy/happiness/social into 0–100 and drop
                      non-numeric values for them. Off by default so that
                      generated values are kept exactly as received.
    """

    def __init__(self, clamp_vitals: bool = False) -> None:
        self._record = StatusRecord()
        self.clamp_vitals = clamp_vitals

    @property
    def record(self) -> StatusRecord:
        return self._record

    def snapshot(self) -> StatusRecord:
        return self._record.model_copy()

    def apply_partial(self, payload: dict[str, Any]) -> StatusRecord:
        """Merge a partial status payload and return the full record.

        The "emotion" key is skipped; emotion follows the parse result and
        is set through set_emotion().
        """
        updates: dict[str, Any] = {}
        for key in STRING_FIELDS:
            if payload.get(key) is not None:
                updates[key] = payload[key]
        for key in VITAL_FIELDS:
            if payload.get(key) is None:
                continue
            value = payload[key]
            if self.clamp_vitals:
                value = self._clamp(key, value)
                if value is None:
                    continue
            updates[key] = value

        if updates:
            # model_copy(update=...) skips validation on purpose
            self._record = self._record.model_copy(update=updates)
            logger.debug("status merged keys=%s", sorted(updates))
        return self._record

    def import_replace(self, record: dict[str, Any] | StatusRecord) -> StatusRecord:
        """Replace the whole record. Raises pydantic.ValidationError on bad input."""
        if isinstance(record, StatusRecord):
            new = record.model_copy()
        else:
            new = StatusRecord.model_validate(record)
        if self.clamp_vitals:
            clamped = {k: self._clamp(k, getattr(new, k)) for k in VITAL_FIELDS}
            new = new.model_copy(update={k: v for k, v in clamped.items() if v is not None})
        self._record = new
        return self._record

    def set_emotion(self, emotion: str) -> str:
        normalized = normalize_emotion(emotion)
        self._record = self._record.model_copy(update={"emotion": normalized})
        return normalized

    def reset(self) -> StatusRecord:
        self._record = StatusRecord()
        return self._record

    @staticmethod
    def _clamp(key: str, value: Any) -> float | int | None:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            try:
                value = float(value)
            except (TypeError, ValueError):
                logger.warning("Dropping non-numeric %s value %r", key, value)
                return None
        return max(VITAL_MIN, min(VITAL_MAX, value))
