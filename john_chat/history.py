"""In-memory turn log with a sliding transmission window."""

from __future__ import annotations

from collections.abc import Iterable

from john_chat.models import Turn

DEFAULT_WINDOW = 10


class HistoryStore:
    """Ordered log of conversation turns.

    The whole log is kept for export; only the most recent `window_size`
    turns are sent to the generator.
    """

    def __init__(self, window_size: int = DEFAULT_WINDOW) -> None:
        self.window_size = window_size
        self._turns: list[Turn] = []

    def __len__(self) -> int:
        return len(self._turns)

    def append(self, turn: Turn) -> None:
        self._turns.append(turn)

    def trim_to_window(self, n: int | None = None) -> None:
        """Drop everything but the last n turns (default: window_size)."""
        n = self.window_size if n is None else n
        self._turns = self._turns[-n:] if n > 0 else []

    def window(self, n: int | None = None) -> list[Turn]:
        """Return the last n turns without touching the log."""
        n = self.window_size if n is None else n
        return list(self._turns[-n:]) if n > 0 else []

    def replace_all(self, turns: Iterable[Turn]) -> None:
        self._turns = list(turns)

    def snapshot(self) -> list[Turn]:
        return list(self._turns)

    def clear(self) -> None:
        self._turns = []
