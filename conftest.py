import pytest

from john_chat.config import get_config
from john_chat.models import Turn


class StubGenerator:
    """Scripted generator: returns queued replies, raises queued exceptions.

    Every call is recorded as (turns, system_prompt).
    """

    def __init__(self, *replies):
        self.replies = list(replies)
        self.calls: list[tuple[list[Turn], str]] = []

    async def __call__(self, turns, system_prompt):
        self.calls.append((list(turns), system_prompt))
        if not self.replies:
            raise AssertionError("StubGenerator ran out of replies")
        reply = self.replies.pop(0)
        if isinstance(reply, BaseException):
            raise reply
        return reply


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep developer env vars and .env values out of config tests."""
    for var in ("CONFIG_FILE", "PROVIDER_URL", "API_KEY", "PROVIDER_FORMAT",
                "MODEL", "LLM_TIMEOUT", "HISTORY_WINDOW", "CLAMP_VITALS"):
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def stub():
    return StubGenerator


@pytest.fixture
def config():
    return get_config()
