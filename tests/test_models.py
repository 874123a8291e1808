"""Tests for john_chat.models and the expression table."""

import pytest
from pydantic import ValidationError

from john_chat import expressions
from john_chat.models import (
    EMOTIONS,
    DisplayMessage,
    MessageReady,
    ParseResult,
    StatusRecord,
    Turn,
    normalize_emotion,
)


class TestTurn:
    def test_required_fields(self) -> None:
        t = Turn(role="user", content="hi")
        assert t.role == "user"
        assert t.content == "hi"

    def test_invalid_role_rejected(self) -> None:
        with pytest.raises(ValidationError):
            Turn(role="system", content="x")

    def test_serialise_roundtrip(self) -> None:
        t = Turn(role="assistant", content='Hey [STATUS:{"energy":5}]')
        assert Turn.model_validate(t.model_dump()) == t


class TestStatusRecord:
    def test_invalid_emotion_rejected(self) -> None:
        with pytest.raises(ValidationError):
            StatusRecord(emotion="ecstatic")

    def test_serialise_roundtrip(self) -> None:
        s = StatusRecord(location="Park", energy=42.5)
        assert StatusRecord.model_validate_json(s.model_dump_json()) == s


class TestParseResult:
    def test_defaults(self) -> None:
        r = ParseResult(display_text="hi")
        assert r.emotion == "default"
        assert r.status_partial is None
        assert r.status_error is None


class TestEvents:
    def test_kind_in_dump(self) -> None:
        event = MessageReady(message=DisplayMessage(sender="john", text="hi"))
        dumped = event.model_dump()
        assert dumped["kind"] == "message_ready"
        assert dumped["message"]["sender"] == "john"


class TestNormalizeEmotion:
    @pytest.mark.parametrize("value", EMOTIONS)
    def test_known(self, value) -> None:
        assert normalize_emotion(value.upper()) == value

    @pytest.mark.parametrize("value", ["", "joy", None, 3])
    def test_unknown(self, value) -> None:
        assert normalize_emotion(value) == "default"


class TestExpressions:
    def test_every_emotion_has_an_expression(self) -> None:
        for emotion in EMOTIONS:
            view = expressions.describe(emotion)
            assert view.emotion == emotion
            assert view.icon
            assert set(view.face) == {
                "eyesOpen", "mouthSmile", "mouthOpen", "eyebrowsUp", "eyebrowsDown",
            }

    def test_head_rotation(self) -> None:
        assert expressions.describe("sad").head_rotation == {"x": -0.2, "y": 0.0}
        assert expressions.describe("thinking").head_rotation == {"x": 0.0, "y": 0.3}
        assert expressions.describe("default").head_rotation == {"x": 0.0, "y": 0.0}

    def test_unknown_emotion_uses_default(self) -> None:
        view = expressions.describe("confused")
        assert view.emotion == "default"
        assert view.icon == expressions.ICONS["default"]

    def test_face_is_a_copy(self) -> None:
        expressions.describe("happy").face["mouthSmile"] = -1
        assert expressions.FACES["happy"]["mouthSmile"] == 1.0
