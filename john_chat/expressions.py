"""Emotion → avatar expression table.

The 3D layer blends face parameters and tweens the head bone towards the
given rotation (radians). Icons drive the emotion badge next to the chat.
"""

from john_chat.models import ExpressionView, normalize_emotion

FACES: dict[str, dict[str, float]] = {
    "default":   {"eyesOpen": 1.0, "mouthSmile": 0.0,  "mouthOpen": 0.0, "eyebrowsUp": 0.0, "eyebrowsDown": 0.0},
    "happy":     {"eyesOpen": 0.8, "mouthSmile": 1.0,  "mouthOpen": 0.3, "eyebrowsUp": 0.7, "eyebrowsDown": 0.0},
    "sad":       {"eyesOpen": 0.7, "mouthSmile": -0.5, "mouthOpen": 0.0, "eyebrowsUp": 0.0, "eyebrowsDown": 0.7},
    "surprised": {"eyesOpen": 1.0, "mouthSmile": 0.0,  "mouthOpen": 0.8, "eyebrowsUp": 1.0, "eyebrowsDown": 0.0},
    "angry":     {"eyesOpen": 0.6, "mouthSmile": -0.3, "mouthOpen": 0.3, "eyebrowsUp": 0.0, "eyebrowsDown": 1.0},
    "thinking":  {"eyesOpen": 0.7, "mouthSmile": 0.0,  "mouthOpen": 0.0, "eyebrowsUp": 0.3, "eyebrowsDown": 0.2},
}

ICONS: dict[str, str] = {
    "happy": "😊",
    "sad": "😢",
    "surprised": "😲",
    "angry": "😠",
    "thinking": "🤔",
    "default": "😐",
}

# Head tilt (x) and turn (y); anything not listed faces forward.
_HEAD_TILT: dict[str, float] = {"sad": -0.2, "happy": 0.1, "surprised": 0.2, "angry": -0.1}
_HEAD_TURN: dict[str, float] = {"thinking": 0.3}


def describe(emotion: str) -> ExpressionView:
    """Expression view for an emotion; unknown emotions use the default face."""
    emotion = normalize_emotion(emotion)
    return ExpressionView(
        emotion=emotion,
        icon=ICONS[emotion],
        face=dict(FACES[emotion]),
        head_rotation={
            "x": _HEAD_TILT.get(emotion, 0.0),
            "y": _HEAD_TURN.get(emotion, 0.0),
        },
    )
