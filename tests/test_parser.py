"""Tests for reply parsing: STATUS tags, legacy emotion tags, fences, malformed markup."""

import json

from john_chat.parser import parse_response, strip_fences, strip_tags


# ── STATUS tag ───────────────────────────────────────────


def test_status_tag_prefix():
    raw = '[STATUS:{"emotion":"happy","energy":90}]Hello there!'
    result = parse_response(raw)
    assert result.display_text == "Hello there!"
    assert result.emotion == "happy"
    assert result.status_partial == {"emotion": "happy", "energy": 90}
    assert result.status_error is None


def test_status_tag_suffix():
    raw = (
        "I'm heading to the park now.\n"
        '[STATUS:{"emotion":"surprised","location":"Park","goal":"Walk the dog"}]'
    )
    result = parse_response(raw)
    assert result.display_text == "I'm heading to the park now."
    assert result.emotion == "surprised"
    assert result.status_partial["location"] == "Park"


def test_status_partial_keeps_every_key_and_invents_none():
    payload = {
        "emotion": "sad", "species": "Human", "location": "Office",
        "goal": "Finish report", "mood": "Tired",
        "energy": 20, "happiness": 35, "social": 10, "weather": "rain",
    }
    result = parse_response(f"Ugh. [STATUS:{json.dumps(payload)}]")
    assert result.status_partial == payload


def test_status_partial_only_present_keys():
    result = parse_response('Fine. [STATUS:{"mood":"Calm"}]')
    assert result.status_partial == {"mood": "Calm"}


def test_status_without_emotion_defaults():
    result = parse_response('Sure. [STATUS:{"energy":50}]')
    assert result.emotion == "default"
    assert result.status_partial == {"energy": 50}


def test_status_unknown_emotion_falls_back_to_default():
    result = parse_response('Whee! [STATUS:{"emotion":"ecstatic"}]')
    assert result.emotion == "default"
    assert result.status_partial == {"emotion": "ecstatic"}


def test_status_emotion_case_insensitive():
    result = parse_response('Hm. [STATUS:{"emotion":"Thinking"}]')
    assert result.emotion == "thinking"


def test_status_tag_with_nested_object_closing_before_bracket():
    """The non-greedy match still reaches the "}]" that closes the tag."""
    raw = 'Ok. [STATUS:{"emotion":"happy","extra":{"a":1}}]'
    result = parse_response(raw)
    assert result.status_partial == {"emotion": "happy", "extra": {"a": 1}}
    assert result.display_text == "Ok."


def test_status_tag_spanning_lines():
    raw = 'Morning!\n[STATUS:{\n  "emotion": "happy",\n  "energy": 75\n}]'
    result = parse_response(raw)
    assert result.display_text == "Morning!"
    assert result.emotion == "happy"
    assert result.status_partial == {"emotion": "happy", "energy": 75}
    assert result.status_error is None


def test_only_first_status_tag_is_used():
    raw = 'A [STATUS:{"energy":1}] B [STATUS:{"energy":2}]'
    result = parse_response(raw)
    assert result.status_partial == {"energy": 1}
    assert "B [STATUS:" in result.display_text


# ── Malformed STATUS ─────────────────────────────────────


def test_malformed_status_does_not_raise():
    result = parse_response("hi [STATUS:{not json}]")
    assert result.display_text == "hi"
    assert result.status_partial is None
    assert result.emotion == "default"
    assert result.status_error is not None


def test_malformed_status_ignores_legacy_tag_fallback():
    """A broken STATUS tag still counts as found; no legacy lookup."""
    result = parse_response("hi [STATUS:{oops}] [emotion:happy]")
    assert result.emotion == "default"
    assert result.status_partial is None


def test_truncated_status_is_stripped():
    raw = 'Nice to meet you! [STATUS:{"emotion":"happy","energy":8'
    result = parse_response(raw)
    assert result.display_text == "Nice to meet you!"
    assert result.status_partial is None
    assert result.status_error == "Status tag was not closed"


# ── Legacy emotion tag ───────────────────────────────────


def test_legacy_emotion_tag():
    result = parse_response("That's awful. [emotion:sad]")
    assert result.display_text == "That's awful."
    assert result.emotion == "sad"
    assert result.status_partial is None


def test_legacy_emotion_tag_case_insensitive():
    result = parse_response("[EMOTION:Angry] Go away!")
    assert result.emotion == "angry"
    assert result.display_text == "Go away!"


def test_legacy_tag_with_unknown_emotion_left_alone():
    result = parse_response("Hmm [emotion:bored]")
    assert result.emotion == "default"
    assert result.display_text == "Hmm [emotion:bored]"


# ── No tags ──────────────────────────────────────────────


def test_no_tags():
    result = parse_response("no tags here")
    assert result.display_text == "no tags here"
    assert result.emotion == "default"
    assert result.status_partial is None
    assert result.status_error is None


def test_no_tags_trimmed():
    result = parse_response("  \n hello \n")
    assert result.display_text == "hello"


def test_empty_reply():
    result = parse_response("")
    assert result.display_text == ""
    assert result.emotion == "default"


# ── Code fences ──────────────────────────────────────────


def test_json_fence_removed():
    raw = 'Here you go.\n```json\n{"emotion": "happy"}\n```'
    assert parse_response(raw).display_text == "Here you go."


def test_plain_fence_removed():
    raw = "Before\n```\nsome code\n```\nAfter"
    result = parse_response(raw)
    assert "```" not in result.display_text
    assert "some code" not in result.display_text
    assert result.display_text.startswith("Before")
    assert result.display_text.endswith("After")


def test_fence_removed_alongside_status():
    raw = 'Done!\n```json\n{"x": 1}\n```\n[STATUS:{"emotion":"happy"}]'
    result = parse_response(raw)
    assert result.display_text == "Done!"
    assert result.emotion == "happy"


def test_strip_fences_helper():
    assert strip_fences("a ```b``` c") == "a  c"


# ── strip_tags ───────────────────────────────────────────


def test_strip_tags_removes_all():
    text = 'Hi [STATUS:{"energy":1}] there [emotion:happy] [STATUS:{"energy":2}]'
    assert strip_tags(text) == "Hi  there"


def test_strip_tags_multiline_status():
    assert strip_tags('Hi [STATUS:{\n"energy": 1\n}]') == "Hi"


def test_strip_tags_plain_text_unchanged():
    assert strip_tags("just words") == "just words"
