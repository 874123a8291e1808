"""Handlebars prompt rendering for the persona."""

import json
from collections.abc import Callable
from typing import Any

import pybars

from john_chat.models import EMOTIONS, StatusRecord, Turn

_compiler = pybars.Compiler()
_cache: dict[str, Callable] = {}


class PromptError(Exception):
    """Raised when a Handlebars template fails to compile or render."""


DEFAULT_SYSTEM_PROMPT = (
    "You are roleplaying as {{{persona.full_name}}}, a complex 3D human character "
    "with emotions and expressions.\n"
    "You respond in the first person AS {{{persona.full_name}}}, never acknowledging "
    "that you're an AI.\n"
    "Keep responses under 100 words and be emotionally reactive.\n"
    "After your response, include JSON data about {{{persona.name}}}'s state in this format:\n"
    "[STATUS:{{{status_example}}}]\n"
    "Where emotion is one of: {{{emotions}}}.\n"
    "Species, location, goal, and mood are strings. "
    "Energy, happiness, social are numbers 0-100."
)

GREETING_PROMPT = (
    "(System: {{{persona.name}}}, introduce yourself briefly to the user and set your status.)"
)

# Raw-completion prompt: system text, one "Label: content" line per turn,
# then the persona label so the model speaks next.
COMPLETION_PROMPT = (
    "{{{system}}}\n\n"
    "{{#each turns}}{{{label}}}: {{{content}}}\n{{/each}}"
    "{{{persona_label}}}:"
)


def render_prompt(template_str: str, context: dict[str, Any]) -> str:
    """Compile and render a Handlebars template with the given context.

    Templates are cached by source string to avoid recompilation.
    """
    try:
        compiled = _cache.get(template_str)
        if compiled is None:
            compiled = _compiler.compile(template_str)
            _cache[template_str] = compiled
        return str(compiled(context))
    except Exception as e:
        raise PromptError(f"Template error: {e}") from e


def persona_context(persona: dict[str, Any]) -> dict[str, Any]:
    """Template variables shared by the persona prompts."""
    example = StatusRecord(emotion="happy").model_dump()
    return {
        "persona": {
            "name": persona.get("name", "John"),
            "full_name": persona.get("full_name") or persona.get("name", "John"),
        },
        "status_example": json.dumps(example, separators=(",", ":")),
        "emotions": ", ".join(EMOTIONS),
    }


def build_system_prompt(persona: dict[str, Any], template_str: str | None = None) -> str:
    return render_prompt(template_str or DEFAULT_SYSTEM_PROMPT, persona_context(persona))


def build_greeting(persona: dict[str, Any]) -> str:
    return render_prompt(GREETING_PROMPT, persona_context(persona))


def build_completion_prompt(
    system_prompt: str,
    turns: list[Turn],
    user_label: str = "You",
    persona_label: str = "John",
) -> str:
    """Flatten the system prompt and turns into a single completion prompt."""
    return render_prompt(COMPLETION_PROMPT, {
        "system": system_prompt.strip(),
        "turns": [
            {
                "label": user_label if t.role == "user" else persona_label,
                "content": t.content,
            }
            for t in turns
        ],
        "persona_label": persona_label,
    })
