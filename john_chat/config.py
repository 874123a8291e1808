"""App configuration (LLM connection, sampler settings, persona, history window).

Sources, later wins: built-in defaults, an optional JSON file (CONFIG_FILE),
environment variables. Config is read once at startup; runtime changes via
update_config() live in memory only.
"""

import copy
import json
import logging
import os
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

_CONFIG_DEFAULTS: dict[str, Any] = {
    "llm_connection": {
        "provider_url": "http://localhost:5001",
        "api_key": "",
        "provider_format": "koboldcpp",
        "model": "",
        "timeout": 30,
    },
    "generation": {
        "max_context_length": 2048,
        "max_length": 150,
        "quiet": True,
        "rep_pen": 1.1,
        "rep_pen_range": 256,
        "rep_pen_slope": 1,
        "temperature": 2.7,
        "tfs": 1,
        "top_a": 0,
        "top_k": 100,
        "top_p": 0.9,
        "typical": 1,
        "stop_sequence": ["You:", "\nYou ", "User:", "\nUser "],
    },
    "persona": {
        "name": "John",
        "full_name": "John Timbles",
        "user_label": "You",
    },
    "history_window": 10,
    "clamp_vitals": False,
}

# env var → (section, key, cast); section None means a top-level scalar
_ENV_OVERRIDES: dict[str, tuple[str | None, str, Any]] = {
    "PROVIDER_URL": ("llm_connection", "provider_url", str),
    "API_KEY": ("llm_connection", "api_key", str),
    "PROVIDER_FORMAT": ("llm_connection", "provider_format", str),
    "MODEL": ("llm_connection", "model", str),
    "LLM_TIMEOUT": ("llm_connection", "timeout", float),
    "HISTORY_WINDOW": (None, "history_window", int),
    "CLAMP_VITALS": (None, "clamp_vitals", lambda v: v.strip().lower() in ("1", "true", "yes", "on")),
}

_SECTIONS = ("llm_connection", "generation", "persona")


def get_config(path: Path | None = None) -> dict[str, Any]:
    """Return defaults merged with the JSON config file and env overrides."""
    config = copy.deepcopy(_CONFIG_DEFAULTS)

    if path is None and os.getenv("CONFIG_FILE"):
        path = Path(os.environ["CONFIG_FILE"])
    if path is not None:
        if path.is_file():
            config = update_config(config, json.loads(path.read_text()))
        else:
            logger.warning("Config file %s not found, using defaults", path)

    for var, (section, key, cast) in _ENV_OVERRIDES.items():
        raw = os.getenv(var)
        if raw is None or raw == "":
            continue
        value = cast(raw)
        if section is None:
            config[key] = value
        else:
            config[section][key] = value
    return config


def update_config(config: dict[str, Any], fields: dict[str, Any]) -> dict[str, Any]:
    """Merge fields into a copy of config and return it.

    Sections are merged key by key; stop_sequence and scalars are replaced
    wholesale. Unknown top-level keys are ignored.
    """
    merged = copy.deepcopy(config)
    for section in _SECTIONS:
        vals = fields.get(section)
        if isinstance(vals, dict):
            merged[section].update(vals)
    if "history_window" in fields:
        merged["history_window"] = int(fields["history_window"])
    if "clamp_vitals" in fields:
        merged["clamp_vitals"] = bool(fields["clamp_vitals"])
    return merged
