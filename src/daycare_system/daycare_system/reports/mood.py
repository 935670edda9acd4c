"""Versioned mood field.

Rows written over time hold a bare string, a list, a JSON string or the
current ``{"version": 1, "values": [...]}`` document, with English values
mixed with French ones. `migrate` turns any of them into the current shape
when a row is read.
"""
from __future__ import annotations

import json
from typing import Any, Iterable

MOOD_SCHEMA_VERSION = 1

MOODS = ("joyeux", "calme", "agite", "triste", "fatigue")

LEGACY_MOODS = {
    "happy": "joyeux",
    "calm": "calme",
    "agitated": "agite",
    "sad": "triste",
    "tired": "fatigue",
}

MOOD_LABELS = {
    "joyeux": "Joyeux",
    "calme": "Calme",
    "agite": "Agité",
    "triste": "Triste",
    "fatigue": "Fatigué",
}


def normalize_value(value: str) -> str:
    v = str(value).strip().lower()
    return LEGACY_MOODS.get(v, v)


def _raw_values(raw: Any) -> Iterable[Any]:
    if raw is None:
        return ()
    if isinstance(raw, dict):
        return _raw_values(raw.get("values"))
    if isinstance(raw, (list, tuple)):
        return raw
    if isinstance(raw, (bytes, bytearray)):
        raw = raw.decode("utf-8")
    if isinstance(raw, str):
        text = raw.strip()
        if not text:
            return ()
        if text[0] in "[{\"":
            try:
                return _raw_values(json.loads(text))
            except ValueError:
                pass
        return (text,)
    return ()


def migrate(raw: Any) -> tuple[str, ...]:
    """Current mood values for any stored shape, de-duplicated in order."""
    seen: list[str] = []
    for value in _raw_values(raw):
        if value is None or isinstance(value, (dict, list)):
            continue
        mood = normalize_value(value)
        if mood and mood not in seen:
            seen.append(mood)
    return tuple(seen)


def to_document(values: Iterable[str]) -> dict:
    return {"version": MOOD_SCHEMA_VERSION, "values": list(migrate(list(values)))}


def label(value: str) -> str:
    mood = normalize_value(value)
    return MOOD_LABELS.get(mood, mood)
