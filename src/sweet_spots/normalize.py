"""Shared key normalization and tolerant numeric coercion."""

from __future__ import annotations

import re
import unicodedata
from typing import Any

_NAME_SUFFIXES = {"jr", "sr", "ii", "iii", "iv", "v"}
_NON_NAME_CHARS = re.compile(r"[^a-z0-9\s-]")
_WHITESPACE = re.compile(r"\s+")

BASE_METRICS: tuple[str, ...] = (
    "points",
    "rebounds",
    "assists",
    "threes",
    "steals",
    "blocks",
    "turnovers",
)

COMBO_METRICS: dict[str, tuple[str, ...]] = {
    "pra": ("points", "rebounds", "assists"),
    "pr": ("points", "rebounds"),
    "pa": ("points", "assists"),
    "ra": ("rebounds", "assists"),
}

METRIC_ALIASES: dict[str, str] = {
    "pts": "points",
    "reb": "rebounds",
    "ast": "assists",
    "threes_made": "threes",
    "three_pointers": "threes",
    "three_pointers_made": "threes",
    "3pt": "threes",
    "3pm": "threes",
    "stl": "steals",
    "blk": "blocks",
    "to": "turnovers",
    "points_rebounds_assists": "pra",
    "points_rebounds": "pr",
    "points_assists": "pa",
    "rebounds_assists": "ra",
}


def player_key(name: str) -> str:
    """Normalize a player display name into a stable lookup key."""
    folded = unicodedata.normalize("NFKD", str(name or ""))
    ascii_name = folded.encode("ascii", "ignore").decode("ascii").lower()
    ascii_name = ascii_name.replace(".", "").replace("'", "")
    cleaned = _NON_NAME_CHARS.sub(" ", ascii_name)
    tokens = [token for token in _WHITESPACE.split(cleaned.strip()) if token]
    if len(tokens) > 1 and tokens[-1] in _NAME_SUFFIXES:
        tokens = tokens[:-1]
    return " ".join(tokens)


def normalize_metric(value: str) -> str:
    """Map market/prop-type spellings (`player_points`, `3PT`, ...) to a metric name."""
    raw = re.sub(r"[\s-]+", "_", str(value or "").strip().lower())
    if raw.startswith("player_"):
        raw = raw[len("player_") :]
    return METRIC_ALIASES.get(raw, raw)


def safe_float(value: Any) -> float | None:
    """Parse number-like input into float, returning None when invalid."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        raw = value.strip()
        if not raw:
            return None
        try:
            return float(raw)
        except ValueError:
            return None
    return None
