"""Opponent resolution from structured fields or free-form game descriptions."""

from __future__ import annotations

import re

TEAM_ALIASES: dict[str, tuple[str, ...]] = {
    "ATL": ("atlanta hawks", "atlanta", "hawks"),
    "BOS": ("boston celtics", "boston", "celtics"),
    "BKN": ("brooklyn nets", "brooklyn", "nets", "bkn", "brk"),
    "CHA": ("charlotte hornets", "charlotte", "hornets", "cha", "cho"),
    "CHI": ("chicago bulls", "chicago", "bulls"),
    "CLE": ("cleveland cavaliers", "cleveland", "cavaliers", "cavs"),
    "DAL": ("dallas mavericks", "dallas", "mavericks", "mavs"),
    "DEN": ("denver nuggets", "denver", "nuggets"),
    "DET": ("detroit pistons", "detroit", "pistons"),
    "GSW": ("golden state warriors", "golden state", "warriors", "gsw", "gs"),
    "HOU": ("houston rockets", "houston", "rockets"),
    "IND": ("indiana pacers", "indiana", "pacers"),
    "LAC": ("los angeles clippers", "la clippers", "clippers", "lac"),
    "LAL": ("los angeles lakers", "la lakers", "lakers", "lal"),
    "MEM": ("memphis grizzlies", "memphis", "grizzlies"),
    "MIA": ("miami heat", "miami", "heat"),
    "MIL": ("milwaukee bucks", "milwaukee", "bucks"),
    "MIN": ("minnesota timberwolves", "minnesota", "timberwolves", "wolves"),
    "NOP": ("new orleans pelicans", "new orleans", "pelicans", "nop", "no", "nor"),
    "NYK": ("new york knicks", "new york", "knicks", "nyk", "ny"),
    "OKC": ("oklahoma city thunder", "oklahoma city", "thunder", "okc"),
    "ORL": ("orlando magic", "orlando", "magic"),
    "PHI": ("philadelphia 76ers", "philadelphia", "76ers", "sixers"),
    "PHX": ("phoenix suns", "phoenix", "suns", "phx", "pho"),
    "POR": ("portland trail blazers", "portland", "trail blazers", "blazers"),
    "SAC": ("sacramento kings", "sacramento", "kings"),
    "SAS": ("san antonio spurs", "san antonio", "spurs", "sas", "sa"),
    "TOR": ("toronto raptors", "toronto", "raptors"),
    "UTA": ("utah jazz", "utah", "jazz", "uta"),
    "WAS": ("washington wizards", "washington", "wizards", "was", "wsh"),
}

_LOOKUP: dict[str, str] = {}
for _abbr, _names in TEAM_ALIASES.items():
    _LOOKUP[_abbr.lower()] = _abbr
    for _name in _names:
        _LOOKUP[_name] = _abbr

_SEPARATORS = (
    re.compile(r"^(?P<away>.+?)\s*@\s*(?P<home>.+)$"),
    re.compile(r"^(?P<away>.+?)\s+at\s+(?P<home>.+)$", re.IGNORECASE),
    re.compile(r"^(?P<home>.+?)\s+(?:vs\.?|v\.?)\s+(?P<away>.+)$", re.IGNORECASE),
)


def canonical_team(value: str | None) -> str | None:
    """Map a team name, nickname, or abbreviation to its canonical abbreviation.

    Unknown names are returned lower-cased so they still compare consistently.
    """
    if value is None:
        return None
    raw = re.sub(r"\s+", " ", value.strip().lower().replace(".", ""))
    if not raw:
        return None
    return _LOOKUP.get(raw, raw)


def _split(description: str | None) -> re.Match[str] | None:
    if not description:
        return None
    text = description.strip()
    for pattern in _SEPARATORS:
        match = pattern.match(text)
        if match is not None and match.group("away").strip() and match.group("home").strip():
            return match
    return None


def parse_game_description(description: str | None) -> tuple[str, str] | None:
    """Split `"AWAY @ HOME"`, `"AWAY at HOME"`, or `"HOME vs AWAY"` into (away, home)."""
    match = _split(description)
    if match is None:
        return None
    return match.group("away").strip(), match.group("home").strip()


def resolve_opponent(
    *,
    opponent: str | None,
    game_description: str | None,
    player_team: str | None,
) -> str | None:
    """Return the canonical upcoming opponent for a live line.

    A structured opponent always wins. Otherwise the description is parsed and
    the side that is not the player's team is returned; with no known team the
    second-named side is assumed.
    """
    if opponent:
        return canonical_team(opponent)
    match = _split(game_description)
    if match is None:
        return None
    away = canonical_team(match.group("away").strip())
    home = canonical_team(match.group("home").strip())
    team = canonical_team(player_team)
    if team is not None:
        if team == away:
            return home
        if team == home:
            return away
    return home if match.start("home") > match.start("away") else away
