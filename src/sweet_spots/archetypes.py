"""Player archetype roles, eligibility validation, and season-stat auto-classification."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, Any

from sweet_spots.normalize import player_key

if TYPE_CHECKING:
    from sweet_spots.categories import Category
    from sweet_spots.records import ArchetypeAssignment, SeasonAverages


class Role(StrEnum):
    ELITE_REBOUNDER = "ELITE_REBOUNDER"
    GLASS_CLEANER = "GLASS_CLEANER"
    STRETCH_BIG = "STRETCH_BIG"
    RIM_PROTECTOR = "RIM_PROTECTOR"
    ELITE_PLAYMAKER = "ELITE_PLAYMAKER"
    PLAYMAKER = "PLAYMAKER"
    PRIMARY_SCORER = "PRIMARY_SCORER"
    COMBO_GUARD = "COMBO_GUARD"
    SCORING_GUARD = "SCORING_GUARD"
    PURE_SHOOTER = "PURE_SHOOTER"
    TWO_WAY_WING = "TWO_WAY_WING"
    SCORING_WING = "SCORING_WING"
    DEFENSIVE_ANCHOR = "DEFENSIVE_ANCHOR"
    ROLE_PLAYER = "ROLE_PLAYER"
    UNKNOWN = "UNKNOWN"


@dataclass(frozen=True)
class ArchetypeCheck:
    passes: bool
    reason: str
    caution: bool = False


def check_role(role: Role, category: Category) -> ArchetypeCheck:
    """Apply a category's blocked/required role lists to one role.

    Blocked roles fail immediately. A declared required set fails any role
    outside it, except `UNKNOWN`, which passes with a caution flag so missing
    classification data does not eliminate an otherwise valid signal.
    """
    if role in category.blocked_roles:
        return ArchetypeCheck(False, f"archetype {role} is blocked for {category.key}")
    if category.required_roles and role not in category.required_roles:
        if role == Role.UNKNOWN:
            return ArchetypeCheck(True, "archetype unknown - allowing with caution", caution=True)
        required = ", ".join(sorted(category.required_roles))
        return ArchetypeCheck(False, f"archetype {role} not in required list: {required}")
    return ArchetypeCheck(True, f"archetype {role} valid for {category.key}")


class ArchetypeClassifier:
    """Read-only player -> role lookup built once per run."""

    def __init__(self, roles: Mapping[str, Role] | None = None) -> None:
        self._roles: dict[str, Role] = {
            player_key(name): Role(role) for name, role in (roles or {}).items()
        }

    @classmethod
    def from_assignments(cls, assignments: Iterable[ArchetypeAssignment]) -> ArchetypeClassifier:
        return cls({row.player_name: row.role for row in assignments})

    def __len__(self) -> int:
        return len(self._roles)

    def role_of(self, player: str) -> Role:
        return self._roles.get(player_key(player), Role.UNKNOWN)

    def validate(self, player: str, category: Category) -> ArchetypeCheck:
        return check_role(self.role_of(player), category)


# Priority-ordered; the first matching rule wins.
_CLASSIFICATION_RULES: tuple[tuple[Role, str, Any], ...] = (
    (Role.ELITE_REBOUNDER, "dominant rebounder (9+ RPG)", lambda s: s.avg_rebounds >= 9.0),
    (
        Role.RIM_PROTECTOR,
        "shot blocker + rebounder (2+ BPG, 6+ RPG)",
        lambda s: s.avg_blocks >= 2.0 and s.avg_rebounds >= 6.0,
    ),
    (Role.GLASS_CLEANER, "strong rebounder (7-9 RPG)", lambda s: 7.0 <= s.avg_rebounds < 9.0),
    (Role.ELITE_PLAYMAKER, "elite distributor (8+ APG)", lambda s: s.avg_assists >= 8.0),
    (Role.PLAYMAKER, "primary playmaker (6+ APG)", lambda s: s.avg_assists >= 6.0),
    (
        Role.PRIMARY_SCORER,
        "high volume scorer (24+ PPG, 32+ MPG)",
        lambda s: s.avg_points >= 24.0 and s.avg_minutes >= 32.0,
    ),
    (
        Role.PURE_SHOOTER,
        "3PT specialist (2.5+ 3PM, 12+ PPG)",
        lambda s: s.avg_threes >= 2.5 and s.avg_points >= 12.0,
    ),
    (
        Role.SCORING_WING,
        "scoring wing (18+ PPG, 1.5+ 3PM)",
        lambda s: s.avg_points >= 18.0 and s.avg_threes >= 1.5,
    ),
    (
        Role.STRETCH_BIG,
        "rebounding big who shoots 3s (5+ RPG, 1.5+ 3PM)",
        lambda s: s.avg_rebounds >= 5.0 and s.avg_threes >= 1.5,
    ),
    (
        Role.COMBO_GUARD,
        "scoring guard who can pass (4-6 APG, 12+ PPG)",
        lambda s: 4.0 <= s.avg_assists < 6.0 and s.avg_points >= 12.0,
    ),
    (
        Role.TWO_WAY_WING,
        "defensive wing with scoring (1.2+ SPG, 10+ PPG)",
        lambda s: s.avg_steals >= 1.2 and s.avg_points >= 10.0,
    ),
    (
        Role.DEFENSIVE_ANCHOR,
        "defense-first player (1.5+ BPG or 1.5+ SPG)",
        lambda s: s.avg_blocks >= 1.5 or (s.avg_steals >= 1.5 and s.avg_rebounds >= 4.0),
    ),
    (
        Role.SCORING_GUARD,
        "shooting guard (15+ PPG, <4 APG)",
        lambda s: s.avg_points >= 15.0 and s.avg_assists < 4.0,
    ),
)


def classify_role(season: SeasonAverages) -> tuple[Role, str]:
    for role, description, condition in _CLASSIFICATION_RULES:
        if condition(season):
            return role, description
    return Role.ROLE_PLAYER, "default classification"


def classify_players(
    *,
    season_rows: Iterable[SeasonAverages],
    existing: Iterable[ArchetypeAssignment],
    min_games: int = 3,
) -> dict[str, Any]:
    """Derive role assignments from season averages without touching manual overrides."""
    existing_by_key = {player_key(row.player_name): row for row in existing}
    assignments: list[dict[str, Any]] = []
    counts = dict.fromkeys(
        ("inserted", "updated", "skipped_manual", "skipped_same", "too_few_games"), 0
    )
    for season in season_rows:
        if season.games_played < min_games:
            counts["too_few_games"] += 1
            continue
        current = existing_by_key.get(player_key(season.player_name))
        if current is not None and current.manual_override:
            counts["skipped_manual"] += 1
            continue
        role, description = classify_role(season)
        if current is not None and current.role == role:
            counts["skipped_same"] += 1
            continue
        counts["updated" if current is not None else "inserted"] += 1
        assignments.append(
            {
                "player_name": season.player_name,
                "primary_archetype": str(role),
                "reason": description,
                "manual_override": False,
            }
        )
    return {"assignments": assignments, "counts": counts}
