"""Static screening categories.

Changes to this table are a deployment concern: bump `RULESET_VERSION` whenever
a range, threshold list, hit-rate floor, or role list changes so persisted
candidates can be traced back to the rules that produced them.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from sweet_spots.archetypes import Role

RULESET_VERSION = "4.1"

Direction = Literal["over", "under"]
Family = Literal["optimal", "legacy"]

_BIGS = frozenset({Role.ELITE_REBOUNDER, Role.GLASS_CLEANER, Role.STRETCH_BIG, Role.RIM_PROTECTOR})
_GUARDS = frozenset({Role.PLAYMAKER, Role.COMBO_GUARD, Role.PURE_SHOOTER, Role.SCORING_GUARD})


@dataclass(frozen=True)
class Category:
    key: str
    name: str
    metric: str
    avg_range: tuple[float, float]
    thresholds: tuple[float, ...]
    direction: Direction
    min_hit_rate: float
    family: Family = "legacy"
    line_range: tuple[float, float] | None = None
    required_roles: frozenset[Role] = frozenset()
    blocked_roles: frozenset[Role] = frozenset()
    supports_reversion: bool = False
    tiered_floors: str | None = None
    keeps_direction_on_miss: bool = False

    def average_eligible(self, average: float) -> bool:
        low, high = self.avg_range
        return low <= average <= high

    def line_eligible(self, line: float) -> bool:
        if self.line_range is None:
            return False
        low, high = self.line_range
        return low <= line <= high


CATEGORIES: dict[str, Category] = {
    category.key: category
    for category in (
        Category(
            key="ASSIST_ANCHOR",
            name="Assist Anchor",
            metric="assists",
            avg_range=(3.0, 5.5),
            thresholds=(3.5, 4.5, 5.5),
            direction="under",
            min_hit_rate=0.60,
        ),
        Category(
            key="HIGH_REB_UNDER",
            name="High Reb Under",
            metric="rebounds",
            avg_range=(8.0, 14.0),
            thresholds=(9.5, 10.5, 11.5, 12.5),
            direction="under",
            min_hit_rate=0.55,
        ),
        Category(
            key="MID_SCORER_UNDER",
            name="Mid Scorer Under",
            metric="points",
            avg_range=(12.0, 22.0),
            thresholds=(14.5, 15.5, 16.5, 17.5, 18.5, 19.5, 20.5),
            direction="under",
            min_hit_rate=0.55,
        ),
        Category(
            key="ELITE_REB_OVER",
            name="Elite Rebounder OVER",
            metric="rebounds",
            avg_range=(9.0, 20.0),
            thresholds=(9.5, 10.5, 11.5, 12.5),
            direction="over",
            min_hit_rate=0.55,
            family="optimal",
            supports_reversion=True,
            required_roles=frozenset(
                {Role.ELITE_REBOUNDER, Role.GLASS_CLEANER, Role.RIM_PROTECTOR}
            ),
            blocked_roles=_GUARDS,
        ),
        Category(
            key="ROLE_PLAYER_REB",
            name="Role Player Reb OVER",
            metric="rebounds",
            avg_range=(3.0, 6.0),
            thresholds=(2.5, 3.5, 4.5),
            direction="over",
            min_hit_rate=0.60,
            family="optimal",
            required_roles=frozenset(
                {
                    Role.TWO_WAY_WING,
                    Role.STRETCH_BIG,
                    Role.SCORING_WING,
                    Role.ROLE_PLAYER,
                    Role.UNKNOWN,
                }
            ),
            blocked_roles=_GUARDS | {Role.ELITE_REBOUNDER},
        ),
        Category(
            key="BIG_ASSIST_OVER",
            name="Big Man Assists OVER",
            metric="assists",
            avg_range=(2.0, 6.0),
            thresholds=(2.5, 3.5, 4.5),
            direction="over",
            min_hit_rate=0.60,
            family="optimal",
            required_roles=_BIGS,
            blocked_roles=_GUARDS | {Role.SCORING_WING},
        ),
        Category(
            key="LOW_SCORER_UNDER",
            name="Low Scorer UNDER",
            metric="points",
            avg_range=(5.0, 12.0),
            thresholds=(7.5, 8.5, 9.5, 10.5, 11.5, 12.5),
            direction="under",
            min_hit_rate=0.55,
            family="optimal",
            blocked_roles=frozenset(
                {Role.PURE_SHOOTER, Role.COMBO_GUARD, Role.SCORING_GUARD, Role.SCORING_WING}
            ),
        ),
        Category(
            key="STAR_FLOOR_OVER",
            name="Star Floor OVER",
            metric="points",
            avg_range=(20.0, 40.0),
            thresholds=(14.5, 15.5, 16.5, 17.5, 18.5, 19.5),
            direction="over",
            min_hit_rate=0.65,
            family="optimal",
            required_roles=_GUARDS | {Role.SCORING_WING},
        ),
        Category(
            key="BIG_REBOUNDER",
            name="Big Rebounder",
            metric="rebounds",
            avg_range=(9.0, 20.0),
            line_range=(9.0, 20.0),
            thresholds=(6.5, 7.5, 8.5, 9.5, 10.5, 11.5, 12.5),
            direction="over",
            min_hit_rate=0.70,
            supports_reversion=True,
            required_roles=_BIGS,
            tiered_floors="big_rebounder",
            keeps_direction_on_miss=True,
        ),
        Category(
            key="LOW_LINE_REBOUNDER",
            name="Low Line Rebounder",
            metric="rebounds",
            avg_range=(4.0, 6.0),
            thresholds=(3.5, 4.5, 5.5),
            direction="over",
            min_hit_rate=0.70,
        ),
        Category(
            key="NON_SCORING_SHOOTER",
            name="Non-Scoring Shooter",
            metric="points",
            avg_range=(8.0, 14.0),
            thresholds=(10.5, 11.5, 12.5, 13.5, 14.5),
            direction="under",
            min_hit_rate=0.70,
        ),
        Category(
            key="VOLUME_SCORER",
            name="Volume Scorer",
            metric="points",
            avg_range=(15.0, 40.0),
            line_range=(18.0, 40.0),
            thresholds=(14.5, 16.5, 18.5, 20.5, 22.5, 24.5, 26.5, 28.5, 30.5),
            direction="over",
            min_hit_rate=0.70,
            supports_reversion=True,
            keeps_direction_on_miss=True,
        ),
        Category(
            key="HIGH_ASSIST",
            name="Playmaker",
            metric="assists",
            avg_range=(4.0, 15.0),
            thresholds=(3.5, 4.5, 5.5, 6.5, 7.5, 8.5, 9.5),
            direction="over",
            min_hit_rate=0.70,
        ),
        Category(
            key="THREE_POINT_SHOOTER",
            name="3-Point Shooter",
            metric="threes",
            avg_range=(1.5, 6.0),
            thresholds=(0.5, 1.5, 2.5, 3.5, 4.5),
            direction="over",
            min_hit_rate=0.70,
        ),
    )
}


def get_category(key: str) -> Category:
    normalized = key.strip().upper()
    category = CATEGORIES.get(normalized)
    if category is None:
        options = ",".join(sorted(CATEGORIES))
        raise ValueError(f"unknown category: {key} (options: {options})")
    return category


def select_categories(category: str | None = None) -> list[Category]:
    """Return the requested category, or every category in table order."""
    if category:
        return [get_category(category)]
    return list(CATEGORIES.values())


def tracked_metrics(categories: list[Category]) -> list[str]:
    seen: list[str] = []
    for category in categories:
        if category.metric not in seen:
            seen.append(category.metric)
    return seen
