import pytest

from sweet_spots.categories import (
    CATEGORIES,
    get_category,
    select_categories,
    tracked_metrics,
)


def test_category_table_shape() -> None:
    assert len(CATEGORIES) == 14
    for category in CATEGORIES.values():
        low, high = category.avg_range
        assert low <= high
        assert list(category.thresholds) == sorted(category.thresholds)
        assert 0.0 < category.min_hit_rate <= 1.0
        assert not category.required_roles & category.blocked_roles


def test_get_category_is_case_insensitive() -> None:
    assert get_category(" elite_reb_over ").key == "ELITE_REB_OVER"
    with pytest.raises(ValueError, match="unknown category"):
        get_category("DUNKS")


def test_select_and_track_metrics() -> None:
    assert [category.key for category in select_categories("big_rebounder")] == ["BIG_REBOUNDER"]
    everything = select_categories(None)
    assert len(everything) == len(CATEGORIES)
    assert tracked_metrics(everything) == ["assists", "rebounds", "points", "threes"]


def test_range_and_line_eligibility_bounds_are_inclusive() -> None:
    category = get_category("VOLUME_SCORER")

    assert category.average_eligible(15.0)
    assert category.average_eligible(40.0)
    assert not category.average_eligible(14.9)
    assert category.line_eligible(18.0)
    assert not category.line_eligible(17.5)
    assert not get_category("HIGH_ASSIST").line_eligible(5.5)
