"""Deduplication, ranking, grouping, and persistence of reconciled candidates."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import date
from typing import TYPE_CHECKING, Any

from sweet_spots.candidate import Candidate
from sweet_spots.errors import StoreWriteError

if TYPE_CHECKING:
    from sweet_spots.store import SweetSpotStore

logger = logging.getLogger(__name__)


def _preference(candidate: Candidate) -> tuple[bool, float]:
    return candidate.active, candidate.confidence


def deduplicate(candidates: Iterable[Candidate]) -> list[Candidate]:
    """Keep one candidate per (player, metric): active first, then highest confidence.

    Earlier candidates win exact ties.
    """
    best: dict[tuple[str, str], Candidate] = {}
    for candidate in candidates:
        key = candidate.dedupe_key
        current = best.get(key)
        if current is None or _preference(candidate) > _preference(current):
            best[key] = candidate
    return list(best.values())


def rank(candidates: Iterable[Candidate]) -> list[Candidate]:
    return sorted(candidates, key=lambda row: (not row.active, -row.confidence))


def group_by_category(candidates: Iterable[Candidate]) -> dict[str, list[dict[str, Any]]]:
    grouped: dict[str, list[dict[str, Any]]] = {}
    for candidate in candidates:
        grouped.setdefault(candidate.category.key, []).append(candidate.to_row())
    return grouped


def persist(
    store: SweetSpotStore,
    analysis_date: date,
    candidates: Iterable[Candidate],
    *,
    batch_size: int = 100,
) -> dict[str, int]:
    """Replace the analysis date's rows with `candidates`, in batches.

    Delete-then-insert is not atomic: a failure after the delete leaves the
    date partially written. Failed batches are logged and counted.
    """
    rows = [candidate.to_row() for candidate in candidates]
    size = max(1, int(batch_size))
    summary = {"deleted": 0, "inserted": 0, "batches": 0, "failed_batches": 0, "failed_rows": 0}
    try:
        summary["deleted"] = store.delete_candidates(analysis_date)
    except StoreWriteError as exc:
        logger.error("failed clearing candidates for %s: %s", analysis_date, exc)
        summary["failed_batches"] = 1
        summary["failed_rows"] = len(rows)
        return summary

    for start in range(0, len(rows), size):
        batch = rows[start : start + size]
        summary["batches"] += 1
        try:
            summary["inserted"] += store.insert_candidates(batch)
        except StoreWriteError as exc:
            summary["failed_batches"] += 1
            summary["failed_rows"] += len(batch)
            logger.error("candidate batch %d failed (%d rows): %s", start // size, len(batch), exc)
    logger.info(
        "persisted %d/%d candidates for %s (%d failed batches)",
        summary["inserted"],
        len(rows),
        analysis_date,
        summary["failed_batches"],
    )
    return summary
