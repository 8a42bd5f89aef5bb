"""Errors raised by sweet-spot analysis flows."""

from __future__ import annotations

from typing import Any


class SweetSpotError(Exception):
    """Base error for sweet-spot operations."""


class DataFetchError(SweetSpotError):
    """Raised when an upstream read fails or returns partial data."""

    def __init__(self, message: str, *, source: str = "", partial: list[Any] | None = None) -> None:
        super().__init__(message)
        self.source = source
        self.partial = list(partial or [])


class InsufficientSampleError(SweetSpotError):
    """Raised when a rolling window is shorter than the minimum sample."""


class NoUpcomingGameError(SweetSpotError):
    """Raised when no live line exists for an otherwise-valid candidate."""


class ValidationInconsistency(SweetSpotError):
    """Raised when a computed value falls outside its domain."""


class StoreWriteError(SweetSpotError):
    """Raised when a candidate batch cannot be written to the store."""
