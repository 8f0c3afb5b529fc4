"""Exception types raised by the sampling core and its collaborators."""
from __future__ import annotations

from typing import Any


class InsufficientSupportError(ValueError):
    """Raised when an initial support set cannot bound the target."""


class InvalidSampleCountError(ValueError):
    """Raised when a requested sample count is not a positive integer."""


class TargetConfigError(ValueError):
    """Raised when a target density is misconfigured or unknown."""


class IterationLimitError(RuntimeError):
    """Raised when a run exceeds its optional iteration budget.

    The partial run is discarded; ``state`` carries the counters reached so the
    caller can tell a slow target from a misconfigured one.
    """

    def __init__(self, message: str, state: Any = None) -> None:
        super().__init__(message)
        self.state = state


def validate_sample_count(n: Any) -> int:
    """Return ``n`` as an int, rejecting booleans, non-integers and non-positive values."""
    if isinstance(n, bool):
        raise InvalidSampleCountError(f"Sample count must be a positive integer, got {n!r}.")
    try:
        as_int = int(n)
    except (TypeError, ValueError) as exc:
        raise InvalidSampleCountError(f"Sample count must be a positive integer, got {n!r}.") from exc
    if as_int != n or as_int <= 0:
        raise InvalidSampleCountError(f"Sample count must be a positive integer, got {n!r}.")
    return as_int
