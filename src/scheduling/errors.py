"""
Exceptions raised by ``Scheduler.schedule()`` and the solver bridge.

Every failure aborts the whole scheduling run. ``ConflictError`` means the
problem has no feasible assignment; ``BridgeError`` means the external solver
could not give an answer at all. Callers that need to tell those apart must
catch ``BridgeError`` separately.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Sequence

if TYPE_CHECKING:
    from src.scheduling.terms import TermLike


class SchedulerError(Exception):
    """Base class for all scheduling failures."""


class InvalidInputError(SchedulerError, ValueError):
    """The registry cannot be scheduled as given (no items, no terms, bad interval)."""


class InvalidLockError(SchedulerError, LookupError):
    """A term is pinned to an item id that was never registered."""

    def __init__(self, message: str, term: TermLike, item_id: int) -> None:
        super().__init__(message)
        self.term = term
        self.item_id = item_id


class ConflictError(SchedulerError):
    """No feasible placement exists for some term.

    ``conflicting_terms`` is a best-effort set: for pin-vs-pin failures it is
    the pair, for search failures it is the first unplaceable term followed by
    every term overlapping it. It is not a minimal unsatisfiable core.
    """

    def __init__(self, message: str, conflicting_terms: Sequence[TermLike] = ()) -> None:
        super().__init__(message)
        self.conflicting_terms = list(conflicting_terms)


class SchedulingTimeoutError(SchedulerError):
    """The solver ran out of its configured time budget."""


class BridgeError(SchedulerError):
    """The external solver process failed or answered outside the protocol."""


class BridgeTimeoutError(BridgeError, SchedulingTimeoutError):
    """The external solver process was killed after exceeding ``timeout_s``."""
