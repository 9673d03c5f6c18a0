"""
Scheduler facade: the caller-facing entry point.

Usage:
    scheduler = Scheduler([1, 2], [Term(t0, t1), Term(t2, t3, locked_id=1)])
    scheduler.add_term(Term(t4, t5))
    scheduler.schedule()
    for term in scheduler.get_terms():
        print(term.get_item_id())

``schedule()`` is the only thing that writes ``item_id`` on the registered
terms. Each run starts by clearing every previous assignment, solves a
snapshot of the registry, and writes the result back only if the run
succeeds. A failed run therefore leaves every term unassigned.
"""

from __future__ import annotations

import logging
from typing import Iterable

from src.scheduling.config import SchedulerConfig
from src.scheduling.errors import (
    BridgeError,
    ConflictError,
    InvalidInputError,
    InvalidLockError,
    SchedulingTimeoutError,
)
from src.scheduling.protocol import (
    ConflictResponse,
    InvalidItemResponse,
    OkResponse,
    SolveResponse,
    TimeoutResponse,
)
from src.scheduling.registry import Registry
from src.scheduling.solver import EMPTY_PROBLEM_MESSAGE, SolverStrategy, create_solver
from src.scheduling.terms import TermLike

logger = logging.getLogger(__name__)


class Scheduler:
    """Assigns registered terms to registered items without overlaps.

    Args:
        items: Item ids to register.
        terms: Terms to register, in order. Order matters: it decides which of
            two colliding pins wins and breaks ties in the search.
        config: Solver selection and tuning. Defaults to the in-process
            backtracking solver.
        solver: Explicit solver instance; overrides ``config.strategy``.
    """

    def __init__(
        self,
        items: Iterable[int] = (),
        terms: Iterable[TermLike] = (),
        config: SchedulerConfig | None = None,
        solver: SolverStrategy | None = None,
    ) -> None:
        self.config = config or SchedulerConfig()
        self.solver = solver or create_solver(config=self.config)
        self.registry = Registry()

        for item_id in items:
            self.add_item(item_id)
        for term in terms:
            self.add_term(term)

    def add_item(self, item_id: int) -> None:
        self.registry.add_item(item_id)

    def add_term(self, term: TermLike) -> None:
        """Register a term, resetting any assignment it carries."""
        self.registry.add_term(term)

    def get_terms(self) -> list[TermLike]:
        return self.registry.terms

    def schedule(self) -> None:
        """Assign every registered term to an item.

        Raises:
            InvalidInputError: no items or no terms registered.
            InvalidLockError: a term is pinned to an unregistered item.
            ConflictError: no feasible assignment exists.
            SchedulingTimeoutError: the solver ran out of time.
            BridgeError: the external solver failed (subprocess strategy).
        """
        if not self.registry.item_ids or not len(self.registry):
            raise InvalidInputError(EMPTY_PROBLEM_MESSAGE)

        self.registry.clear_assignments()
        request = self.registry.to_request(timeout=self.config.search.time_limit_s)
        response = self.solver.solve(request)
        self._apply(response)

    def _apply(self, response: SolveResponse) -> None:
        terms = self.registry.terms

        if isinstance(response, OkResponse):
            for assignment in response.assignments:
                if not self.registry.has_item(assignment.item_id):
                    raise BridgeError(f"Solver referenced unknown item {assignment.item_id}")
                self.registry.assign(_term(terms, assignment.term_id), assignment.item_id)
            logger.info(
                "scheduled %d terms on %d items",
                len(response.assignments),
                len(self.registry.item_ids),
            )
            return

        logger.info("scheduling failed: %s", response.status)

        if isinstance(response, InvalidItemResponse):
            raise InvalidLockError(response.message, _term(terms, response.term_id), response.item_id)
        if isinstance(response, ConflictResponse):
            if not response.conflicts and response.message == EMPTY_PROBLEM_MESSAGE:
                raise InvalidInputError(response.message)
            raise ConflictError(response.message, [_term(terms, i) for i in response.conflicts])
        if isinstance(response, TimeoutResponse):
            raise SchedulingTimeoutError(response.message)
        raise BridgeError(f"Unexpected solver outcome {response!r}")


def _term(terms: list[TermLike], term_id: int) -> TermLike:
    if not 0 <= term_id < len(terms):
        raise BridgeError(f"Solver referenced unknown term {term_id}")
    return terms[term_id]
