"""
Backtracking search with forward checking.

Places every term left unassigned after lock resolution. Terms are explored
shortest first (stable on ties) and items are tried in registration order, so
identical input always yields the identical assignment.

Search state is index-keyed and engine-internal: ``SearchState`` maps term
index → item index and keeps, per item, the term indices placed on it. Caller
term objects are untouched until the whole run succeeds.

Two traversals with the same visiting order are provided:
  recursive  one Python frame per placed term
  iterative  explicit stack, for inputs deeper than the interpreter's
             recursion limit allows
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from enum import Enum, auto
from typing import Sequence

import numpy as np

logger = logging.getLogger(__name__)


class SearchStatus(Enum):
    """Outcome of one search run"""

    FOUND = auto()  # every term placed
    EXHAUSTED = auto()  # search space fully explored, no placement exists
    TIMED_OUT = auto()  # time limit hit before either of the above


@dataclass
class SearchStats:
    """Counters for one search run."""

    nodes: int = 0  # tentative commits
    pruned: int = 0  # commits rejected by forward checking
    backtracks: int = 0  # levels abandoned after every item failed


class SearchState:
    """Index-keyed assignment shared by lock resolution and the search.

    Attributes:
        assignments: term index → item index, None while unassigned.
        item_terms: item index → term indices in assignment order.
    """

    def __init__(self, n_terms: int, n_items: int, conflict: np.ndarray) -> None:
        self.assignments: list[int | None] = [None] * n_terms
        self.item_terms: list[list[int]] = [[] for _ in range(n_items)]
        self.conflict = conflict

    @property
    def n_items(self) -> int:
        return len(self.item_terms)

    def fits(self, term: int, item: int) -> bool:
        """True if ``term`` overlaps nothing currently on ``item``."""
        occupants = self.item_terms[item]
        return not occupants or not self.conflict[term, occupants].any()

    def first_occupant_conflict(self, term: int, item: int) -> int | None:
        """First term on ``item`` (assignment order) that overlaps ``term``."""
        for other in self.item_terms[item]:
            if self.conflict[term, other]:
                return other
        return None

    def has_option(self, term: int) -> bool:
        return any(self.fits(term, item) for item in range(self.n_items))

    def assign(self, term: int, item: int) -> None:
        self.assignments[term] = item
        self.item_terms[item].append(term)

    def unassign(self, term: int, item: int) -> None:
        self.assignments[term] = None
        self.item_terms[item].pop()

    def first_unassigned(self) -> int | None:
        for term, item in enumerate(self.assignments):
            if item is None:
                return term
        return None

    def conflict_set(self, term: int) -> list[int]:
        """``term`` followed by every other term overlapping it."""
        return [term] + [int(other) for other in np.flatnonzero(self.conflict[term])]


def order_by_duration(terms: Sequence[int], durations: Sequence[int]) -> list[int]:
    """Shortest first; ``sorted`` is stable so ties keep their input order."""
    return sorted(terms, key=lambda t: durations[t])


class BacktrackingSearch:
    """Depth-first placement of ``order`` onto the items of ``state``.

    Args:
        state: Assignment after lock resolution; mutated in place.
        order: Term indices to place, in exploration order.
        deadline: ``time.monotonic()`` value after which the search gives up.
    """

    def __init__(
        self,
        state: SearchState,
        order: Sequence[int],
        deadline: float | None = None,
    ) -> None:
        self.state = state
        self.order = list(order)
        self.deadline = deadline
        self.stats = SearchStats()
        self._timed_out = False

    def run(self, iterative: bool = False) -> SearchStatus:
        t0 = time.perf_counter()
        found = self._place_iterative() if iterative else self._place(0)
        if found:
            status = SearchStatus.FOUND
        elif self._timed_out:
            status = SearchStatus.TIMED_OUT
        else:
            status = SearchStatus.EXHAUSTED
        logger.debug(
            "search %s: %d terms, %d nodes, %d pruned, %d backtracks, %.2f ms (%s)",
            status.name,
            len(self.order),
            self.stats.nodes,
            self.stats.pruned,
            self.stats.backtracks,
            (time.perf_counter() - t0) * 1e3,
            "iterative" if iterative else "recursive",
        )
        return status

    # ── Shared steps ──────────────────────────────────────────────────────────

    def _out_of_time(self) -> bool:
        if self.deadline is not None and time.monotonic() >= self.deadline:
            self._timed_out = True
        return self._timed_out

    def _forward_check(self, start: int) -> bool:
        """Every term from ``order[start]`` on still has at least one item."""
        state = self.state
        for term in self.order[start:]:
            if state.assignments[term] is not None:
                continue
            if not state.has_option(term):
                return False
        return True

    def _try(self, depth: int, item: int) -> bool:
        """Tentatively commit ``order[depth]`` to ``item``; keep it only if forward check passes."""
        term = self.order[depth]
        if not self.state.fits(term, item):
            return False
        self.state.assign(term, item)
        self.stats.nodes += 1
        if self._forward_check(depth + 1):
            return True
        self.stats.pruned += 1
        self.state.unassign(term, item)
        return False

    # ── Recursive traversal ───────────────────────────────────────────────────

    def _place(self, depth: int) -> bool:
        if depth >= len(self.order):
            return True
        if self._out_of_time():
            return False

        term = self.order[depth]
        for item in range(self.state.n_items):
            if not self._try(depth, item):
                continue
            if self._place(depth + 1):
                return True
            self.state.unassign(term, item)
            if self._timed_out:
                return False

        self.stats.backtracks += 1
        return False

    # ── Explicit-stack traversal ──────────────────────────────────────────────

    def _place_iterative(self) -> bool:
        n = len(self.order)
        next_item = [0] * n  # next item to try at each depth
        placed: list[int | None] = [None] * n  # item committed at each depth
        depth = 0

        while 0 <= depth < n:
            if self._out_of_time():
                return False

            term = self.order[depth]
            if placed[depth] is not None:
                # returning here after the deeper level failed
                self.state.unassign(term, placed[depth])
                placed[depth] = None

            advanced = False
            while next_item[depth] < self.state.n_items:
                item = next_item[depth]
                next_item[depth] += 1
                if self._try(depth, item):
                    placed[depth] = item
                    advanced = True
                    break

            if advanced:
                depth += 1
                if depth < n:
                    next_item[depth] = 0
            else:
                self.stats.backtracks += 1
                next_item[depth] = 0
                depth -= 1

        return depth >= n
