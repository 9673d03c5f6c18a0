"""
Interchangeable solvers for the term scheduler.

Every solver takes a ``SolveRequest`` and returns one ``SolveResponse``
variant; none of them touches caller-owned terms. ``Scheduler`` applies the
outcome, so the solvers are drop-in replacements for each other.

Solver menu
───────────
  BacktrackingSolver   lock resolution + DFS with forward checking   DEFAULT
  CPSATSolver          lock resolution + OR-Tools CP-SAT feasibility model
  SubprocessSolver     whole problem delegated to an external process
                       (src.bridge.subprocess_solver)

For any fixed input all solvers agree on solvable vs unsolvable. The
assignment they pick may differ.
"""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING, Protocol

from src.scheduling.config import SchedulerConfig, SearchConfig
from src.scheduling.conflict import conflict_matrix
from src.scheduling.errors import SchedulerError
from src.scheduling.locks import resolve_locks
from src.scheduling.protocol import (
    Assignment,
    ConflictResponse,
    OkResponse,
    SolveRequest,
    SolveResponse,
    TimeoutResponse,
)
from src.scheduling.search import BacktrackingSearch, SearchState, SearchStatus, order_by_duration

if TYPE_CHECKING:
    from src.bridge.subprocess_solver import SubprocessSolver

logger = logging.getLogger(__name__)

EMPTY_PROBLEM_MESSAGE = "Set at least one item and term"
CONFLICT_MESSAGE = "Conflict in terms"
TIMEOUT_MESSAGE = "Scheduler timeout exceeded"


class SolverStrategy(Protocol):
    """One-operation contract shared by every solver."""

    def solve(self, request: SolveRequest) -> SolveResponse: ...


# ─────────────────────────────────────────────────────────────────────────────
# Private helpers (shared by the in-process solvers)
# ─────────────────────────────────────────────────────────────────────────────


def _empty_problem(request: SolveRequest) -> ConflictResponse | None:
    if not request.items or not request.terms:
        return ConflictResponse(message=EMPTY_PROBLEM_MESSAGE, conflicts=[])
    return None


def _build_state(request: SolveRequest) -> SearchState:
    conflict = conflict_matrix(
        [t.from_ for t in request.terms],
        [t.to for t in request.terms],
    )
    return SearchState(len(request.terms), len(request.items), conflict)


def _free_terms(state: SearchState) -> list[int]:
    return [t for t, item in enumerate(state.assignments) if item is None]


def _time_limit(request: SolveRequest, config: SearchConfig) -> float | None:
    return request.timeout if request.timeout is not None else config.time_limit_s


def _ok(request: SolveRequest, state: SearchState) -> OkResponse:
    return OkResponse(
        assignments=[
            Assignment(term_id=request.terms[t].id, item_id=request.items[item])
            for t, item in enumerate(state.assignments)
            if item is not None
        ]
    )


def _unplaceable(request: SolveRequest, state: SearchState) -> ConflictResponse:
    """First still-unassigned term plus everything overlapping it (best effort)."""
    first = state.first_unassigned()
    conflicts = [] if first is None else [request.terms[t].id for t in state.conflict_set(first)]
    return ConflictResponse(message=CONFLICT_MESSAGE, conflicts=conflicts)


# ─────────────────────────────────────────────────────────────────────────────
# Solver 1 — BacktrackingSolver
# ─────────────────────────────────────────────────────────────────────────────


class BacktrackingSolver:
    """Default solver: pins first, then depth-first search over the rest.

    Free terms are explored shortest first; each tentative placement is kept
    only if every later term still has at least one item it fits on.
    Worst case is exponential in the number of free terms. Forward checking
    and the ordering only prune; they guarantee nothing about run time.
    """

    def __init__(self, search_config: SearchConfig | None = None) -> None:
        self.config = search_config or SearchConfig()
        self.total_solves: int = 0
        self.total_failures: int = 0
        self.total_solve_time_ms: float = 0.0

    def solve(self, request: SolveRequest) -> SolveResponse:
        t0 = time.perf_counter()
        response = self._solve(request)
        ms = (time.perf_counter() - t0) * 1e3
        self.total_solves += 1
        self.total_solve_time_ms += ms
        if response.status != "ok":
            self.total_failures += 1
        logger.debug("backtracking solve: %s in %.2f ms", response.status, ms)
        return response

    def _solve(self, request: SolveRequest) -> SolveResponse:
        empty = _empty_problem(request)
        if empty is not None:
            return empty

        state = _build_state(request)
        failure = resolve_locks(request, state)
        if failure is not None:
            return failure

        free = _free_terms(state)
        order = order_by_duration(free, [t.duration for t in request.terms])

        limit = _time_limit(request, self.config)
        deadline = None if limit is None else time.monotonic() + limit
        search = BacktrackingSearch(state, order, deadline=deadline)
        status = search.run(iterative=self.config.use_iterative(len(order)))

        if status == SearchStatus.FOUND:
            return _ok(request, state)
        if status == SearchStatus.TIMED_OUT:
            return TimeoutResponse(message=TIMEOUT_MESSAGE)
        return _unplaceable(request, state)


# ─────────────────────────────────────────────────────────────────────────────
# Solver 2 — CPSATSolver
# ─────────────────────────────────────────────────────────────────────────────


class CPSATSolver:
    """Pins first, then a CP-SAT feasibility model for the free terms.

    Model
    ─────
    x[t, i]  bool, term t on item i; only created when t fits next to the pins on i
    Σ_i x[t, i] = 1                        every free term placed exactly once
    ¬x[a, i] ∨ ¬x[b, i]                    overlapping free terms never share an item

    No objective: the first feasible solution is accepted. A single search
    worker keeps the answer deterministic.
    """

    def __init__(self, search_config: SearchConfig | None = None) -> None:
        self.config = search_config or SearchConfig()
        self.total_solves: int = 0
        self.total_failures: int = 0
        self.total_solve_time_ms: float = 0.0

    def solve(self, request: SolveRequest) -> SolveResponse:
        t0 = time.perf_counter()
        response = self._solve(request)
        ms = (time.perf_counter() - t0) * 1e3
        self.total_solves += 1
        self.total_solve_time_ms += ms
        if response.status != "ok":
            self.total_failures += 1
        logger.debug("cpsat solve: %s in %.2f ms", response.status, ms)
        return response

    def _solve(self, request: SolveRequest) -> SolveResponse:
        empty = _empty_problem(request)
        if empty is not None:
            return empty

        state = _build_state(request)
        failure = resolve_locks(request, state)
        if failure is not None:
            return failure

        free = _free_terms(state)
        if not free:
            return _ok(request, state)

        from ortools.sat.python import cp_model  # pylint: disable=import-outside-toplevel

        model = cp_model.CpModel()
        x = {
            (t, i): model.NewBoolVar(f"x_{t}_{i}")
            for t in free
            for i in range(state.n_items)
            if state.fits(t, i)
        }

        for t in free:
            options = [x[(t, i)] for i in range(state.n_items) if (t, i) in x]
            if not options:
                return _unplaceable(request, state)
            model.AddExactlyOne(options)

        for pos, a in enumerate(free):
            for b in free[pos + 1 :]:
                if not state.conflict[a, b]:
                    continue
                for i in range(state.n_items):
                    if (a, i) in x and (b, i) in x:
                        model.AddBoolOr([x[(a, i)].Not(), x[(b, i)].Not()])

        solver = cp_model.CpSolver()
        solver.parameters.num_workers = 1  # deterministic
        limit = _time_limit(request, self.config)
        if limit is not None:
            solver.parameters.max_time_in_seconds = limit

        status_code = solver.Solve(model)

        if status_code in (cp_model.OPTIMAL, cp_model.FEASIBLE):
            for t in free:
                for i in range(state.n_items):
                    if (t, i) in x and solver.Value(x[(t, i)]) == 1:
                        state.assign(t, i)
                        break
            return _ok(request, state)
        if status_code == cp_model.INFEASIBLE:
            return _unplaceable(request, state)
        if status_code == cp_model.UNKNOWN:
            return TimeoutResponse(message=TIMEOUT_MESSAGE)
        raise SchedulerError(f"CP-SAT rejected the model: {solver.StatusName(status_code)}")


# ─────────────────────────────────────────────────────────────────────────────
# Factory
# ─────────────────────────────────────────────────────────────────────────────


def create_solver(
    strategy: str | None = None,
    config: SchedulerConfig | None = None,
) -> BacktrackingSolver | CPSATSolver | SubprocessSolver:
    """Instantiate and return the requested solver.

    strategy options
    ─────────────────
    "backtracking" → BacktrackingSolver  in-process, default
    "cpsat"        → CPSATSolver         in-process, requires or-tools
    "subprocess"   → SubprocessSolver    external process from config.bridge

    ``strategy`` defaults to ``config.strategy``.
    """
    config = config or SchedulerConfig()
    strategy = strategy or config.strategy
    if strategy == "backtracking":
        return BacktrackingSolver(config.search)
    if strategy == "cpsat":
        return CPSATSolver(config.search)
    if strategy == "subprocess":
        from src.bridge.subprocess_solver import SubprocessSolver  # pylint: disable=import-outside-toplevel

        return SubprocessSolver.from_config(config.bridge)
    raise ValueError(
        f"Unknown strategy {strategy!r}. Valid options: 'backtracking', 'cpsat', 'subprocess'."
    )
