"""
End-to-end tests for Scheduler across every solver.

Tests cover:
1. Unsolvable and solvable two-item schedules with pins
2. Pins colliding on one item, pins to unknown items
3. Problems a single greedy pass gets wrong but backtracking solves
4. Invariants: no overlaps per item, pins honoured, reset on re-registration
5. Determinism and re-scheduling

Run with: pytest tests/test_scheduler.py -v
"""

import sys
from datetime import datetime
from pathlib import Path

import pytest

from src.bridge.subprocess_solver import SubprocessSolver
from src.scheduling.config import SchedulerConfig, SearchConfig
from src.scheduling.conflict import conflicts
from src.scheduling.errors import (
    ConflictError,
    InvalidInputError,
    InvalidLockError,
    SchedulingTimeoutError,
)
from src.scheduling.protocol import ConflictResponse, TimeoutResponse
from src.scheduling.scheduler import Scheduler
from src.scheduling.solver import BacktrackingSolver, CPSATSolver
from src.scheduling.terms import Term

ROOT = Path(__file__).resolve().parents[1]
SOLVER_CMD = [sys.executable, "-m", "src.bridge.solver_process"]


def _at(hour: int, minute: int = 0) -> datetime:
    return datetime(2019, 1, 1, hour, minute)


def _term(start_h: int, end_h: int, locked_id: int | None = None) -> Term:
    return Term(_at(start_h), _at(end_h), locked_id)


def _assert_valid_schedule(scheduler: Scheduler, item_ids: list[int]) -> None:
    """Every term placed on a registered item, pins honoured, no overlaps per item."""
    terms = scheduler.get_terms()
    for term in terms:
        assert term.get_item_id() in item_ids, f"{term} not assigned to a registered item"
        if term.get_locked_id() is not None:
            assert term.get_item_id() == term.get_locked_id()

    for item_id in item_ids:
        on_item = scheduler.registry.terms_on(item_id)
        assert all(t.get_item_id() == item_id for t in on_item)
        for i, a in enumerate(on_item):
            for b in on_item[i + 1 :]:
                assert not conflicts(a, b), f"{a} overlaps {b} on item {item_id}"

    assert sum(len(scheduler.registry.terms_on(i)) for i in item_ids) == len(terms)


# ── Fixtures ──────────────────────────────────────────────────────


@pytest.fixture(params=["recursive", "iterative", "cpsat", "subprocess"])
def solver(request):
    """Every solver must satisfy the same scheduling contract."""
    if request.param == "cpsat":
        return CPSATSolver()
    if request.param == "subprocess":
        return SubprocessSolver(SOLVER_CMD, timeout_s=60, cwd=ROOT)
    return BacktrackingSolver(SearchConfig(mode=request.param))


@pytest.fixture
def base_terms() -> list[Term]:
    """Four terms shared by the two-item scenarios: two free, two pinned."""
    return [
        _term(7, 12),
        _term(13, 16, locked_id=1),
        _term(8, 14),
        _term(17, 20, locked_id=2),
    ]


# ── Scenarios ─────────────────────────────────────────────────────


class TestScenarios:
    """Fixed scenarios every solver must agree on."""

    def test_more_overlapping_terms_than_items(self, solver, base_terms):
        t5 = _term(9, 15)
        scheduler = Scheduler([1, 2], base_terms, solver=solver)
        scheduler.add_term(t5)

        with pytest.raises(ConflictError) as exc_info:
            scheduler.schedule()

        # first unplaceable term followed by everything overlapping it
        t1, _, t3, _ = base_terms
        assert exc_info.value.conflicting_terms[0] is t1
        assert {id(t) for t in exc_info.value.conflicting_terms} == {id(t1), id(t3), id(t5)}

    def test_two_overlapping_terms_locked_to_same_item(self, solver, base_terms):
        t5 = _term(19, 21, locked_id=2)
        scheduler = Scheduler([1, 2], base_terms, solver=solver)
        scheduler.add_term(t5)

        with pytest.raises(ConflictError) as exc_info:
            scheduler.schedule()

        assert exc_info.value.conflicting_terms == [t5, base_terms[3]]

    def test_solvable_schedule(self, solver, base_terms):
        t5 = _term(21, 23)
        scheduler = Scheduler([1, 2], base_terms, solver=solver)
        scheduler.add_term(t5)
        scheduler.schedule()

        assert len(scheduler.get_terms()) == 5
        _assert_valid_schedule(scheduler, [1, 2])
        assert base_terms[1].get_item_id() == 1
        assert base_terms[3].get_item_id() == 2

    def test_backtracking_solves_greedy_failure(self, solver):
        """A first-fit pass puts the 13-14 term on item 1 and strands 10-15.

        Item 2 already holds pins at 10-12 and 15-16, so the only solution is
        13-14 on item 2 and 10-15 on item 1.
        """
        t1 = _term(13, 14)
        t2 = _term(10, 15)
        t3 = _term(10, 12, locked_id=2)
        t4 = _term(15, 16, locked_id=2)

        scheduler = Scheduler([1, 2], [t1, t2, t3, t4], solver=solver)
        scheduler.schedule()

        _assert_valid_schedule(scheduler, [1, 2])
        assert t3.get_item_id() == 2
        assert t4.get_item_id() == 2
        assert t1.get_item_id() == 2
        assert t2.get_item_id() == 1

    def test_complex_solvable_schedule(self, solver):
        spans = [
            (1, 3), (1, 3), (1, 4), (1, 5), (7, 12), (4, 6), (4, 11), (13, 18),
            (13, 14), (8, 10), (11, 18), (6, 8), (5, 7), (16, 23), (16, 18),
            (20, 23), (19, 21), (22, 23), (21, 22),
        ]  # fmt: skip
        terms = [_term(a, b) for a, b in spans]

        scheduler = Scheduler([1, 2], terms[:4], solver=solver)
        for term in terms[4:]:
            scheduler.add_term(term)
        scheduler.add_item(3)
        scheduler.add_item(4)
        scheduler.schedule()

        assert len(scheduler.get_terms()) == 19
        _assert_valid_schedule(scheduler, [1, 2, 3, 4])

    def test_empty_inputs(self, solver):
        scheduler = Scheduler([], [], solver=solver)

        with pytest.raises(InvalidInputError, match="Set at least one item and term"):
            scheduler.schedule()

    def test_items_without_terms(self, solver):
        scheduler = Scheduler([1, 2], [], solver=solver)

        with pytest.raises(InvalidInputError):
            scheduler.schedule()

    def test_invalid_locked_item(self, solver):
        t1 = _term(7, 12)
        t2 = _term(13, 16, locked_id=999)
        scheduler = Scheduler([1, 2], [t1, t2], solver=solver)

        with pytest.raises(InvalidLockError) as exc_info:
            scheduler.schedule()

        assert exc_info.value.term is t2
        assert exc_info.value.item_id == 999
        assert "999" in str(exc_info.value)

    def test_more_terms_than_items_all_disjoint(self, solver):
        terms = [_term(h, h) for h in range(0, 24, 2)]
        scheduler = Scheduler([1], terms, solver=solver)
        scheduler.schedule()

        _assert_valid_schedule(scheduler, [1])


# ── Invariants and lifecycle ──────────────────────────────────────


class TestSchedulerLifecycle:
    """Registration, re-scheduling and failure behaviour of the in-process engine."""

    def test_shortest_term_placed_first(self, base_terms):
        t5 = _term(21, 23)
        scheduler = Scheduler([1, 2], base_terms + [t5])
        scheduler.schedule()

        # 21-23 is the shortest free term, tried on item 1 first
        assert t5.get_item_id() == 1
        assert base_terms[0].get_item_id() == 1
        assert base_terms[2].get_item_id() == 2
        assert scheduler.registry.terms_on(1) == [base_terms[0], base_terms[1], t5]

    def test_touching_terms_conflict(self):
        a = Term(0, 10)
        b = Term(10, 20)
        scheduler = Scheduler([1], [a, b])

        with pytest.raises(ConflictError):
            scheduler.schedule()

    def test_epoch_second_timestamps(self):
        terms = [Term(0, 100), Term(50, 150), Term(101, 200)]
        scheduler = Scheduler([1, 2], terms)
        scheduler.schedule()

        _assert_valid_schedule(scheduler, [1, 2])

    def test_readding_term_resets_assignment(self, base_terms):
        scheduler = Scheduler([1, 2], base_terms)
        scheduler.schedule()
        moved = base_terms[0]
        assert moved.get_item_id() is not None

        scheduler.add_term(moved)

        assert moved.get_item_id() is None
        assert len(scheduler.get_terms()) == 4
        assert all(moved not in scheduler.registry.terms_on(i) for i in (1, 2))

    def test_adding_term_resets_foreign_assignment(self):
        term = Term(0, 10)
        term.set_item_id(7)

        Scheduler([1], [term])

        assert term.get_item_id() is None

    def test_reschedule_after_change(self, base_terms):
        scheduler = Scheduler([1, 2], base_terms)
        scheduler.schedule()

        scheduler.add_term(_term(21, 23))
        scheduler.schedule()

        _assert_valid_schedule(scheduler, [1, 2])

    def test_failed_run_leaves_terms_unassigned(self, base_terms):
        scheduler = Scheduler([1, 2], base_terms)
        scheduler.schedule()

        scheduler.add_term(_term(9, 15))
        with pytest.raises(ConflictError):
            scheduler.schedule()

        assert all(t.get_item_id() is None for t in scheduler.get_terms())
        assert scheduler.registry.terms_on(1) == []
        assert scheduler.registry.terms_on(2) == []

    def test_deterministic_assignment(self):
        def run() -> list[int | None]:
            terms = [
                _term(1, 3), _term(2, 5), _term(4, 6), _term(1, 2),
                _term(5, 9), _term(6, 7), _term(8, 10), _term(3, 4),
            ]  # fmt: skip
            scheduler = Scheduler([10, 20, 30], terms)
            scheduler.schedule()
            return [t.get_item_id() for t in scheduler.get_terms()]

        assert run() == run()

    def test_malformed_interval_rejected(self):
        scheduler = Scheduler([1])

        with pytest.raises(InvalidInputError):
            scheduler.add_term(Term(_at(12), _at(10)))
        assert scheduler.get_terms() == []

    def test_solver_timeout_raises(self):
        class TimingOut:
            def solve(self, request):
                return TimeoutResponse(message="Scheduler timeout exceeded")

        scheduler = Scheduler([1], [Term(0, 1)], solver=TimingOut())

        with pytest.raises(SchedulingTimeoutError):
            scheduler.schedule()

    def test_time_limit_forwarded_to_solver(self):
        seen = []

        class Recording:
            def solve(self, request):
                seen.append(request.timeout)
                return ConflictResponse(message="Conflict in terms", conflicts=[0])

        config = SchedulerConfig(search=SearchConfig(time_limit_s=2.5))
        scheduler = Scheduler([1], [Term(0, 1)], config=config, solver=Recording())

        with pytest.raises(ConflictError):
            scheduler.schedule()
        assert seen == [2.5]

    def test_config_strategy_selects_solver(self):
        scheduler = Scheduler([1], [Term(0, 1)], config=SchedulerConfig(strategy="cpsat"))

        assert isinstance(scheduler.solver, CPSATSolver)
        scheduler.schedule()
        assert scheduler.get_terms()[0].get_item_id() == 1
