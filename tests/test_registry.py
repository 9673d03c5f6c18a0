"""
Tests for the term/item registry and the solver snapshot it produces.

Run with: pytest tests/test_registry.py -v
"""

from datetime import datetime, timezone

import pytest

from src.scheduling.errors import InvalidInputError
from src.scheduling.registry import Registry
from src.scheduling.terms import Term, TermLike, epoch_bounds


class BookingStub:
    """Caller-side class that only provides the accessor capability."""

    def __init__(self, start, end, locked_id=None):
        self._start = start
        self._end = end
        self._locked_id = locked_id
        self._item_id = None

    def get_from(self):
        return self._start

    def get_to(self):
        return self._end

    def get_locked_id(self):
        return self._locked_id

    def get_item_id(self):
        return self._item_id

    def set_item_id(self, item_id):
        self._item_id = item_id


@pytest.fixture
def registry() -> Registry:
    reg = Registry()
    reg.add_item(1)
    reg.add_item(2)
    return reg


class TestRegistration:
    def test_add_item_idempotent(self, registry):
        registry.add_item(1)
        assert registry.item_ids == [1, 2]

    def test_items_keep_registration_order(self):
        reg = Registry()
        for item_id in (30, 10, 20):
            reg.add_item(item_id)
        assert reg.item_ids == [30, 10, 20]

    def test_add_term_resets_assignment(self, registry):
        term = Term(0, 10)
        term.set_item_id(2)

        registry.add_term(term)

        assert term.get_item_id() is None
        assert registry.terms == [term]

    def test_readd_does_not_duplicate(self, registry):
        a, b = Term(0, 10), Term(20, 30)
        registry.add_term(a)
        registry.add_term(b)
        registry.assign(a, 1)

        registry.add_term(a)

        assert registry.terms == [a, b]
        assert registry.terms_on(1) == []
        assert a.get_item_id() is None

    def test_equal_but_distinct_terms_both_registered(self, registry):
        registry.add_term(Term(0, 10))
        registry.add_term(Term(0, 10))
        assert len(registry) == 2

    def test_start_after_end_rejected(self, registry):
        with pytest.raises(InvalidInputError, match="starts after it ends"):
            registry.add_term(Term(10, 0))
        assert len(registry) == 0

    def test_unsupported_timestamp_rejected(self, registry):
        with pytest.raises(InvalidInputError, match="Unsupported timestamp"):
            registry.add_term(Term("07:00", "12:00"))

    def test_bool_timestamp_rejected(self, registry):
        with pytest.raises(InvalidInputError):
            registry.add_term(Term(True, 10))

    def test_accepts_any_term_like(self, registry):
        booking = BookingStub(0, 10, locked_id=2)
        assert isinstance(booking, TermLike)

        registry.add_term(booking)
        registry.assign(booking, 2)

        assert booking.get_item_id() == 2
        assert registry.terms_on(2) == [booking]


class TestAssignmentBookkeeping:
    def test_assign_and_clear(self, registry):
        a, b = Term(0, 10), Term(20, 30)
        registry.add_term(a)
        registry.add_term(b)
        registry.assign(b, 2)
        registry.assign(a, 2)

        assert registry.terms_on(2) == [b, a]

        registry.clear_assignments()

        assert registry.terms_on(2) == []
        assert a.get_item_id() is None and b.get_item_id() is None

    def test_terms_returns_copy(self, registry):
        registry.add_term(Term(0, 1))
        registry.terms.clear()
        assert len(registry) == 1


class TestSnapshot:
    def test_ids_are_registration_indices(self, registry):
        for start in (0, 100, 200):
            registry.add_term(Term(start, start + 50))

        request = registry.to_request()

        assert request.items == [1, 2]
        assert [t.id for t in request.terms] == [0, 1, 2]
        assert request.timeout is None

    def test_fractional_bounds_widened(self, registry):
        registry.add_term(Term(10.7, 20.2))

        payload = registry.to_request().terms[0]

        assert (payload.from_, payload.to) == (10, 21)

    def test_datetime_bounds(self, registry):
        start = datetime(2019, 1, 1, 7, tzinfo=timezone.utc)
        end = datetime(2019, 1, 1, 12, 0, 0, 500000, tzinfo=timezone.utc)

        assert epoch_bounds(Term(start, end)) == (1546326000, 1546344001)

    def test_locked_id_and_timeout_carried(self, registry):
        registry.add_term(Term(0, 10, locked_id=2))
        registry.add_term(Term(0, 10))

        request = registry.to_request(timeout=1.5)

        assert [t.locked_id for t in request.terms] == [2, None]
        assert request.timeout == 1.5
