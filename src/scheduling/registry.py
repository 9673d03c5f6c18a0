"""
Term/Item registry.

Holds every registered term in insertion order and, per item id, the terms
currently assigned to that item in assignment order. A term sits in exactly
one item's list iff its ``item_id`` is that item's id.
"""

from __future__ import annotations

from typing import Iterator

from src.scheduling.errors import InvalidInputError
from src.scheduling.protocol import SolveRequest, TermPayload
from src.scheduling.terms import TermLike, epoch_bounds, is_well_formed


class Registry:
    """Items and terms known to one scheduler."""

    def __init__(self) -> None:
        self._items: dict[int, list[TermLike]] = {}
        self._terms: list[TermLike] = []

    # ── Registration ──────────────────────────────────────────────────────────

    def add_item(self, item_id: int) -> None:
        """Register an item. Registering an existing id is a no-op."""
        self._items.setdefault(int(item_id), [])

    def add_term(self, term: TermLike) -> None:
        """Register a term and clear any previous assignment it carries.

        Re-registering the same object detaches it from its item and keeps its
        original position instead of adding a second entry.
        """
        if not is_well_formed(term):
            raise InvalidInputError(
                f"Term starts after it ends: {term.get_from()!r} > {term.get_to()!r}"
            )
        if any(t is term for t in self._terms):
            self._detach(term)
        else:
            self._terms.append(term)
        term.set_item_id(None)

    # ── Queries ───────────────────────────────────────────────────────────────

    @property
    def item_ids(self) -> list[int]:
        return list(self._items)

    @property
    def terms(self) -> list[TermLike]:
        return list(self._terms)

    def has_item(self, item_id: int) -> bool:
        return item_id in self._items

    def terms_on(self, item_id: int) -> list[TermLike]:
        """Terms assigned to ``item_id`` in assignment order."""
        return list(self._items[item_id])

    def __iter__(self) -> Iterator[TermLike]:
        return iter(self._terms)

    def __len__(self) -> int:
        return len(self._terms)

    # ── Assignment bookkeeping ────────────────────────────────────────────────

    def assign(self, term: TermLike, item_id: int) -> None:
        self._items[item_id].append(term)
        term.set_item_id(item_id)

    def clear_assignments(self) -> None:
        """Unassign every term and empty every item."""
        for assigned in self._items.values():
            assigned.clear()
        for term in self._terms:
            term.set_item_id(None)

    def to_request(self, timeout: float | None = None) -> SolveRequest:
        """Snapshot the registry as a solver request; term ids are list indices."""
        payloads = []
        for idx, term in enumerate(self._terms):
            start, end = epoch_bounds(term)
            payloads.append(
                TermPayload(id=idx, from_=start, to=end, locked_id=term.get_locked_id())
            )
        return SolveRequest(items=self.item_ids, terms=payloads, timeout=timeout)

    def _detach(self, term: TermLike) -> None:
        item_id = term.get_item_id()
        if item_id is None or item_id not in self._items:
            return
        self._items[item_id] = [t for t in self._items[item_id] if t is not term]
