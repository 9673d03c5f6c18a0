"""
Term capability consumed by the scheduler, plus a ready-made record type.

The engine never inspects anything beyond the five accessors of
``TermLike``. Any caller-side class that provides them can be scheduled;
``Term`` is a plain dataclass implementation for callers that do not have
their own booking model.

Timestamps may be ``datetime`` objects or real numbers (epoch seconds).
Before solving, every term is snapshotted as integer epoch seconds with the
start floored and the end ceiled, so in-process and out-of-process solvers
compare exactly the same numbers.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime
from numbers import Real
from typing import Any, Protocol, runtime_checkable

from src.scheduling.errors import InvalidInputError


@runtime_checkable
class TermLike(Protocol):
    """Anything the scheduler can place on an item."""

    def get_from(self) -> Any: ...

    def get_to(self) -> Any: ...

    def get_locked_id(self) -> int | None: ...

    def get_item_id(self) -> int | None: ...

    def set_item_id(self, item_id: int | None) -> None: ...


@dataclass(eq=False)
class Term:
    """A time interval, optionally pinned to one item.

    Attributes:
        start: Interval start (``datetime`` or epoch seconds).
        end: Interval end, inclusive.
        locked_id: Item the term must be placed on, or None.
        item_id: Item chosen by the scheduler. Written by the engine only.
    """

    start: Any
    end: Any
    locked_id: int | None = None
    item_id: int | None = field(default=None, repr=False)

    def get_from(self) -> Any:
        return self.start

    def get_to(self) -> Any:
        return self.end

    def get_locked_id(self) -> int | None:
        return self.locked_id

    def get_item_id(self) -> int | None:
        return self.item_id

    def set_item_id(self, item_id: int | None) -> None:
        self.item_id = item_id


def _to_seconds(value: Any) -> float:
    if isinstance(value, datetime):
        return value.timestamp()
    if isinstance(value, Real) and not isinstance(value, bool):
        return float(value)
    raise InvalidInputError(
        f"Unsupported timestamp {value!r}: expected datetime or epoch seconds"
    )


def epoch_bounds(term: TermLike) -> tuple[int, int]:
    """Return ``(from, to)`` as whole epoch seconds, widened outwards."""
    return math.floor(_to_seconds(term.get_from())), math.ceil(_to_seconds(term.get_to()))


def is_well_formed(term: TermLike) -> bool:
    """True if the term's start does not lie after its end."""
    return _to_seconds(term.get_from()) <= _to_seconds(term.get_to())
