"""
Pairwise overlap test between terms.

Intervals are closed: two terms that merely touch at an endpoint conflict.

Usage:
    conflicts(term_a, term_b)          # single pair, any get_from/get_to objects
    matrix = conflict_matrix(froms, tos)
    # matrix[i, j] = True if term i and term j overlap (diagonal False)
"""

from __future__ import annotations

from typing import Any, Protocol, Sequence

import numpy as np


class _Span(Protocol):
    def get_from(self) -> Any: ...

    def get_to(self) -> Any: ...


def conflicts(a: _Span, b: _Span) -> bool:
    """Closed-interval overlap."""
    return a.get_from() <= b.get_to() and b.get_from() <= a.get_to()


def conflict_matrix(froms: Sequence[int] | np.ndarray, tos: Sequence[int] | np.ndarray) -> np.ndarray:
    """Vectorised ``conflicts`` over every pair of intervals.

    Args:
        froms: Interval starts, one per term.
        tos: Interval ends, aligned with ``froms``.

    Returns:
        n×n boolean array. A term is never reported as conflicting with itself.
    """
    f = np.asarray(froms, dtype=np.int64)
    t = np.asarray(tos, dtype=np.int64)
    matrix = (f[:, None] <= t[None, :]) & (f[None, :] <= t[:, None])
    np.fill_diagonal(matrix, False)
    return matrix
