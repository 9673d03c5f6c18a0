"""
Lock resolution: commit pinned terms before any free placement.

Pinned terms are processed in registration order, so when two pins collide on
one item the earlier-registered term keeps the slot and the later one is
reported.
"""

from __future__ import annotations

import logging

from src.scheduling.protocol import ConflictResponse, InvalidItemResponse, SolveRequest
from src.scheduling.search import SearchState

logger = logging.getLogger(__name__)


def resolve_locks(
    request: SolveRequest,
    state: SearchState,
) -> InvalidItemResponse | ConflictResponse | None:
    """Place every pinned term of ``request`` on its item.

    Args:
        request: The scheduling problem.
        state: Empty search state over the request's terms and items;
            pinned terms are committed into it.

    Returns:
        None when all pins were committed, otherwise the failure outcome:
        ``InvalidItemResponse`` for a pin to an unregistered item,
        ``ConflictResponse`` carrying ``[term, occupant]`` for two
        overlapping pins on the same item.
    """
    item_index = {item_id: idx for idx, item_id in enumerate(request.items)}
    n_locked = 0

    for t_idx, term in enumerate(request.terms):
        locked_id = term.locked_id
        if locked_id is None:
            continue

        i_idx = item_index.get(locked_id)
        if i_idx is None:
            return InvalidItemResponse(
                message=f"Term locked to unknown item: {locked_id}",
                term_id=term.id,
                item_id=locked_id,
            )

        occupant = state.first_occupant_conflict(t_idx, i_idx)
        if occupant is not None:
            return ConflictResponse(
                message=f"Conflict in terms for item {locked_id}",
                conflicts=[term.id, request.terms[occupant].id],
            )

        state.assign(t_idx, i_idx)
        n_locked += 1

    logger.debug("committed %d pinned terms", n_locked)
    return None
