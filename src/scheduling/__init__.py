"""
Term scheduler: assign time intervals to resources without overlaps.

Pinned terms are committed first; the rest are placed by a backtracking
search with forward checking, or by any other solver honouring the same
request/response contract (CP-SAT, or an external process via src.bridge).

Quick start:
    from src.scheduling import Scheduler, Term
    scheduler = Scheduler([1, 2], [Term(0, 10), Term(5, 15, locked_id=2)])
    scheduler.schedule()
"""

from src.scheduling.config import SchedulerConfig, load_config
from src.scheduling.conflict import conflicts
from src.scheduling.errors import (
    BridgeError,
    BridgeTimeoutError,
    ConflictError,
    InvalidInputError,
    InvalidLockError,
    SchedulerError,
    SchedulingTimeoutError,
)
from src.scheduling.scheduler import Scheduler
from src.scheduling.solver import BacktrackingSolver, CPSATSolver, create_solver
from src.scheduling.terms import Term, TermLike

__all__ = [
    "Scheduler",
    "Term",
    "TermLike",
    "SchedulerConfig",
    "load_config",
    "conflicts",
    "BacktrackingSolver",
    "CPSATSolver",
    "create_solver",
    "SchedulerError",
    "InvalidInputError",
    "InvalidLockError",
    "ConflictError",
    "SchedulingTimeoutError",
    "BridgeError",
    "BridgeTimeoutError",
]
