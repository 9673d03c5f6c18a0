"""
run_scheduler.py
──────────────────────────────────────────────────────────────────────────────
Schedule a problem file and print the resulting assignment.

Problem file (JSON):
    {
      "items": [1, 2],
      "terms": [
        {"from": "2019-01-01T07:00:00", "to": "2019-01-01T12:00:00"},
        {"from": "2019-01-01T13:00:00", "to": "2019-01-01T16:00:00", "locked_id": 1}
      ]
    }
Timestamps are ISO-8601 strings or epoch seconds.

Usage:
    python scripts/run_scheduler.py problem.json
    python scripts/run_scheduler.py problem.json --strategy cpsat
    python scripts/run_scheduler.py problem.json --strategy subprocess --timeout 5
    python scripts/run_scheduler.py problem.json --config config/default_scheduler.yaml

Exit codes: 0 scheduled, 1 no feasible assignment / bad input, 2 solver failure.
"""

import argparse
import dataclasses
import json
import sys
from datetime import datetime
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from src.scheduling.config import SchedulerConfig, load_config  # noqa: E402
from src.scheduling.errors import (  # noqa: E402
    BridgeError,
    ConflictError,
    InvalidInputError,
    InvalidLockError,
    SchedulingTimeoutError,
)
from src.scheduling.log_setup import setup_logging  # noqa: E402
from src.scheduling.scheduler import Scheduler  # noqa: E402
from src.scheduling.terms import Term  # noqa: E402


def _timestamp(value):
    if isinstance(value, str):
        return datetime.fromisoformat(value)
    return value


def load_problem(path: Path) -> tuple[list[int], list[Term]]:
    with open(path, encoding="utf-8") as f:
        raw = json.load(f)
    items = [int(i) for i in raw.get("items", [])]
    terms = [
        Term(_timestamp(t["from"]), _timestamp(t["to"]), t.get("locked_id"))
        for t in raw.get("terms", [])
    ]
    return items, terms


def main() -> int:
    """Main"""

    parser = argparse.ArgumentParser(description="Assign terms to items without overlaps")
    parser.add_argument("problem", type=str, help="Path to a problem JSON file")
    parser.add_argument(
        "--config",
        type=str,
        default="config/default_scheduler.yaml",
        help="Path to scheduler config YAML",
    )
    parser.add_argument(
        "--strategy",
        type=str,
        default=None,
        choices=["backtracking", "cpsat", "subprocess"],
        help="Solver (overrides config)",
    )
    parser.add_argument(
        "--timeout", type=float, default=None, help="Solver time limit in seconds (overrides config)"
    )
    args = parser.parse_args()

    config_path = Path(args.config)
    config = load_config(config_path) if config_path.exists() else SchedulerConfig()
    setup_logging(config.logging)

    if args.strategy is not None:
        config = dataclasses.replace(config, strategy=args.strategy)
    if args.timeout is not None:
        config = dataclasses.replace(
            config,
            search=dataclasses.replace(config.search, time_limit_s=args.timeout),
            bridge=dataclasses.replace(config.bridge, timeout_s=args.timeout),
        )

    items, terms = load_problem(Path(args.problem))
    try:
        scheduler = Scheduler(items, terms, config=config)
        scheduler.schedule()
    except InvalidLockError as exc:
        print(f"Invalid lock: {exc} (term {terms.index(exc.term)})")
        return 1
    except ConflictError as exc:
        ids = [terms.index(t) for t in exc.conflicting_terms]
        print(f"Conflict: {exc}; terms {ids}")
        return 1
    except InvalidInputError as exc:
        print(f"Invalid input: {exc}")
        return 1
    except (BridgeError, SchedulingTimeoutError) as exc:
        print(f"Solver failure: {exc}")
        return 2

    print(f"\n{'=' * 60}")
    print(f"Schedule ({config.strategy}):")
    print(f"{'=' * 60}")
    print(f"{'Term':<6} {'From':<22} {'To':<22} {'Lock':>5} {'Item':>5}")
    print(f"{'-' * 6} {'-' * 22} {'-' * 22} {'-' * 5} {'-' * 5}")
    for idx, term in enumerate(scheduler.get_terms()):
        lock = "" if term.get_locked_id() is None else term.get_locked_id()
        print(
            f"{idx:<6} {str(term.get_from()):<22} {str(term.get_to()):<22} "
            f"{lock!s:>5} {term.get_item_id()!s:>5}"
        )
    return 0


if __name__ == "__main__":
    sys.exit(main())
