"""
solver_process.py
──────────────────────────────────────────────────────────────────────────────
External solver speaking the bridge wire protocol.

Reads one JSON request from stdin, solves it with an in-process solver and
writes exactly one JSON response line to stdout. Logs go to stderr.

Usage:
    python -m src.bridge.solver_process < request.json
    python -m src.bridge.solver_process --backend cpsat
    python -m src.bridge.solver_process --search-mode iterative --log-level DEBUG

Exit codes:
    0  a response was written (including "conflict" and "invalid_item")
    1  the request could not be parsed; a "conflict" response with an empty
       conflict list is still written
"""

from __future__ import annotations

import argparse
import logging
import sys

from pydantic import ValidationError

from src.scheduling.config import LoggingConfig, SearchConfig
from src.scheduling.log_setup import setup_logging
from src.scheduling.protocol import ConflictResponse, decode_request, encode_response
from src.scheduling.solver import BacktrackingSolver, CPSATSolver

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    """Main"""

    parser = argparse.ArgumentParser(description="Term scheduler solver process")
    parser.add_argument(
        "--backend",
        type=str,
        default="backtracking",
        choices=["backtracking", "cpsat"],
        help="In-process solver used to answer the request",
    )
    parser.add_argument(
        "--search-mode",
        type=str,
        default="auto",
        choices=["auto", "recursive", "iterative"],
        help="Backtracking traversal (ignored by cpsat)",
    )
    parser.add_argument("--log-level", type=str, default="WARNING", help="stderr log level")
    args = parser.parse_args(argv)

    setup_logging(LoggingConfig(level=args.log_level))

    raw = sys.stdin.buffer.read()
    try:
        request = decode_request(raw)
    except ValidationError as exc:
        logger.error("invalid request: %s", exc)
        _emit(ConflictResponse(message=f"Invalid JSON input: {exc}", conflicts=[]))
        return 1

    search_config = SearchConfig(mode=args.search_mode)
    solver = CPSATSolver(search_config) if args.backend == "cpsat" else BacktrackingSolver(search_config)
    response = solver.solve(request)
    logger.info(
        "%s: %d items, %d terms -> %s",
        args.backend,
        len(request.items),
        len(request.terms),
        response.status,
    )
    _emit(response)
    return 0


def _emit(response) -> None:
    sys.stdout.write(encode_response(response) + "\n")
    sys.stdout.flush()


if __name__ == "__main__":
    sys.exit(main())
