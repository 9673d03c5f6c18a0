"""
Solver bridge: delegate a whole scheduling run to an external process.

One process per ``solve()`` call, fully blocking:
  1. write the JSON request to the process's stdin and close it
  2. drain stdout to completion
  3. wait for the process to exit

stderr is never parsed; it is only forwarded to the DEBUG log.

Anything that is not a well-formed protocol answer (the process cannot be
started, exits non-zero, prints nothing, prints something unparsable or an
unknown status) raises ``BridgeError``. That is deliberately a different
exception from ``ConflictError``: "no feasible assignment" and "no answer" are
not the same thing. There is no retry.
"""

from __future__ import annotations

import logging
import subprocess
import time
from collections import defaultdict
from pathlib import Path
from typing import Sequence

from pydantic import ValidationError

from src.scheduling.config import BridgeConfig
from src.scheduling.conflict import conflicts
from src.scheduling.errors import BridgeError, BridgeTimeoutError
from src.scheduling.protocol import (
    OkResponse,
    SolveRequest,
    SolveResponse,
    TermPayload,
    decode_response,
    encode_request,
)

logger = logging.getLogger(__name__)


class SubprocessSolver:
    """Drop-in solver backed by an external process speaking the wire protocol.

    Args:
        command: argv of the solver process.
        timeout_s: Kill the process after this many seconds. None waits forever.
        verify_assignments: Check "ok" answers against the request before
            returning them.
        cwd: Working directory of the solver process.
    """

    def __init__(
        self,
        command: Sequence[str],
        timeout_s: float | None = None,
        verify_assignments: bool = True,
        cwd: str | Path | None = None,
    ) -> None:
        if not command:
            raise ValueError("Solver command must not be empty")
        self.command = list(command)
        self.timeout_s = timeout_s
        self.verify_assignments = verify_assignments
        self.cwd = cwd
        self.total_solves: int = 0
        self.total_failures: int = 0
        self.total_solve_time_ms: float = 0.0

    @classmethod
    def from_config(cls, config: BridgeConfig) -> SubprocessSolver:
        return cls(config.command, config.timeout_s, config.verify_assignments)

    def solve(self, request: SolveRequest) -> SolveResponse:
        t0 = time.perf_counter()
        try:
            response = self._run(request)
        except BridgeError as exc:
            self.total_failures += 1
            logger.warning("solver bridge failed: %s", exc)
            raise
        finally:
            self.total_solves += 1
            self.total_solve_time_ms += (time.perf_counter() - t0) * 1e3
        return response

    def _run(self, request: SolveRequest) -> SolveResponse:
        payload = encode_request(request).encode("utf-8")
        logger.debug(
            "starting solver %s (%d items, %d terms, %d bytes)",
            self.command,
            len(request.items),
            len(request.terms),
            len(payload),
        )

        try:
            proc = subprocess.Popen(  # pylint: disable=consider-using-with
                self.command,
                stdin=subprocess.PIPE,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                cwd=self.cwd,
            )
        except OSError as exc:
            raise BridgeError(f"Cannot start solver {self.command[0]!r}: {exc}") from exc

        try:
            out, err = proc.communicate(payload, timeout=self.timeout_s)
        except subprocess.TimeoutExpired as exc:
            proc.kill()
            proc.communicate()
            raise BridgeTimeoutError(
                f"Solver did not finish within {self.timeout_s} s and was killed"
            ) from exc

        if err:
            logger.debug("solver stderr: %s", err.decode("utf-8", errors="replace").strip())

        if proc.returncode != 0:
            raise BridgeError(f"Solver exited with code {proc.returncode}")
        if not out.strip():
            raise BridgeError("Solver produced no output")

        try:
            response = decode_response(out)
        except ValidationError as exc:
            raise BridgeError(f"Malformed solver response: {exc}") from exc

        logger.debug("solver answered %r (%d bytes)", response.status, len(out))

        if isinstance(response, OkResponse) and self.verify_assignments:
            verify_assignment(request, response)
        return response


def verify_assignment(request: SolveRequest, response: OkResponse) -> None:
    """Reject an "ok" answer that is not a total, pin-respecting, overlap-free assignment.

    Raises:
        BridgeError: describing the first violation found.
    """
    terms_by_id: dict[int, TermPayload] = {t.id: t for t in request.terms}
    items = set(request.items)
    placed: dict[int, int] = {}
    per_item: dict[int, list[TermPayload]] = defaultdict(list)

    for a in response.assignments:
        term = terms_by_id.get(a.term_id)
        if term is None:
            raise BridgeError(f"Solver assigned unknown term {a.term_id}")
        if a.term_id in placed:
            raise BridgeError(f"Solver assigned term {a.term_id} twice")
        if a.item_id not in items:
            raise BridgeError(f"Solver assigned term {a.term_id} to unknown item {a.item_id}")
        if term.locked_id is not None and term.locked_id != a.item_id:
            raise BridgeError(
                f"Solver moved term {a.term_id} off its pinned item {term.locked_id}"
            )
        placed[a.term_id] = a.item_id
        per_item[a.item_id].append(term)

    missing = [t.id for t in request.terms if t.id not in placed]
    if missing:
        raise BridgeError(f"Solver left terms unassigned: {missing}")

    # sorted by start, any overlap shows up between neighbours
    for item_id, assigned in per_item.items():
        assigned.sort(key=lambda t: (t.from_, t.to))
        for prev, cur in zip(assigned, assigned[1:]):
            if conflicts(prev, cur):
                raise BridgeError(
                    f"Solver placed overlapping terms {prev.id} and {cur.id} on item {item_id}"
                )
