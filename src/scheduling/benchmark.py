"""
src/scheduling/benchmark.py
──────────────────────────────────────────────────────────────────────────────
Benchmark: scheduler solvers head-to-head on random problems.

Every scenario is a random set of terms over a fixed horizon, some of them
pinned to random items. Each selected solver answers every scenario.

Metrics per solver:
  • Outcome counts   (ok / conflict / invalid_item / timeout)
  • Solve time       (wall-clock, ms: mean and worst)
  • Agreement        (scenarios where solvers disagree on solvable vs not)

Usage:
    python -m src.scheduling.benchmark                         # 50 scenarios, defaults
    python -m src.scheduling.benchmark --scenarios 200 --terms 20
    python -m src.scheduling.benchmark --solvers backtracking cpsat subprocess
"""

from __future__ import annotations

import argparse
import time
from collections import Counter
from dataclasses import dataclass, field

import numpy as np

from src.scheduling.config import SchedulerConfig, SearchConfig
from src.scheduling.protocol import SolveRequest, SolveResponse, TermPayload
from src.scheduling.solver import create_solver


# ── Scenario generation ───────────────────────────────────────────────────────


def generate_scenario(
    rng: np.random.Generator,
    n_items: int,
    n_terms: int,
    horizon_s: int = 24 * 3600,
    max_duration_s: int = 4 * 3600,
    lock_fraction: float = 0.2,
) -> SolveRequest:
    """Random terms inside ``[0, horizon_s]``; ``lock_fraction`` of them pinned."""
    items = list(range(1, n_items + 1))
    terms = []
    for idx in range(n_terms):
        duration = int(rng.integers(60, max_duration_s + 1))
        start = int(rng.integers(0, max(horizon_s - duration, 1)))
        locked_id = int(rng.choice(items)) if rng.random() < lock_fraction else None
        terms.append(TermPayload(id=idx, from_=start, to=start + duration, locked_id=locked_id))
    return SolveRequest(items=items, terms=terms)


# ── Result aggregation ────────────────────────────────────────────────────────


@dataclass
class SolverSummary:
    """Aggregated outcome of one solver over all scenarios."""

    name: str
    outcomes: Counter = field(default_factory=Counter)
    times_ms: list[float] = field(default_factory=list)

    @property
    def mean_ms(self) -> float:
        return float(np.mean(self.times_ms)) if self.times_ms else 0.0

    @property
    def worst_ms(self) -> float:
        return float(np.max(self.times_ms)) if self.times_ms else 0.0


def run_benchmark(
    solver_names: list[str],
    n_scenarios: int,
    n_items: int,
    n_terms: int,
    seed: int = 42,
    config: SchedulerConfig | None = None,
) -> tuple[dict[str, SolverSummary], int]:
    """Run every solver on the same scenarios.

    Returns:
        Per-solver summaries and the number of scenarios on which the solvers
        disagreed about solvability.
    """
    rng = np.random.default_rng(seed)
    solvers = {name: create_solver(name, config) for name in solver_names}
    summaries = {name: SolverSummary(name) for name in solver_names}
    disagreements = 0

    for _ in range(n_scenarios):
        request = generate_scenario(rng, n_items, n_terms)
        verdicts = set()
        for name, solver in solvers.items():
            t0 = time.perf_counter()
            response: SolveResponse = solver.solve(request)
            summaries[name].times_ms.append((time.perf_counter() - t0) * 1e3)
            summaries[name].outcomes[response.status] += 1
            if response.status != "timeout":
                verdicts.add(response.status == "ok")
        if len(verdicts) > 1:
            disagreements += 1

    return summaries, disagreements


def main() -> None:
    """Main"""

    parser = argparse.ArgumentParser(description="Benchmark scheduler solvers")
    parser.add_argument("--scenarios", type=int, default=50, help="Number of random problems")
    parser.add_argument("--items", type=int, default=3, help="Items per problem")
    parser.add_argument("--terms", type=int, default=12, help="Terms per problem")
    parser.add_argument("--seed", type=int, default=42, help="Random seed")
    parser.add_argument("--time-limit", type=float, default=None, help="Per-solve time limit (s)")
    parser.add_argument(
        "--solvers",
        nargs="+",
        default=["backtracking", "cpsat"],
        choices=["backtracking", "cpsat", "subprocess"],
        help="Solvers to compare",
    )
    args = parser.parse_args()

    config = SchedulerConfig(search=SearchConfig(time_limit_s=args.time_limit))
    summaries, disagreements = run_benchmark(
        args.solvers, args.scenarios, args.items, args.terms, args.seed, config
    )

    print(f"\n{'=' * 72}")
    print(f"{args.scenarios} scenarios, {args.items} items x {args.terms} terms (seed {args.seed})")
    print(f"{'=' * 72}")
    print(f"{'Solver':<14} {'ok':>5} {'conflict':>9} {'invalid':>8} {'timeout':>8} {'mean ms':>9} {'worst ms':>9}")
    print(f"{'-' * 14} {'-' * 5} {'-' * 9} {'-' * 8} {'-' * 8} {'-' * 9} {'-' * 9}")
    for s in summaries.values():
        print(
            f"{s.name:<14} {s.outcomes['ok']:>5} {s.outcomes['conflict']:>9} "
            f"{s.outcomes['invalid_item']:>8} {s.outcomes['timeout']:>8} "
            f"{s.mean_ms:>9.2f} {s.worst_ms:>9.2f}"
        )
    print(f"\nSolvability disagreements: {disagreements}")


if __name__ == "__main__":
    main()
