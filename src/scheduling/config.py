"""
Scheduler configuration dataclasses and YAML loader.

Every tunable lives here as a frozen dataclass with working defaults.
Load from YAML with ``load_config()`` or construct directly for tests.
"""

from __future__ import annotations

import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal

import yaml


@dataclass(frozen=True)
class SearchConfig:
    """In-process search parameters.

    mode                : "recursive", "iterative", or "auto"
    max_recursive_depth : in "auto" mode, switch to the explicit-stack
                          traversal above this many free terms
    time_limit_s        : wall-clock budget per run, None = unbounded
    """

    mode: Literal["auto", "recursive", "iterative"] = "auto"
    max_recursive_depth: int = 400
    time_limit_s: float | None = None

    def use_iterative(self, n_terms: int) -> bool:
        if self.mode == "auto":
            return n_terms > self.max_recursive_depth
        return self.mode == "iterative"


@dataclass(frozen=True)
class BridgeConfig:
    """External solver process parameters.

    command            : argv of the solver process
    timeout_s          : kill the process after this many seconds, None = wait forever
    verify_assignments : reject "ok" answers that break the assignment invariants
    """

    command: tuple[str, ...] = field(
        default_factory=lambda: (sys.executable, "-m", "src.bridge.solver_process")
    )
    timeout_s: float | None = None
    verify_assignments: bool = True


@dataclass(frozen=True)
class LoggingConfig:
    level: str = "WARNING"
    format: str = "%(asctime)s %(levelname)s %(name)s %(message)s"


@dataclass(frozen=True)
class SchedulerConfig:
    """Top-level configuration aggregating all sub-configs."""

    strategy: Literal["backtracking", "cpsat", "subprocess"] = "backtracking"
    search: SearchConfig = field(default_factory=SearchConfig)
    bridge: BridgeConfig = field(default_factory=BridgeConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def load_config(path: str | Path) -> SchedulerConfig:
    """Load a SchedulerConfig from a YAML file.

    Args:
        path: Path to a YAML config file. Missing sections use defaults.

    Returns:
        Fully constructed SchedulerConfig.
    """
    path = Path(path)
    with open(path, encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}

    bridge_raw = dict(raw.get("bridge", {}))
    if "command" in bridge_raw:
        bridge_raw["command"] = tuple(bridge_raw["command"])

    return SchedulerConfig(
        strategy=raw.get("strategy", "backtracking"),
        search=SearchConfig(**raw.get("search", {})),
        bridge=BridgeConfig(**bridge_raw),
        logging=LoggingConfig(**raw.get("logging", {})),
    )
