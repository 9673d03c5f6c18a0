"""
Tests for the run_scheduler.py command-line script.

Run with: pytest tests/test_cli.py -v
"""

import json
import subprocess
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
SCRIPT = ROOT / "scripts" / "run_scheduler.py"


def _run(*args: str) -> subprocess.CompletedProcess:
    return subprocess.run(
        [sys.executable, str(SCRIPT), *args],
        capture_output=True,
        text=True,
        cwd=ROOT,
        timeout=120,
        check=False,
    )


class TestRunScheduler:
    @pytest.mark.parametrize("strategy", ["backtracking", "cpsat", "subprocess"])
    def test_shipped_problem(self, strategy):
        proc = _run("config/problems/two_rooms.json", "--strategy", strategy)

        assert proc.returncode == 0, proc.stdout + proc.stderr
        assert f"Schedule ({strategy})" in proc.stdout

    def test_conflict_exit_code(self, tmp_path):
        problem = tmp_path / "clash.json"
        problem.write_text(
            json.dumps(
                {
                    "items": [1],
                    "terms": [{"from": 0, "to": 10}, {"from": 5, "to": 15}],
                }
            ),
            encoding="utf-8",
        )

        proc = _run(str(problem))

        assert proc.returncode == 1
        assert "Conflict" in proc.stdout
        assert "[0, 1]" in proc.stdout

    def test_invalid_lock_exit_code(self, tmp_path):
        problem = tmp_path / "lock.json"
        problem.write_text(
            json.dumps({"items": [1], "terms": [{"from": 0, "to": 10, "locked_id": 5}]}),
            encoding="utf-8",
        )

        proc = _run(str(problem))

        assert proc.returncode == 1
        assert "Invalid lock" in proc.stdout
