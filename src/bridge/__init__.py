"""
Solver bridge: run the scheduler's solving step in a separate process.

Quick start:
    from src.bridge import SubprocessSolver
    solver = SubprocessSolver([sys.executable, "-m", "src.bridge.solver_process"])
    scheduler = Scheduler([1, 2], terms, solver=solver)
    scheduler.schedule()
"""

from src.bridge.subprocess_solver import SubprocessSolver, verify_assignment

__all__ = ["SubprocessSolver", "verify_assignment"]
