"""Domain services: planning, execution, orchestration and diagnostics."""

from .diagnostics_service import DiagnosticResult, DiagnosticsService
from .move_executor import MoveExecutor
from .scramble_coordinator import ScrambleCoordinator
from .scramble_plan_service import ScramblePlanService
from .snapshot_normalizer import normalize_snapshot

__all__ = [
    "DiagnosticResult",
    "DiagnosticsService",
    "MoveExecutor",
    "ScrambleCoordinator",
    "ScramblePlanService",
    "normalize_snapshot",
]
