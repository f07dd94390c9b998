"""
Cross-module interfaces shared by pipeline/verify/backends.

Keep this module dependency-light so it can be imported from core logic
without pulling subprocess/runtime helpers.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, List, Mapping, Optional, Protocol

from verify.gen_cases import MatrixPayload

if TYPE_CHECKING:
    from verify.scenarios import Scenario


@dataclass(frozen=True)
class OptimizerFlags:
    """
    Compiler switches a scenario runs under.

    Passed by value into execution adapters; `pipeline.flags` additionally
    mirrors the active value in a process-wide slot.
    """

    algebraic_simplification_enabled: bool = True
    operator_fusion_enabled: bool = True
    auto_vectorization_enabled: bool = True

    def to_json_dict(self) -> Dict[str, bool]:
        return {k: bool(v) for k, v in asdict(self).items()}


class ExecutionPhase(str, Enum):
    CANDIDATE = "candidate"
    ORACLE = "oracle"


class ExecutionFailedError(RuntimeError):
    def __init__(self, phase: ExecutionPhase, cause: str):
        self.phase = ExecutionPhase(phase)
        self.cause = str(cause)
        super().__init__(f"{self.phase.value} execution failed: {self.cause}")


@dataclass
class ExecutionResult:
    output_matrix: MatrixPayload
    statistics: Dict[str, int] = field(default_factory=dict)
    phase: ExecutionPhase = ExecutionPhase.CANDIDATE
    command: List[str] = field(default_factory=list)
    stdout_tail: str = ""
    stderr_tail: str = ""
    elapsed_s: float = 0.0

    def summary(self) -> Dict[str, Any]:
        return {
            "phase": self.phase.value,
            "shape": list(self.output_matrix.shape),
            "nnz": self.output_matrix.nnz,
            "statistics": dict(self.statistics),
            "command": list(self.command),
            "elapsed_s": float(self.elapsed_s),
        }


@dataclass(frozen=True)
class ScenarioDirs:
    """
    Scenario-scoped scratch layout shared by candidate and oracle.
    """

    root: Path
    inputs: Path
    outputs: Path
    expected: Path
    scratch: Path


class ExecutionAdapter(Protocol):
    """
    One side of a differential run (candidate program or oracle).

    `run` blocks until the program has fully completed and raises
    `ExecutionFailedError` on abnormal termination.
    """

    name: str
    phase: ExecutionPhase

    def run(
        self,
        scenario: "Scenario",
        inputs: Mapping[str, MatrixPayload],
        *,
        flags: OptimizerFlags,
        dirs: ScenarioDirs,
        params: Optional[Mapping[str, Any]] = None,
    ) -> ExecutionResult: ...


__all__ = [
    "OptimizerFlags",
    "ExecutionPhase",
    "ExecutionFailedError",
    "ExecutionResult",
    "ScenarioDirs",
    "ExecutionAdapter",
]
