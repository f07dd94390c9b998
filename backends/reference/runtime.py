"""
Oracle runners for the power-iteration program.

- `InProcessOracle`: numpy/scipy evaluation (verify.interpreter), going through
  the same persisted files as the candidate so both sides see identical bits.
- `ScriptOracle`: an external reference script (R by default) invoked as
  `<launcher> <script> <input_dir>/ <alpha> <maxiter> <expected_dir>/`.

Oracles never report operator statistics.
"""

from __future__ import annotations

import os
import shlex
import subprocess
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

from backends.systemds.matrix_io import read_matrix, write_matrix
from backends.systemds.runtime import PAGERANK_INPUTS, default_timeout
from pipeline.interfaces import (
    ExecutionFailedError,
    ExecutionPhase,
    ExecutionResult,
    OptimizerFlags,
    ScenarioDirs,
)
from verify.gen_cases import MatrixPayload
from verify.interpreter import run_pagerank_reference
from verify.scenarios import Scenario


def _materialize_inputs(dirs: ScenarioDirs, inputs: Mapping[str, MatrixPayload]) -> None:
    missing = [n for n in PAGERANK_INPUTS if n not in inputs]
    if missing:
        raise ExecutionFailedError(ExecutionPhase.ORACLE, f"missing inputs: {missing}")
    for n in PAGERANK_INPUTS:
        if not (dirs.inputs / n).exists():
            write_matrix(dirs.inputs / n, inputs[n])


def _params(params: Optional[Mapping[str, Any]]) -> tuple[float, int]:
    p = dict(params or {})
    return float(p.get("alpha", 0.85)), int(p.get("maxiter", 10))


@dataclass
class InProcessOracle:
    name: str = "numpy"
    phase: ExecutionPhase = ExecutionPhase.ORACLE

    def run(
        self,
        scenario: Scenario,
        inputs: Mapping[str, MatrixPayload],
        *,
        flags: OptimizerFlags,
        dirs: ScenarioDirs,
        params: Optional[Mapping[str, Any]] = None,
    ) -> ExecutionResult:
        alpha, maxiter = _params(params)
        _materialize_inputs(dirs, inputs)
        t0 = time.perf_counter()
        try:
            persisted = {n: read_matrix(dirs.inputs / n) for n in PAGERANK_INPUTS}
            out = run_pagerank_reference(persisted, alpha=alpha, maxiter=maxiter)
            write_matrix(dirs.expected / "p", out)
            out = read_matrix(dirs.expected / "p")
        except (OSError, ValueError, KeyError) as e:
            raise ExecutionFailedError(self.phase, f"{type(e).__name__}: {e}") from e
        return ExecutionResult(
            output_matrix=out,
            statistics={},
            phase=self.phase,
            command=[],
            elapsed_s=time.perf_counter() - t0,
        )


def _default_rscript() -> List[str]:
    return shlex.split(os.getenv("CODEGENALG_RSCRIPT", "Rscript"))


@dataclass
class ScriptOracle:
    script: Path
    launcher: List[str] = field(default_factory=_default_rscript)
    timeout_s: Optional[float] = field(default_factory=default_timeout)
    env: Dict[str, str] = field(default_factory=dict)
    name: str = "rscript"
    phase: ExecutionPhase = ExecutionPhase.ORACLE

    def build_command(self, dirs: ScenarioDirs, *, alpha: float, maxiter: int) -> List[str]:
        # The reference scripts concatenate file names onto the dirs, hence the trailing separator.
        return list(self.launcher) + [
            str(self.script),
            str(dirs.inputs) + os.sep,
            str(float(alpha)),
            str(int(maxiter)),
            str(dirs.expected) + os.sep,
        ]

    def run(
        self,
        scenario: Scenario,
        inputs: Mapping[str, MatrixPayload],
        *,
        flags: OptimizerFlags,
        dirs: ScenarioDirs,
        params: Optional[Mapping[str, Any]] = None,
    ) -> ExecutionResult:
        alpha, maxiter = _params(params)
        _materialize_inputs(dirs, inputs)
        cmd = self.build_command(dirs, alpha=alpha, maxiter=maxiter)
        env = dict(os.environ)
        env.update(self.env)
        t0 = time.perf_counter()
        try:
            proc = subprocess.run(cmd, text=True, capture_output=True, env=env, timeout=self.timeout_s)
        except subprocess.TimeoutExpired as e:
            raise ExecutionFailedError(self.phase, f"timed out after {e.timeout}s: {shlex.join(cmd)}") from e
        except OSError as e:
            raise ExecutionFailedError(self.phase, f"cannot launch {cmd[0]!r}: {e}") from e
        if proc.returncode != 0:
            raise ExecutionFailedError(self.phase, f"exit code {proc.returncode}\n{proc.stderr[-2000:]}")
        try:
            out = read_matrix(dirs.expected / "p")
        except (OSError, ValueError) as e:
            raise ExecutionFailedError(self.phase, f"unreadable output: {e}") from e
        return ExecutionResult(
            output_matrix=out,
            statistics={},
            phase=self.phase,
            command=cmd,
            stdout_tail=proc.stdout[-4000:],
            stderr_tail=proc.stderr[-4000:],
            elapsed_s=time.perf_counter() - t0,
        )


__all__ = ["InProcessOracle", "ScriptOracle"]
