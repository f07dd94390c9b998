"""
Candidate runner: executes the fixed power-iteration script through the
compiler/runtime CLI with code generation enabled.

Inputs are written to the scenario's input dir, the runtime is launched as a
subprocess (blocking, optional timeout) with `-stats` so the fused operators
show up in the heavy-hitter table, and the output matrix is read back.
"""

from __future__ import annotations

import os
import shlex
import subprocess
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

from backends.systemds.config import write_config
from backends.systemds.matrix_io import read_matrix, write_matrix
from backends.systemds.stats import parse_heavy_hitters
from pipeline.interfaces import (
    ExecutionFailedError,
    ExecutionPhase,
    ExecutionResult,
    OptimizerFlags,
    ScenarioDirs,
)
from verify.gen_cases import MatrixPayload
from verify.scenarios import Backend, Scenario

PAGERANK_INPUTS = ("G", "p", "e", "u")

_EXEC_MODE = {
    Backend.LOCAL: "hybrid",
    Backend.DISTRIBUTED: "spark",
}


def _tail(text: str | None, n: int = 4000) -> str:
    s = str(text or "")
    return s[-n:]


def default_launcher() -> List[str]:
    return shlex.split(os.getenv("CODEGENALG_SYSTEMDS", "systemds"))


def default_script() -> Path:
    return Path(os.getenv("CODEGENALG_PAGERANK_DML", "scripts/staging/PageRank.dml"))


def default_timeout() -> Optional[float]:
    raw = os.getenv("CODEGENALG_TIMEOUT_S", "").strip()
    if not raw:
        return None
    try:
        v = float(raw)
    except ValueError as e:
        raise ValueError(f"CODEGENALG_TIMEOUT_S must be a number of seconds, got {raw!r}") from e
    # 0 or negative disables the timeout.
    return v if v > 0 else None


@dataclass
class SystemDSCandidate:
    launcher: List[str] = field(default_factory=default_launcher)
    script: Path = field(default_factory=default_script)
    timeout_s: Optional[float] = field(default_factory=default_timeout)
    stats_count: int = 100
    env: Dict[str, str] = field(default_factory=dict)
    name: str = "systemds"
    phase: ExecutionPhase = ExecutionPhase.CANDIDATE

    def build_command(
        self,
        scenario: Scenario,
        dirs: ScenarioDirs,
        *,
        config_path: Path,
        alpha: float,
        maxiter: int,
    ) -> List[str]:
        cmd = list(self.launcher)
        cmd += ["-f", str(self.script)]
        cmd += ["-exec", _EXEC_MODE[Backend(scenario.backend)]]
        cmd += ["-config", str(config_path)]
        cmd += ["-stats", str(int(self.stats_count))]
        cmd += ["-args"]
        cmd += [str(dirs.inputs / n) for n in PAGERANK_INPUTS]
        cmd += [str(float(alpha)), str(int(maxiter)), str(dirs.outputs / "p")]
        return cmd

    def run(
        self,
        scenario: Scenario,
        inputs: Mapping[str, MatrixPayload],
        *,
        flags: OptimizerFlags,
        dirs: ScenarioDirs,
        params: Optional[Mapping[str, Any]] = None,
    ) -> ExecutionResult:
        params = dict(params or {})
        alpha = float(params.get("alpha", 0.85))
        maxiter = int(params.get("maxiter", 10))
        missing = [n for n in PAGERANK_INPUTS if n not in inputs]
        if missing:
            raise ExecutionFailedError(self.phase, f"missing inputs: {missing}")

        for n in PAGERANK_INPUTS:
            write_matrix(dirs.inputs / n, inputs[n])
        config_path = write_config(
            dirs.root / "codegen-config.xml",
            scenario.fusion_profile,
            flags,
            scratch_dir=dirs.scratch / "scratch_space",
            tmp_dir=dirs.scratch / "tmp",
        )
        cmd = self.build_command(scenario, dirs, config_path=config_path, alpha=alpha, maxiter=maxiter)
        env = dict(os.environ)
        env.update(self.env)

        t0 = time.perf_counter()
        try:
            proc = subprocess.run(cmd, text=True, capture_output=True, env=env, timeout=self.timeout_s)
        except subprocess.TimeoutExpired as e:
            raise ExecutionFailedError(self.phase, f"timed out after {e.timeout}s: {shlex.join(cmd)}") from e
        except OSError as e:
            raise ExecutionFailedError(self.phase, f"cannot launch {cmd[0]!r}: {e}") from e
        elapsed = time.perf_counter() - t0

        if proc.returncode != 0:
            raise ExecutionFailedError(
                self.phase,
                f"exit code {proc.returncode}\n{_tail(proc.stderr, 2000)}\n{_tail(proc.stdout, 2000)}",
            )
        try:
            out = read_matrix(dirs.outputs / "p")
        except (OSError, ValueError) as e:
            raise ExecutionFailedError(self.phase, f"unreadable output: {e}") from e

        return ExecutionResult(
            output_matrix=out,
            statistics=parse_heavy_hitters(proc.stdout),
            phase=self.phase,
            command=cmd,
            stdout_tail=_tail(proc.stdout),
            stderr_tail=_tail(proc.stderr),
            elapsed_s=elapsed,
        )


__all__ = ["PAGERANK_INPUTS", "SystemDSCandidate", "default_launcher", "default_script", "default_timeout"]
