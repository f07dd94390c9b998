"""
Scenario orchestration for the PageRank codegen suite.

Per scenario:
  PENDING -> FLAGS_APPLIED -> SYNTHESIZING -> EXECUTING_CANDIDATE
  -> EXECUTING_ORACLE -> COMPARING -> VERIFYING_SIGNATURE -> PASSED|FAILED
  -> FLAGS_RESTORED

The scenario's optimizer flags are installed for its whole duration and the
previous flags are restored on every exit path. Harness failures (bad input
spec, crashed program, shape/tolerance mismatch, missing fused operator)
become a FailureRecord on that scenario; the suite keeps going.
"""

from __future__ import annotations

import shutil
import time
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from pipeline.flags import OptimizerFlagsError, applied_flags
from pipeline.interfaces import ExecutionAdapter, ExecutionFailedError, ScenarioDirs
from pipeline.run import process_batch
from verify.diff_runner import ComparisonVerdict, ShapeMismatchError, ToleranceExceededError, compare
from verify.gen_cases import InvalidSpecError, MatrixSpec, generate, pagerank_input_specs
from verify.scenarios import Scenario
from verify.signature import SPOOF_ROW_AGGREGATE, SignatureMissingError, matching_operators, require_signature
from verify.tolerances import tolerance_for


@dataclass(frozen=True)
class SuiteConfig:
    rows: int = 1468
    cols: int = 1468
    sparsity_dense: float = 0.41
    sparsity_sparse: float = 0.05
    alpha: float = 0.85
    maxiter: int = 10
    abs_tolerance: float = tolerance_for("pagerank").atol
    max_report_cells: int = 32
    expected_operators: Tuple[str, ...] = tuple(sorted(SPOOF_ROW_AGGREGATE))

    def density(self, scenario: Scenario) -> float:
        return float(self.sparsity_sparse if scenario.sparse else self.sparsity_dense)

    def params(self) -> Dict[str, Any]:
        return {"alpha": float(self.alpha), "maxiter": int(self.maxiter)}

    def to_json_dict(self) -> Dict[str, Any]:
        return {
            "rows": int(self.rows),
            "cols": int(self.cols),
            "sparsity_dense": float(self.sparsity_dense),
            "sparsity_sparse": float(self.sparsity_sparse),
            "alpha": float(self.alpha),
            "maxiter": int(self.maxiter),
            "abs_tolerance": float(self.abs_tolerance),
            "expected_operators": list(self.expected_operators),
        }


class ScenarioState(str, Enum):
    PENDING = "PENDING"
    FLAGS_APPLIED = "FLAGS_APPLIED"
    SYNTHESIZING = "SYNTHESIZING"
    EXECUTING_CANDIDATE = "EXECUTING_CANDIDATE"
    EXECUTING_ORACLE = "EXECUTING_ORACLE"
    COMPARING = "COMPARING"
    VERIFYING_SIGNATURE = "VERIFYING_SIGNATURE"
    PASSED = "PASSED"
    FAILED = "FAILED"
    FLAGS_RESTORED = "FLAGS_RESTORED"


class FailureKind(str, Enum):
    INVALID_SPEC = "invalid_spec"
    EXECUTION_FAILED = "execution_failed"
    SHAPE_MISMATCH = "shape_mismatch"
    TOLERANCE_EXCEEDED = "tolerance_exceeded"
    SIGNATURE_MISSING = "signature_missing"
    INTERNAL_ERROR = "internal_error"


_SEVERITY = {FailureKind.SHAPE_MISMATCH: "critical"}


@dataclass
class FailureRecord:
    kind: FailureKind
    message: str
    detail: Dict[str, Any] = field(default_factory=dict)

    @property
    def severity(self) -> str:
        return _SEVERITY.get(self.kind, "error")

    def to_json_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind.value, "severity": self.severity, "message": self.message, "detail": dict(self.detail)}


@dataclass
class ScenarioResult:
    scenario: Scenario
    status: ScenarioState = ScenarioState.PENDING
    states: List[ScenarioState] = field(default_factory=list)
    verdict: Optional[ComparisonVerdict] = None
    signature_found: Optional[bool] = None
    matched_operators: List[str] = field(default_factory=list)
    statistics: Dict[str, int] = field(default_factory=dict)
    failure: Optional[FailureRecord] = None
    timings: Dict[str, float] = field(default_factory=dict)

    @property
    def passed(self) -> bool:
        return self.status is ScenarioState.PASSED

    def to_json_dict(self) -> Dict[str, Any]:
        return {
            "scenario": self.scenario.to_json_dict(),
            "status": self.status.value,
            "states": [s.value for s in self.states],
            "verdict": None if self.verdict is None else self.verdict.to_json_dict(),
            "signature_found": self.signature_found,
            "matched_operators": list(self.matched_operators),
            "statistics": dict(self.statistics),
            "failure": None if self.failure is None else self.failure.to_json_dict(),
            "timings": dict(self.timings),
        }


@dataclass
class SuiteReport:
    config: SuiteConfig
    results: List[ScenarioResult] = field(default_factory=list)

    @property
    def passed(self) -> List[ScenarioResult]:
        return [r for r in self.results if r.passed]

    @property
    def failed(self) -> List[ScenarioResult]:
        return [r for r in self.results if not r.passed]

    @property
    def ok(self) -> bool:
        return bool(self.results) and not self.failed

    def summary_lines(self) -> List[str]:
        lines: List[str] = []
        for i, r in enumerate(self.results):
            line = f"[{i:02d}] {r.scenario.name}: {r.status.value}"
            if r.verdict is not None:
                line += f" max_abs_diff={r.verdict.max_abs_diff:.6g}"
            if r.signature_found is not None:
                line += f" fused={'yes' if r.signature_found else 'no'}"
            if r.failure is not None:
                line += f" [{r.failure.severity}:{r.failure.kind.value}] {r.failure.message}"
            lines.append(line)
            if r.failure is not None and r.verdict is not None and r.verdict.mismatched_cells:
                for (row, col, exp, act) in r.verdict.mismatched_cells[:8]:
                    lines.append(f"      cell ({row},{col}): expected={exp!r} actual={act!r}")
        lines.append(f"{len(self.passed)}/{len(self.results)} scenarios passed")
        return lines

    def to_json_dict(self) -> Dict[str, Any]:
        return {
            "ok": self.ok,
            "config": self.config.to_json_dict(),
            "passed": len(self.passed),
            "failed": len(self.failed),
            "results": [r.to_json_dict() for r in self.results],
        }


InputSpecsFn = Callable[[Scenario, SuiteConfig], Dict[str, MatrixSpec]]
LogFn = Callable[[str], None]


def default_input_specs(scenario: Scenario, config: SuiteConfig) -> Dict[str, MatrixSpec]:
    return pagerank_input_specs(config.rows, config.cols, config.density(scenario))


def prepare_scenario_dirs(work_root: Path, scenario: Scenario, *, clean: bool = True) -> ScenarioDirs:
    """
    Per-scenario in/out/expected/scratch dirs; wiped first so no files from an
    earlier scenario (or an earlier run of this one) can be read back.
    """
    root = Path(work_root) / scenario.name
    if clean:
        shutil.rmtree(root, ignore_errors=True)
    dirs = ScenarioDirs(
        root=root,
        inputs=root / "in",
        outputs=root / "out",
        expected=root / "expected",
        scratch=root / "scratch",
    )
    for d in (dirs.inputs, dirs.outputs, dirs.expected, dirs.scratch):
        d.mkdir(parents=True, exist_ok=True)
    return dirs


def _fail(result: ScenarioResult, kind: FailureKind, err: BaseException, **detail: Any) -> None:
    result.status = ScenarioState.FAILED
    result.failure = FailureRecord(kind=kind, message=str(err), detail=detail)


def run_scenario(
    scenario: Scenario,
    config: SuiteConfig,
    *,
    candidate: ExecutionAdapter,
    oracle: ExecutionAdapter,
    work_root: Path,
    input_specs_fn: InputSpecsFn = default_input_specs,
    log: Optional[LogFn] = None,
) -> ScenarioResult:
    result = ScenarioResult(scenario=scenario)
    tag = f"[pagerank:{scenario.name}]"

    def enter(state: ScenarioState) -> None:
        result.states.append(state)
        if log is not None:
            log(f"{tag} {state.value}")

    def timed(key: str, fn: Callable[[], Any]) -> Any:
        t0 = time.perf_counter()
        try:
            return fn()
        finally:
            result.timings[key] = time.perf_counter() - t0

    enter(ScenarioState.PENDING)
    with applied_flags(scenario.flags()) as flags:
        enter(ScenarioState.FLAGS_APPLIED)
        try:
            enter(ScenarioState.SYNTHESIZING)
            specs = input_specs_fn(scenario, config)
            inputs = timed("synthesize", lambda: {name: generate(spec) for name, spec in specs.items()})
            dirs = prepare_scenario_dirs(work_root, scenario)
            params = config.params()

            enter(ScenarioState.EXECUTING_CANDIDATE)
            cand = timed("candidate", lambda: candidate.run(scenario, inputs, flags=flags, dirs=dirs, params=params))
            result.statistics = dict(cand.statistics)

            enter(ScenarioState.EXECUTING_ORACLE)
            ref = timed("oracle", lambda: oracle.run(scenario, inputs, flags=flags, dirs=dirs, params=params))

            enter(ScenarioState.COMPARING)
            verdict = compare(
                cand.output_matrix,
                ref.output_matrix,
                config.abs_tolerance,
                max_cells=config.max_report_cells,
            )
            result.verdict = verdict

            enter(ScenarioState.VERIFYING_SIGNATURE)
            result.matched_operators = matching_operators(cand.statistics, config.expected_operators)
            result.signature_found = bool(result.matched_operators)

            verdict.raise_for_status()
            if scenario.expects_fusion:
                require_signature(cand.statistics, config.expected_operators)
            result.status = ScenarioState.PASSED
        except InvalidSpecError as e:
            _fail(result, FailureKind.INVALID_SPEC, e)
        except ExecutionFailedError as e:
            _fail(result, FailureKind.EXECUTION_FAILED, e, phase=e.phase.value, cause=e.cause)
        except ShapeMismatchError as e:
            _fail(
                result,
                FailureKind.SHAPE_MISMATCH,
                e,
                candidate_shape=list(e.candidate_shape),
                oracle_shape=list(e.oracle_shape),
            )
        except ToleranceExceededError as e:
            _fail(
                result,
                FailureKind.TOLERANCE_EXCEEDED,
                e,
                num_mismatched=e.verdict.num_mismatched,
                signature_found=result.signature_found,
            )
        except SignatureMissingError as e:
            _fail(result, FailureKind.SIGNATURE_MISSING, e, expected=e.expected, operators=e.operators)
        enter(result.status)
    enter(ScenarioState.FLAGS_RESTORED)
    return result


def _internal_error_result(scenario: Scenario, rec: Dict[str, Any]) -> ScenarioResult:
    err = rec.get("error") or {}
    return ScenarioResult(
        scenario=scenario,
        status=ScenarioState.FAILED,
        states=[ScenarioState.FAILED, ScenarioState.FLAGS_RESTORED],
        failure=FailureRecord(
            kind=FailureKind.INTERNAL_ERROR,
            message=f"{err.get('type')}: {err.get('message')}",
            detail={"traceback": err.get("traceback", "")},
        ),
    )


def run_suite(
    scenarios: Sequence[Scenario],
    config: SuiteConfig | None = None,
    *,
    candidate: ExecutionAdapter,
    oracle: ExecutionAdapter,
    work_root: Path,
    input_specs_fn: InputSpecsFn = default_input_specs,
    log: Optional[LogFn] = None,
) -> SuiteReport:
    """
    Run scenarios one after another; a failing scenario never stops the suite.

    Only OptimizerFlagsError (the flags cannot be installed at all) aborts.
    """
    cfg = config or SuiteConfig()
    items = list(scenarios)
    raw = process_batch(
        items,
        lambda s: run_scenario(
            s,
            cfg,
            candidate=candidate,
            oracle=oracle,
            work_root=work_root,
            input_specs_fn=input_specs_fn,
            log=log,
        ),
        name_fn=lambda s: s.name,
        fatal=(OptimizerFlagsError,),
    )
    report = SuiteReport(config=cfg)
    for scenario, item in zip(items, raw):
        report.results.append(item if isinstance(item, ScenarioResult) else _internal_error_result(scenario, item))
    return report


__all__ = [
    "SuiteConfig",
    "ScenarioState",
    "FailureKind",
    "FailureRecord",
    "ScenarioResult",
    "SuiteReport",
    "default_input_specs",
    "prepare_scenario_dirs",
    "run_scenario",
    "run_suite",
]
