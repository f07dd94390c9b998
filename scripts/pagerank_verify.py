"""
Differential PageRank codegen suite: candidate runtime vs reference oracle.

Examples:
  PYTHONPATH=. python scripts/pagerank_verify.py --list
  PYTHONPATH=. python scripts/pagerank_verify.py --scenario 'pagerank_dense_*'
  CODEGENALG_SYSTEMDS="systemds" PYTHONPATH=. python scripts/pagerank_verify.py --oracle rscript --r-script PageRank.R
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from pipeline import registry  # noqa: E402
from pipeline.pagerank.core import SuiteConfig, run_suite  # noqa: E402
from verify.scenarios import Backend, ScenarioOptions, enumerate_scenarios, select_scenarios  # noqa: E402


def _log(msg: str) -> None:
    print(str(msg), file=sys.stderr, flush=True)


def _build_parser() -> argparse.ArgumentParser:
    defaults = SuiteConfig()
    ap = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    ap.add_argument("--scenario", action="append", default=None, help="Run scenarios matching a glob (repeatable)")
    ap.add_argument("--list", action="store_true", help="List scenarios and exit")
    ap.add_argument("--backend", choices=[b.value for b in Backend], action="append", default=None)
    ap.add_argument("--rows", type=int, default=defaults.rows)
    ap.add_argument("--cols", type=int, default=defaults.cols)
    ap.add_argument("--sparsity-dense", type=float, default=defaults.sparsity_dense)
    ap.add_argument("--sparsity-sparse", type=float, default=defaults.sparsity_sparse)
    ap.add_argument("--alpha", type=float, default=defaults.alpha)
    ap.add_argument("--maxiter", type=int, default=defaults.maxiter)
    ap.add_argument("--tolerance", type=float, default=defaults.abs_tolerance, help="Absolute tolerance")
    ap.add_argument("--candidate", default="systemds", help=f"Candidate adapter ({', '.join(registry.available())})")
    ap.add_argument("--script", type=str, default=None, help="Candidate program path (default: $CODEGENALG_PAGERANK_DML)")
    ap.add_argument("--oracle", choices=["inprocess", "rscript"], default="inprocess")
    ap.add_argument("--r-script", type=str, default=None, help="Reference script for --oracle rscript")
    ap.add_argument("--timeout", type=float, default=None, help="Per-program timeout in seconds")
    ap.add_argument("--out-dir", type=str, default=None)
    return ap


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)

    backends = tuple(Backend(b) for b in (args.backend or [Backend.LOCAL.value]))
    scenarios = select_scenarios(enumerate_scenarios(ScenarioOptions(backends=backends)), args.scenario)
    if args.list:
        for s in scenarios:
            print(s.name)
        return 0
    if not scenarios:
        _log("no scenario matches the given --scenario patterns")
        return 2

    config = SuiteConfig(
        rows=int(args.rows),
        cols=int(args.cols),
        sparsity_dense=float(args.sparsity_dense),
        sparsity_sparse=float(args.sparsity_sparse),
        alpha=float(args.alpha),
        maxiter=int(args.maxiter),
        abs_tolerance=float(args.tolerance),
    )

    cand_kwargs = {}
    if args.script:
        cand_kwargs["script"] = Path(args.script)
    if args.timeout is not None:
        cand_kwargs["timeout_s"] = float(args.timeout)
    candidate = registry.create(str(args.candidate), **cand_kwargs)

    if args.oracle == "rscript":
        if not args.r_script:
            _log("--oracle rscript requires --r-script")
            return 2
        oracle_kwargs = {"script": Path(args.r_script)}
        if args.timeout is not None:
            oracle_kwargs["timeout_s"] = float(args.timeout)
        oracle = registry.create("rscript", **oracle_kwargs)
    else:
        oracle = registry.create("inprocess")

    out_dir = Path(args.out_dir) if args.out_dir else (ROOT / "artifacts" / "pagerank_verify")
    out_dir.mkdir(parents=True, exist_ok=True)
    _log(f"[pagerank] {len(scenarios)} scenario(s), work dir {out_dir}")

    report = run_suite(
        scenarios,
        config,
        candidate=candidate,
        oracle=oracle,
        work_root=out_dir / "work",
        log=_log,
    )
    out_path = out_dir / "report.json"
    out_path.write_text(json.dumps(report.to_json_dict(), indent=2), encoding="utf-8")
    for line in report.summary_lines():
        print(line)
    print(f"Report: {out_path} | {'OK' if report.ok else 'FAIL'}")
    return 0 if report.ok else 1


if __name__ == "__main__":
    raise SystemExit(main())
