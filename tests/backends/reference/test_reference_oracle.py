import os
from pathlib import Path

import pytest

from backends.reference.runtime import InProcessOracle, ScriptOracle
from backends.systemds.matrix_io import read_matrix
from pipeline.interfaces import ExecutionFailedError, ExecutionPhase, OptimizerFlags
from pipeline.pagerank.core import prepare_scenario_dirs
from verify.gen_cases import generate, pagerank_input_specs
from verify.interpreter import run_pagerank_reference
from verify.scenarios import Scenario


def _scenario():
    return Scenario(name="pagerank_sparse_cp", rewrites_enabled=True, sparse=True)


def _inputs(n=16, density=0.05):
    return {k: generate(s) for k, s in pagerank_input_specs(n, n, density).items()}


def test_inprocess_oracle_persists_expected_output(tmp_path):
    dirs = prepare_scenario_dirs(tmp_path, _scenario())
    inputs = _inputs()
    res = InProcessOracle().run(_scenario(), inputs, flags=OptimizerFlags(), dirs=dirs, params={"alpha": 0.85, "maxiter": 4})
    assert res.phase is ExecutionPhase.ORACLE
    assert res.statistics == {}
    assert res.output_matrix.shape == (16, 1)
    assert read_matrix(dirs.expected / "p") == res.output_matrix
    assert res.output_matrix == run_pagerank_reference(inputs, alpha=0.85, maxiter=4)


def test_inprocess_oracle_reuses_persisted_inputs(tmp_path):
    from backends.systemds.matrix_io import write_matrix

    dirs = prepare_scenario_dirs(tmp_path, _scenario())
    inputs = _inputs()
    for k, v in inputs.items():
        write_matrix(dirs.inputs / k, v)
    before = (dirs.inputs / "G").stat().st_mtime_ns
    InProcessOracle().run(_scenario(), inputs, flags=OptimizerFlags(), dirs=dirs)
    assert (dirs.inputs / "G").stat().st_mtime_ns == before


def test_inprocess_oracle_missing_input(tmp_path):
    dirs = prepare_scenario_dirs(tmp_path, _scenario())
    inputs = _inputs()
    inputs.pop("u")
    with pytest.raises(ExecutionFailedError) as ei:
        InProcessOracle().run(_scenario(), inputs, flags=OptimizerFlags(), dirs=dirs)
    assert ei.value.phase is ExecutionPhase.ORACLE


def test_script_oracle_command_uses_dir_prefixes(tmp_path):
    dirs = prepare_scenario_dirs(tmp_path, _scenario())
    oracle = ScriptOracle(script=Path("PageRank.R"), launcher=["Rscript"], timeout_s=None)
    cmd = oracle.build_command(dirs, alpha=0.85, maxiter=10)
    assert cmd == [
        "Rscript",
        "PageRank.R",
        str(dirs.inputs) + os.sep,
        "0.85",
        "10",
        str(dirs.expected) + os.sep,
    ]


def test_script_oracle_missing_launcher(tmp_path):
    dirs = prepare_scenario_dirs(tmp_path, _scenario())
    oracle = ScriptOracle(script=Path("PageRank.R"), launcher=[str(tmp_path / "no-rscript")], timeout_s=None)
    with pytest.raises(ExecutionFailedError, match="cannot launch"):
        oracle.run(_scenario(), _inputs(), flags=OptimizerFlags(), dirs=dirs)
    # inputs were still materialized for the external script
    assert (dirs.inputs / "G.mtd").exists()
