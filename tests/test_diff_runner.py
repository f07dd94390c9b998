import numpy as np
import pytest

from verify.diff_runner import ShapeMismatchError, ToleranceExceededError, compare
from verify.gen_cases import MatrixPayload, MatrixSpec, generate


def _col(values):
    return MatrixPayload(np.asarray(values, dtype=np.float64).reshape(-1, 1))


def test_compare_passes_within_tolerance():
    a = _col([1e12, 2.0, 0.0])
    b = _col([1e12 + 0.05, 2.0, 0.0])
    v = compare(a, b, 0.1)
    assert v.passed
    assert v.max_abs_diff == pytest.approx(0.05, abs=1e-3)
    assert v.mismatched_cells == ()
    v.raise_for_status()


def test_compare_reports_offending_cells_in_row_major_order():
    cand = MatrixPayload(np.array([[0.0, 5.0], [1.0, 0.0]]))
    ref = MatrixPayload(np.array([[0.0, 0.0], [3.0, 0.0]]))
    v = compare(cand, ref, 1.0)
    assert not v.passed
    assert v.num_mismatched == 2
    assert v.max_abs_diff == 5.0
    # (row, col, expected, actual)
    assert v.mismatched_cells == ((0, 1, 0.0, 5.0), (1, 0, 3.0, 1.0))
    with pytest.raises(ToleranceExceededError) as ei:
        v.raise_for_status()
    assert ei.value.verdict is v


def test_compare_zero_fills_cells_missing_on_one_side():
    cand = MatrixPayload.from_cells({(0, 0): 1.0}, rows=2, cols=2)
    ref = MatrixPayload.from_cells({(1, 1): 1.0}, rows=2, cols=2)
    v = compare(cand, ref, 0.5)
    assert not v.passed
    assert [(r, c) for (r, c, _, _) in v.mismatched_cells] == [(0, 0), (1, 1)]


def test_compare_caps_reported_cells():
    a = MatrixPayload(np.zeros((10, 10)))
    b = MatrixPayload(np.ones((10, 10)))
    v = compare(a, b, 0.0, max_cells=5)
    assert v.num_mismatched == 100
    assert len(v.mismatched_cells) == 5


def test_compare_is_symmetric():
    a = generate(MatrixSpec(rows=30, cols=4, min_value=-1.0, max_value=1.0, density=0.6, seed=5))
    b = generate(MatrixSpec(rows=30, cols=4, min_value=-1.0, max_value=1.0, density=0.6, seed=6))
    for tol in (0.0, 0.5, 1.0, 2.0):
        assert compare(a, b, tol).passed == compare(b, a, tol).passed
        assert compare(a, b, tol).max_abs_diff == compare(b, a, tol).max_abs_diff


@pytest.mark.parametrize("shapes", [((3, 1), (4, 1)), ((3, 1), (1, 3)), ((2, 2), (2, 3))])
def test_compare_raises_on_shape_mismatch(shapes):
    a = MatrixPayload(np.zeros(shapes[0]))
    b = MatrixPayload(np.zeros(shapes[1]))
    with pytest.raises(ShapeMismatchError):
        compare(a, b, 1e9)
    with pytest.raises(ShapeMismatchError):
        compare(b, a, 1e9)


def test_compare_non_finite_cells():
    same = compare(_col([np.nan, np.inf, 1.0]), _col([np.nan, np.inf, 1.0]), 0.0)
    assert same.passed
    diff = compare(_col([np.nan, 1.0]), _col([1.0, 1.0]), 1e9)
    assert not diff.passed
    assert diff.max_abs_diff == float("inf")


def test_verdict_json_is_serializable():
    v = compare(_col([0.0]), _col([2.0]), 1.0)
    js = v.to_json_dict()
    assert js["passed"] is False
    assert js["mismatched_cells"] == [{"row": 0, "col": 0, "expected": 2.0, "actual": 0.0}]
