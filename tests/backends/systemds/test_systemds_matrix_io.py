import json

import numpy as np
import pytest

from backends.systemds.matrix_io import metadata_path, read_matrix, read_metadata, write_matrix
from verify.gen_cases import MatrixPayload, MatrixSpec, generate


def test_write_then_read_preserves_values_bit_for_bit(tmp_path):
    m = generate(MatrixSpec(rows=25, cols=3, min_value=0.0, max_value=1e-14, density=0.7, seed=71))
    path = write_matrix(tmp_path / "in" / "p", m)
    assert path.exists() and metadata_path(path).exists()
    meta = read_metadata(path)
    assert meta["rows"] == 25 and meta["cols"] == 3 and meta["nnz"] == m.nnz and meta["format"] == "mm"
    assert read_matrix(path) == m


def test_all_zero_matrix_keeps_its_shape(tmp_path):
    path = write_matrix(tmp_path / "z", MatrixPayload.zeros(4, 2))
    back = read_matrix(path)
    assert back.shape == (4, 2)
    assert back.nnz == 0


def test_read_text_cells_from_part_files(tmp_path):
    out = tmp_path / "p"
    out.mkdir()
    (out / "0-m-00000").write_text("1 1 2.5\n3 1 -1.0\n", encoding="utf-8")
    (out / "0-m-00001").write_text("2 1 4.0\n", encoding="utf-8")
    (out / "_SUCCESS").write_text("", encoding="utf-8")
    metadata_path(out).write_text(json.dumps({"rows": 3, "cols": 1, "format": "text"}), encoding="utf-8")
    m = read_matrix(out)
    assert np.array_equal(m.values, np.array([[2.5], [4.0], [-1.0]]))


def test_read_csv(tmp_path):
    path = tmp_path / "p"
    path.write_text("1.0,2.0\n3.0,4.0\n", encoding="utf-8")
    metadata_path(path).write_text(json.dumps({"rows": 2, "cols": 2, "format": "csv"}), encoding="utf-8")
    assert read_matrix(path) == MatrixPayload(np.array([[1.0, 2.0], [3.0, 4.0]]))


def test_read_rejects_shape_disagreeing_with_metadata(tmp_path):
    path = write_matrix(tmp_path / "p", MatrixPayload.zeros(2, 2))
    metadata_path(path).write_text(json.dumps({"rows": 3, "cols": 2, "format": "mm"}), encoding="utf-8")
    with pytest.raises(ValueError):
        read_matrix(path)


def test_read_missing_or_unknown_format(tmp_path):
    with pytest.raises(FileNotFoundError):
        read_matrix(tmp_path / "nope")
    path = write_matrix(tmp_path / "p", MatrixPayload.zeros(1, 1))
    metadata_path(path).write_text(json.dumps({"rows": 1, "cols": 1, "format": "binary"}), encoding="utf-8")
    with pytest.raises(ValueError, match="binary"):
        read_matrix(path)


def test_read_mm_merges_part_files(tmp_path):
    out = tmp_path / "p"
    out.mkdir()
    write_matrix(out / "part-00000", MatrixPayload(np.array([[1.0], [0.0]])), with_mtd=False)
    write_matrix(out / "part-00001", MatrixPayload(np.array([[0.0], [2.0]])), with_mtd=False)
    (out / "_SUCCESS").write_text("", encoding="utf-8")
    assert read_matrix(out) == MatrixPayload(np.array([[1.0], [2.0]]))


def test_read_mm_rejects_overlapping_part_files(tmp_path):
    out = tmp_path / "p"
    out.mkdir()
    write_matrix(out / "part-00000", MatrixPayload(np.array([[1.0], [0.0]])), with_mtd=False)
    write_matrix(out / "part-00001", MatrixPayload(np.array([[3.0], [2.0]])), with_mtd=False)
    with pytest.raises(ValueError, match="repeats cell"):
        read_matrix(out)


def test_read_empty_output_dir(tmp_path):
    out = tmp_path / "p"
    out.mkdir()
    (out / "_SUCCESS").write_text("", encoding="utf-8")
    with pytest.raises(ValueError, match="no part files"):
        read_matrix(out)
