from __future__ import annotations

import sys
from pathlib import Path

import pytest

# Ensure repo root is importable for all tests, regardless of nested test layout.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from pipeline.flags import set_flags  # noqa: E402
from pipeline.interfaces import OptimizerFlags  # noqa: E402


@pytest.fixture(autouse=True)
def _default_optimizer_flags():
    # Each test starts and ends with the default process-wide flags.
    set_flags(OptimizerFlags())
    yield
    set_flags(OptimizerFlags())
