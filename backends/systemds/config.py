"""
Per-scenario runtime configuration file.

Each scenario gets its own XML config so the fusion optimizer choice, the
optimizer flags and the scratch/tmp locations never leak across scenarios.

The optimizer-flag keys in `FLAG_KEYS` are this harness's own naming; the
runtime is not known to read them. Unless the launcher or runtime maps them
onto its rewrite and fusion switches, a rewrites-off scenario still compiles
with the runtime's default rewrites and only the fusion optimizer choice takes
effect. Keep the names in sync with whatever consumes them.
"""

from __future__ import annotations

import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Dict

from pipeline.interfaces import OptimizerFlags
from verify.scenarios import FusionProfile


# Optimization level that enables code generation.
CODEGEN_OPTLEVEL = 7

_FUSION_OPTIMIZER: Dict[FusionProfile, str] = {
    FusionProfile.DEFAULT: "fuse_cost_based_v2",
    FusionProfile.FUSE_ALL: "fuse_all",
    FusionProfile.FUSE_NO_REDUNDANCY: "fuse_no_redundancy",
}

# Config keys the runtime reads the optimizer switches from.
FLAG_KEYS: Dict[str, str] = {
    "algebraic_simplification_enabled": "sysds.compiler.algebraic.simplification",
    "operator_fusion_enabled": "sysds.compiler.operator.fusion",
    "auto_vectorization_enabled": "sysds.compiler.auto.vectorization",
}


def config_entries(profile: FusionProfile, flags: OptimizerFlags, *, scratch_dir: Path, tmp_dir: Path) -> Dict[str, str]:
    entries: Dict[str, str] = {
        "sysds.localtmpdir": str(tmp_dir),
        "sysds.scratch": str(scratch_dir),
        "sysds.optlevel": str(CODEGEN_OPTLEVEL),
        "sysds.codegen.enabled": "true",
        "sysds.codegen.plancache": "true",
        "sysds.codegen.literals": "1",
        "sysds.codegen.optimizer": _FUSION_OPTIMIZER[FusionProfile(profile)],
    }
    for attr, key in FLAG_KEYS.items():
        entries[key] = "true" if bool(getattr(flags, attr)) else "false"
    return entries


def write_config(path: Path, profile: FusionProfile, flags: OptimizerFlags, *, scratch_dir: Path, tmp_dir: Path) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    root = ET.Element("root")
    for key, value in config_entries(profile, flags, scratch_dir=scratch_dir, tmp_dir=tmp_dir).items():
        ET.SubElement(root, key).text = value
    ET.indent(root)
    ET.ElementTree(root).write(path, encoding="utf-8", xml_declaration=False)
    return path


__all__ = ["CODEGEN_OPTLEVEL", "FLAG_KEYS", "config_entries", "write_config"]
