"""
Scenario matrix: every (rewrites x fusion profile x sparsity x backend)
combination a suite has to run.

The cross-product is generated in a fixed nested-loop order so a failure can
be reported (and re-run) by position or by its generated name.
"""

from __future__ import annotations

import fnmatch
from dataclasses import dataclass
from enum import Enum
from itertools import product
from typing import Iterable, List, Sequence, Tuple

from pipeline.interfaces import OptimizerFlags


class Backend(str, Enum):
    LOCAL = "local"
    DISTRIBUTED = "distributed"

    @property
    def short(self) -> str:
        return "cp" if self is Backend.LOCAL else "sp"


class FusionProfile(str, Enum):
    DEFAULT = "default"
    FUSE_ALL = "fuse_all"
    FUSE_NO_REDUNDANCY = "fuse_no_redundancy"


@dataclass(frozen=True)
class Scenario:
    name: str
    rewrites_enabled: bool
    sparse: bool
    backend: Backend = Backend.LOCAL
    fusion_profile: FusionProfile = FusionProfile.DEFAULT

    @property
    def expects_fusion(self) -> bool:
        # Without rewrites the run is a correctness-only check.
        return bool(self.rewrites_enabled)

    def flags(self) -> OptimizerFlags:
        return OptimizerFlags(
            algebraic_simplification_enabled=bool(self.rewrites_enabled),
            operator_fusion_enabled=bool(self.rewrites_enabled),
            auto_vectorization_enabled=True,
        )

    def to_json_dict(self) -> dict:
        return {
            "name": self.name,
            "rewrites_enabled": bool(self.rewrites_enabled),
            "sparse": bool(self.sparse),
            "backend": self.backend.value,
            "fusion_profile": self.fusion_profile.value,
        }


@dataclass(frozen=True)
class ScenarioOptions:
    algorithm: str = "pagerank"
    rewrites: Tuple[bool, ...] = (True, False)
    fusion_profiles: Tuple[FusionProfile, ...] = (
        FusionProfile.DEFAULT,
        FusionProfile.FUSE_ALL,
        FusionProfile.FUSE_NO_REDUNDANCY,
    )
    sparse: Tuple[bool, ...] = (False, True)
    backends: Tuple[Backend, ...] = (Backend.LOCAL,)


def scenario_name(algorithm: str, *, rewrites_enabled: bool, sparse: bool, backend: Backend, fusion_profile: FusionProfile) -> str:
    parts = [str(algorithm), "sparse" if sparse else "dense", backend.short]
    if fusion_profile is not FusionProfile.DEFAULT:
        parts.append(fusion_profile.value)
    if not rewrites_enabled:
        parts.append("nor")
    return "_".join(parts)


def _check_unique(label: str, values: Sequence) -> None:
    if len(set(values)) != len(values):
        raise ValueError(f"duplicate {label} values: {list(values)}")


def enumerate_scenarios(options: ScenarioOptions | None = None) -> List[Scenario]:
    """
    Expand `options` into the ordered list of scenarios.

    Order: rewrites (outermost), fusion profile, sparsity, backend (innermost).
    """
    opts = options or ScenarioOptions()
    rewrites = tuple(bool(r) for r in opts.rewrites)
    profiles = tuple(FusionProfile(p) for p in opts.fusion_profiles)
    sparse = tuple(bool(s) for s in opts.sparse)
    backends = tuple(Backend(b) for b in opts.backends)
    _check_unique("rewrites", rewrites)
    _check_unique("fusion_profiles", profiles)
    _check_unique("sparse", sparse)
    _check_unique("backends", backends)

    out: List[Scenario] = []
    for rw, prof, sparse_flag, be in product(rewrites, profiles, sparse, backends):
        name = scenario_name(opts.algorithm, rewrites_enabled=rw, sparse=sparse_flag, backend=be, fusion_profile=prof)
        out.append(Scenario(name=name, rewrites_enabled=rw, sparse=sparse_flag, backend=be, fusion_profile=prof))
    return out


def select_scenarios(scenarios: Iterable[Scenario], patterns: Sequence[str] | None) -> List[Scenario]:
    """
    Keep scenarios whose name matches any glob in `patterns` (all if empty).
    """
    items = list(scenarios)
    if not patterns:
        return items
    return [s for s in items if any(fnmatch.fnmatchcase(s.name, p) for p in patterns)]


__all__ = [
    "Backend",
    "FusionProfile",
    "Scenario",
    "ScenarioOptions",
    "scenario_name",
    "enumerate_scenarios",
    "select_scenarios",
]
