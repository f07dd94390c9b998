"""
Checks that the optimization under test actually fired.

Matching outputs alone can hide a fallback path (fusion never engaged), so a
scenario that expects fusion also has to show the fused operator in the
runtime's invocation statistics. The runtime only exposes free-text operator
names, so this is a substring match; the default name set tracks the current
runtime naming for fused row-aggregate operators (local and distributed).
"""

from __future__ import annotations

from typing import Iterable, List, Mapping


SPOOF_ROW_AGGREGATE = frozenset({"spoofRA", "sp_spoofRA"})


class SignatureMissingError(AssertionError):
    def __init__(self, expected: Iterable[str], operators: Iterable[str]):
        self.expected = sorted(set(expected))
        self.operators = list(operators)
        super().__init__(
            f"no operator matching {self.expected} in runtime statistics "
            f"(saw {len(self.operators)} operator(s): {self.operators[:10]})"
        )


def matching_operators(statistics: Mapping[str, int], expected_substrings: Iterable[str]) -> List[str]:
    """
    Operator names (in statistics order) containing any expected substring.
    """
    subs = [s for s in expected_substrings if s]
    return [name for name in statistics.keys() if any(s in str(name) for s in subs)]


def verify_signature(statistics: Mapping[str, int], expected_substrings: Iterable[str] = SPOOF_ROW_AGGREGATE) -> bool:
    return bool(matching_operators(statistics, expected_substrings))


def require_signature(statistics: Mapping[str, int], expected_substrings: Iterable[str] = SPOOF_ROW_AGGREGATE) -> List[str]:
    expected = list(expected_substrings)
    found = matching_operators(statistics, expected)
    if not found:
        raise SignatureMissingError(expected, statistics.keys())
    return found


__all__ = [
    "SPOOF_ROW_AGGREGATE",
    "SignatureMissingError",
    "matching_operators",
    "verify_signature",
    "require_signature",
]
