"""
Parse runtime statistics printed by `-stats`.

Only the heavy-hitter table is needed: it lists the most expensive
instructions with their invocation counts, e.g.

    Heavy hitter instructions:
     #  Instruction  Time(s)  Count
     1  spoofRA        0.512     10
     2  ba+*           0.101     10
"""

from __future__ import annotations

import re
from typing import Dict

_HEADER_RE = re.compile(r"^\s*Heavy hitter instructions", re.IGNORECASE)
_ROW_RE = re.compile(r"^\s*(\d+)\s+(\S+)\s+([0-9]*\.?[0-9]+(?:[eE][-+]?\d+)?)\s+(\d+)\s*$")


def parse_heavy_hitters(text: str) -> Dict[str, int]:
    """
    Return {instruction: count} from every heavy-hitter table in `text`.

    Counts of an instruction appearing more than once (multiple tables,
    e.g. nested script invocations) are summed.
    """
    out: Dict[str, int] = {}
    in_table = False
    for line in str(text).splitlines():
        if _HEADER_RE.match(line):
            in_table = True
            continue
        if not in_table:
            continue
        if line.strip().startswith("#"):
            continue
        m = _ROW_RE.match(line)
        if not m:
            if line.strip():
                in_table = False
            continue
        name = m.group(2)
        out[name] = out.get(name, 0) + int(m.group(4))
    return out


__all__ = ["parse_heavy_hitters"]
