"""
Batch helper: run one callable per item and keep going on errors.

A failure in one item is turned into an error record so the rest of the
batch still runs; only exception types listed in `fatal` escape.
"""

from __future__ import annotations

import traceback
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple, Type, TypeVar

T = TypeVar("T")


def error_record(name: str, err: BaseException) -> Dict[str, Any]:
    return {
        "ok": False,
        "name": name,
        "error": {
            "type": type(err).__name__,
            "message": str(err),
            "traceback": "".join(traceback.format_exception(type(err), err, err.__traceback__))[-4000:],
        },
    }


def process_batch(
    items: Iterable[T],
    process_one: Callable[[T], Any],
    *,
    name_fn: Callable[[T], str] = str,
    on_error: Optional[Callable[[T, Dict[str, Any]], None]] = None,
    fatal: Tuple[Type[BaseException], ...] = (),
) -> List[Any]:
    results: List[Any] = []
    for item in items:
        try:
            results.append(process_one(item))
        except fatal:
            raise
        except Exception as e:
            rec = error_record(name_fn(item), e)
            if on_error is not None:
                on_error(item, rec)
            results.append(rec)
    return results


__all__ = ["error_record", "process_batch"]
