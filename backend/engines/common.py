"""
GovDash — shared helpers for the aggregation engines.

Engines accept ORM rows, pydantic models, or plain dicts. Dict records may
use either snake_case or the camelCase keys the dashboard client sends.
"""

import math
from collections.abc import Mapping


def round_half_up(value: float, digits: int = 2) -> float:
    """Round to `digits` decimals with ties going up, e.g. 0.125 -> 0.13."""
    factor = 10 ** digits
    return math.floor(value * factor + 0.5) / factor


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


def field(record, name: str):
    """Read `name` from an object attribute or a mapping key (snake or camel)."""
    if isinstance(record, Mapping):
        if name in record:
            return record[name]
        return record[_camel(name)]
    return getattr(record, name)


def tally(records, name: str, keys: tuple[str, ...]) -> dict[str, int]:
    """Count records per value of `name`. Every key in `keys` appears, zeros included."""
    counts = {key: 0 for key in keys}
    for record in records:
        value = field(record, name)
        if value in counts:
            counts[value] += 1
    return counts
