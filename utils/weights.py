from __future__ import annotations

import math
import re
from typing import Any

_LEADING_FLOAT = re.compile(r"^\s*([+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?)")


def parse_weight(value: Any) -> float:
    # Leading-number parse so "12.5 kg" reads as 12.5; anything unreadable is 0.
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        f = float(value)
    else:
        m = _LEADING_FLOAT.match(str(value))
        if not m:
            return 0.0
        f = float(m.group(1))
    if math.isnan(f) or math.isinf(f):
        return 0.0
    return f


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def percentage(part: float, whole: float) -> int:
    if whole <= 0:
        return 0
    return round_half_up(part * 100.0 / whole)
