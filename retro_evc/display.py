"""
Fixed-width text helpers for the retro display.

The front-end renders these strings as HTML in a monospace font, so
padding uses &nbsp; entities; each entity occupies one display column.
"""

import math
from typing import Any, Mapping, Optional

NBSP = "&nbsp;"
MISSING_TEXT = "N/A"

TRACE_THRESHOLD = 0.15  # mm, inclusive
NIL_WIDTH = 6
TRACE_WIDTH = 7
PRECIP_VALUE_WIDTH = 5
DEFAULT_PRECIP_UNITS = "mm"


def pad_string(value: Any, length: int, right_align: bool = False) -> str:
    """
    Pad a value to a display width with non-breaking spaces.

    Values at or over the width come back unchanged. A missing or empty
    value renders as "N/A".
    """
    text = MISSING_TEXT if value is None or value == "" else str(value)
    fill = NBSP * max(length - len(text), 0)
    return fill + text if right_align else text + fill


def generate_precip_string(precip: Optional[Any] = None) -> str:
    """
    Render a precipitation amount ({"value", "units"}) for the display.

    A bare value (number or text) is treated as {"value": precip} in mm.
    """
    if precip is None:
        return "MISSING"
    if not isinstance(precip, Mapping):
        precip = {"value": precip}
    if not precip:
        return "MISSING"

    value = precip.get("value")
    if value is None or value == "":
        return "MISSING"

    amount = _amount(value)
    if amount is None:
        if str(value).strip().lower() == "trace":
            return pad_string("TRACE", TRACE_WIDTH, True)
        return str(value)

    if amount < 0:
        return "MISSING"
    if amount == 0:
        return pad_string("NIL", NIL_WIDTH, True)
    if amount <= TRACE_THRESHOLD:
        return pad_string("TRACE", TRACE_WIDTH, True)

    units = precip.get("units") or DEFAULT_PRECIP_UNITS
    return f"{pad_string(value, PRECIP_VALUE_WIDTH, True)} {units}"


def _amount(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    try:
        amount = float(value)
    except (TypeError, ValueError):
        return None
    return amount if math.isfinite(amount) else None
