"""Reference-range interpretation shared by every provider parser."""

import re
from typing import Optional

from .models import MarkerValue, ReferenceRange, Status

_NUM = r"(-?\d+(?:\.\d+)?)"

DASH_RE = re.compile(_NUM + r"\s*[-–—]\s*" + _NUM)
LESS_THAN_RE = re.compile(r"<\s*=?\s*" + _NUM)
GREATER_THAN_RE = re.compile(r">\s*=?\s*" + _NUM)


def parse_range(text: str) -> ReferenceRange:
    """Turn free-text like "70-100", "< 5", ">10" or "Negative" into a ReferenceRange.

    Dashed intervals win over inequalities; anything else keeps only the text.
    """
    raw = (text or "").strip()

    m = DASH_RE.search(raw)
    if m:
        return ReferenceRange(min=float(m.group(1)), max=float(m.group(2)), text=raw)

    m = LESS_THAN_RE.search(raw)
    if m:
        return ReferenceRange(max=float(m.group(1)), text=raw)

    m = GREATER_THAN_RE.search(raw)
    if m:
        return ReferenceRange(min=float(m.group(1)), text=raw)

    return ReferenceRange(text=raw)


def derive_status(value: MarkerValue, rng: ReferenceRange) -> Optional[Status]:
    # "<5" / ">200" y resultados cualitativos no se clasifican
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if rng.min is not None and value < rng.min:
        return "low"
    if rng.max is not None and value > rng.max:
        return "high"
    if rng.min is not None and rng.max is not None:
        return "normal"
    return None


def status_from_flag(flag: str) -> Status:
    """Map a lab-printed flag ("H", "L", "HH", "*") to a status."""
    f = flag.strip().upper()
    if "H" in f:
        return "high"
    if "L" in f:
        return "low"
    return "normal"
