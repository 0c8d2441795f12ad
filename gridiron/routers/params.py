# gridiron/routers/params.py
from __future__ import annotations

from typing import Optional


def flag(value: Optional[str]) -> bool:
    """Query flags are on only when exactly '1' (force=1, debug=1)."""
    return (value or "").strip() == "1"


def int_param(value: Optional[str], default: Optional[int] = None, lo: Optional[int] = None) -> Optional[int]:
    """Lenient int query param: bad input falls back to `default` instead of a 422."""
    try:
        out = int(str(value).strip()) if value not in (None, "") else default
    except ValueError:
        return default
    if out is not None and lo is not None and out < lo:
        return default
    return out


def text_param(value: Optional[str]) -> Optional[str]:
    s = (value or "").strip()
    return s or None
