"""
===============================================================================
  Closure Engine — one-way transition of an OPEN record to its outcome
===============================================================================
  Fixed evaluation order, first match wins:

    1. STOP     LONG: mid <= stop      SHORT: mid >= stop
    2. TP1      LONG: mid >= tp1       SHORT: mid <= tp1   (only if tp1 set)
    3. EXPIRED  now > expires_ts                            (only if set)

  Stop is checked before target: if one print satisfies both, the
  conservative outcome is recorded.  Once closed, outcome and closed_ts
  never change again.
===============================================================================
"""

from __future__ import annotations

import math
from typing import Any, Optional

from tracking.models import Outcome, TrackedSetupRecord


def _finite(x: Any) -> bool:
    return not isinstance(x, bool) and isinstance(x, (int, float)) and math.isfinite(x)


def _close(rec: TrackedSetupRecord, outcome: Outcome, now: int) -> Outcome:
    rec.outcome = outcome
    rec.closed_ts = now
    return outcome


def close_by_price(rec: TrackedSetupRecord, mid: float, now: int) -> Optional[Outcome]:
    if not rec.is_open or not _finite(mid):
        return None

    if rec.is_short:
        if mid >= rec.stop:
            return _close(rec, Outcome.STOP, now)
    elif mid <= rec.stop:
        return _close(rec, Outcome.STOP, now)

    if not _finite(rec.tp1):
        return None
    if rec.is_short:
        if mid <= rec.tp1:
            return _close(rec, Outcome.TP1, now)
    elif mid >= rec.tp1:
        return _close(rec, Outcome.TP1, now)
    return None


def close_by_expiry(rec: TrackedSetupRecord, now: int) -> Optional[Outcome]:
    if not rec.is_open:
        return None
    exp = rec.expires_ts
    if _finite(exp) and exp > 0 and now > exp:
        return _close(rec, Outcome.EXPIRED, now)
    return None


def evaluate_closure(rec: TrackedSetupRecord, mid: float, now: int) -> Optional[Outcome]:
    """
    Apply the closure rules for one tick.

    Returns the terminal outcome if this call closed the record, else None.
    A non-finite ``now`` is a no-op so a closed record always carries a real
    ``closed_ts``.
    """
    if not rec.is_open or not _finite(now):
        return None
    return close_by_price(rec, mid, now) or close_by_expiry(rec, now)
