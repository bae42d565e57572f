"""
===============================================================================
  Excursion Engine — running MFE / MAE in R multiples
===============================================================================
  R = abs(entry_anchor - stop), frozen at creation.

    LONG   favorable = high_seen - entry      adverse = entry - low_seen
    SHORT  favorable = entry - low_seen       adverse = high_seen - entry

  mfe_r / mae_r only ever grow while the record is OPEN and are frozen
  once it closes.
===============================================================================
"""

from __future__ import annotations

import math

import config as cfg
from tracking.models import TrackedSetupRecord


def excursions(rec: TrackedSetupRecord) -> tuple[float, float]:
    """(favorable, adverse) price distance from the entry anchor."""
    if rec.is_short:
        return rec.entry_anchor - rec.low_seen, rec.high_seen - rec.entry_anchor
    return rec.high_seen - rec.entry_anchor, rec.entry_anchor - rec.low_seen


def update_excursion(rec: TrackedSetupRecord, mid: float) -> None:
    if not rec.is_open:
        return
    if isinstance(mid, bool) or not isinstance(mid, (int, float)) or not math.isfinite(mid):
        return

    rec.high_seen = max(rec.high_seen, mid)
    rec.low_seen = min(rec.low_seen, mid)

    risk = max(cfg.TRACKER_RISK_EPSILON, rec.risk)
    favorable, adverse = excursions(rec)

    # Extreme prices over a tiny risk can overflow to inf; keep the last finite value
    mfe_r = favorable / risk
    mae_r = adverse / risk
    if math.isfinite(mfe_r):
        rec.mfe_r = max(rec.mfe_r, mfe_r)
    if math.isfinite(mae_r):
        rec.mae_r = max(rec.mae_r, mae_r)
