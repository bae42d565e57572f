"""
===============================================================================
  Record Deriver — turns an untrusted setup candidate into a tracked record
===============================================================================
  All candidate field extraction lives here.  The upstream pipeline emits
  loosely-shaped mappings:

    {
      "canon": "...", "id": "...",           # identity (canon preferred)
      "side": "LONG" | "SHORT",
      "entry": {"zone": {"lo": ..., "hi": ...}},
      "stop": {"price": ...},
      "tp": [{"price": ...}, ...],           # first level is TP1
      "expires_ts": <epoch ms>,
      "status": "FORMING" | "TRIGGERED" | ...,
      "type": ..., "bias_tf": ..., "entry_tf": ..., "mode": ...
    }

  Every extractor returns None for anything missing, malformed or
  non-finite.  A candidate that cannot yield a record is skipped, never
  an error.
===============================================================================
"""

from __future__ import annotations

import math
from typing import Any, Optional

import config as cfg
from tracking.models import Outcome, Side, TrackedSetupRecord
from utils.logger import get_logger

log = get_logger("deriver")


def _get(obj: Any, name: str) -> Any:
    if isinstance(obj, dict):
        return obj.get(name)
    return None


def safe_num(x: Any) -> Optional[float]:
    """Coerce ``x`` to a finite float, or None."""
    if x is None or isinstance(x, bool):
        return None
    try:
        n = float(x)
    except (TypeError, ValueError):
        return None
    return n if math.isfinite(n) else None


def _opt_str(x: Any) -> Optional[str]:
    return x if isinstance(x, str) else None


def _opt_ts(x: Any) -> Optional[int]:
    n = safe_num(x)
    return int(n) if n is not None else None


# ═════════════════════════════════════════════════════════════════════════════
#  FIELD EXTRACTORS
# ═════════════════════════════════════════════════════════════════════════════

def setup_key(candidate: Any) -> str:
    """Stable identity of a candidate; empty string when it has none."""
    raw = _get(candidate, "canon")
    if raw is None:
        raw = _get(candidate, "id")
    if raw is None:
        return ""
    return str(raw).strip()


def extract_entry_anchor(candidate: Any) -> Optional[float]:
    """Midpoint of the entry zone.  Requires lo < hi."""
    zone = _get(_get(candidate, "entry"), "zone")
    lo = safe_num(_get(zone, "lo"))
    hi = safe_num(_get(zone, "hi"))
    if lo is None or hi is None or not lo < hi:
        return None
    return (lo + hi) / 2


def extract_stop(candidate: Any) -> Optional[float]:
    return safe_num(_get(_get(candidate, "stop"), "price"))


def extract_tp1(candidate: Any) -> Optional[float]:
    tps = _get(candidate, "tp")
    if not isinstance(tps, list) or not tps:
        return None
    return safe_num(_get(tps[0], "price"))


def extract_side(candidate: Any) -> Side:
    side = _get(candidate, "side")
    if isinstance(side, str) and side.strip().upper() == Side.SHORT.value:
        return Side.SHORT
    return Side.LONG


def extract_status(candidate: Any) -> Optional[str]:
    status = _get(candidate, "status")
    if isinstance(status, str) and status:
        return status
    return None


def is_triggered(status: Optional[str]) -> bool:
    return status is not None and status.strip().upper() == cfg.TRIGGERED_STATUS


# ═════════════════════════════════════════════════════════════════════════════
#  DERIVE
# ═════════════════════════════════════════════════════════════════════════════

def derive_record(symbol: str, candidate: Any, now: int) -> Optional[TrackedSetupRecord]:
    """
    Build a fresh OPEN record from ``candidate``, or None if it is
    un-trackable (no key, no usable entry zone, no stop, or zero risk).
    """
    key = setup_key(candidate)
    if not key:
        return None

    entry = extract_entry_anchor(candidate)
    if entry is None:
        log.debug(f"{symbol} {key}: rejected (missing or degenerate entry zone)")
        return None

    stop = extract_stop(candidate)
    if stop is None:
        log.debug(f"{symbol} {key}: rejected (missing stop)")
        return None

    risk = abs(entry - stop)
    if not math.isfinite(risk) or risk <= cfg.TRACKER_RISK_EPSILON:
        log.debug(f"{symbol} {key}: rejected (risk={risk})")
        return None

    status = extract_status(candidate)

    return TrackedSetupRecord(
        key=key,
        symbol=symbol,
        entry_anchor=entry,
        stop=stop,
        risk=risk,
        tp1=extract_tp1(candidate),
        side=extract_side(candidate),
        type=_opt_str(_get(candidate, "type")),
        bias_tf=_opt_str(_get(candidate, "bias_tf")),
        entry_tf=_opt_str(_get(candidate, "entry_tf")),
        mode=_opt_str(_get(candidate, "mode")),
        created_ts=now,
        last_seen_ts=now,
        expires_ts=_opt_ts(_get(candidate, "expires_ts")),
        high_seen=entry,
        low_seen=entry,
        mfe_r=0.0,
        mae_r=0.0,
        status_last=status,
        triggered_ts=now if is_triggered(status) else None,
        outcome=Outcome.OPEN,
        closed_ts=None,
    )
