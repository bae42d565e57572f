"""
===============================================================================
  Analytics — read-only views over the ledger
===============================================================================
  summarize()      headline counts, close rates and average excursions
  records_frame()  the ledger as a DataFrame (one row per record)
  breakdown()      summarize() per setup type / side / symbol

  Averages of mfe_r / mae_r use CLOSED records only: an open record's
  excursions are not final yet.
===============================================================================
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, fields
from typing import Iterable

import numpy as np
import pandas as pd

from tracking.models import Outcome, TrackedSetupRecord

RECORD_COLUMNS = [f.name for f in fields(TrackedSetupRecord)]


@dataclass
class TrackerStats:
    total: int = 0
    open: int = 0
    closed: int = 0
    tp1: int = 0
    stop: int = 0
    expired: int = 0
    tp_rate: float = 0.0
    stop_rate: float = 0.0
    avg_mfe_r_closed: float = 0.0
    avg_mae_r_closed: float = 0.0

    def to_dict(self) -> dict:
        return asdict(self)


STAT_COLUMNS = [f.name for f in fields(TrackerStats)]


def _mean(values: list[float]) -> float:
    return float(np.mean(values)) if values else 0.0


def summarize(records: Iterable[TrackedSetupRecord]) -> TrackerStats:
    records = list(records)
    closed = [r for r in records if not r.is_open]
    n_closed = len(closed)

    tp = sum(1 for r in closed if r.outcome == Outcome.TP1)
    sl = sum(1 for r in closed if r.outcome == Outcome.STOP)
    ex = sum(1 for r in closed if r.outcome == Outcome.EXPIRED)

    return TrackerStats(
        total=len(records),
        open=len(records) - n_closed,
        closed=n_closed,
        tp1=tp,
        stop=sl,
        expired=ex,
        tp_rate=tp / n_closed if n_closed else 0.0,
        stop_rate=sl / n_closed if n_closed else 0.0,
        avg_mfe_r_closed=_mean([r.mfe_r for r in closed]),
        avg_mae_r_closed=_mean([r.mae_r for r in closed]),
    )


def records_frame(records: Iterable[TrackedSetupRecord]) -> pd.DataFrame:
    """Ledger as a DataFrame, plus ``duration_ms`` (NaN while open)."""
    df = pd.DataFrame(
        [r.to_dict() for r in records],
        columns=RECORD_COLUMNS,
    )
    closed_ts = pd.to_numeric(df["closed_ts"], errors="coerce")
    created_ts = pd.to_numeric(df["created_ts"], errors="coerce")
    df["duration_ms"] = closed_ts - created_ts
    return df


def _frame_stats(df: pd.DataFrame) -> dict:
    closed = df[df["outcome"] != Outcome.OPEN.value]
    n_closed = len(closed)
    counts = closed["outcome"].value_counts()
    tp = int(counts.get(Outcome.TP1.value, 0))
    sl = int(counts.get(Outcome.STOP.value, 0))
    return {
        "total": len(df),
        "open": len(df) - n_closed,
        "closed": n_closed,
        "tp1": tp,
        "stop": sl,
        "expired": int(counts.get(Outcome.EXPIRED.value, 0)),
        "tp_rate": tp / n_closed if n_closed else 0.0,
        "stop_rate": sl / n_closed if n_closed else 0.0,
        "avg_mfe_r_closed": float(closed["mfe_r"].mean()) if n_closed else 0.0,
        "avg_mae_r_closed": float(closed["mae_r"].mean()) if n_closed else 0.0,
    }


def breakdown(records: Iterable[TrackedSetupRecord], by: str = "type") -> pd.DataFrame:
    """
    Per-group statistics, one row per distinct value of ``by``.
    Records with no value for ``by`` are grouped under "n/a".
    """
    if by not in RECORD_COLUMNS:
        raise ValueError(f"cannot group by unknown field {by!r}")

    df = records_frame(records)
    if df.empty:
        return pd.DataFrame(columns=STAT_COLUMNS).rename_axis(by)

    df[by] = df[by].fillna("n/a")
    rows = {name: _frame_stats(group) for name, group in df.groupby(by, sort=True)}
    out = pd.DataFrame.from_dict(rows, orient="index", columns=STAT_COLUMNS)
    return out.rename_axis(by)
