"""
Tracked setup data model and ledger document.
"""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass, field, fields
from enum import Enum
from typing import Any, Optional

import config as cfg


class Outcome(str, Enum):
    OPEN = "OPEN"
    TP1 = "TP1"
    STOP = "STOP"
    EXPIRED = "EXPIRED"


class Side(str, Enum):
    LONG = "LONG"
    SHORT = "SHORT"


_REQUIRED_NUMERIC = ("entry_anchor", "stop", "risk", "created_ts", "last_seen_ts")
_OPTIONAL_NUMERIC = ("tp1", "expires_ts", "triggered_ts", "closed_ts")


@dataclass
class TrackedSetupRecord:
    """One setup on the ledger, from first sighting until it closes."""

    # ── Identity ──────────────────────────────────────────────────────────
    key: str
    symbol: str

    # ── Price anchors (frozen at creation) ────────────────────────────────
    entry_anchor: float
    stop: float
    risk: float                           # abs(entry_anchor - stop), > 0
    tp1: Optional[float] = None

    # ── Descriptive copies (display only, never mutated) ──────────────────
    side: Side = Side.LONG
    type: Optional[str] = None
    bias_tf: Optional[str] = None
    entry_tf: Optional[str] = None
    mode: Optional[str] = None

    # ── Timing (epoch ms) ─────────────────────────────────────────────────
    created_ts: int = 0
    last_seen_ts: int = 0
    expires_ts: Optional[int] = None

    # ── Excursion tracking ────────────────────────────────────────────────
    high_seen: float = 0.0
    low_seen: float = 0.0
    mfe_r: float = 0.0
    mae_r: float = 0.0

    # ── Lifecycle ─────────────────────────────────────────────────────────
    status_last: Optional[str] = None
    triggered_ts: Optional[int] = None
    outcome: Outcome = Outcome.OPEN
    closed_ts: Optional[int] = None

    @property
    def is_open(self) -> bool:
        return self.outcome == Outcome.OPEN

    @property
    def is_short(self) -> bool:
        return self.side == Side.SHORT

    def to_dict(self) -> dict[str, Any]:
        d = asdict(self)
        d["side"] = self.side.value
        d["outcome"] = self.outcome.value
        return d

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> "TrackedSetupRecord":
        """
        Rebuild a record from its persisted form.

        Raises ValueError (or TypeError/KeyError) when the mapping cannot be
        a valid record; the store treats that as a corrupt item.
        """
        key = str(d["key"]).strip()
        if not key:
            raise ValueError("record without key")
        for name in _REQUIRED_NUMERIC:
            if not _finite(d.get(name)):
                raise ValueError(f"record {key}: {name} is not a finite number")
        if float(d["risk"]) <= cfg.TRACKER_RISK_EPSILON:
            raise ValueError(f"record {key}: non-positive risk")

        known = {f.name for f in fields(cls)}
        kwargs = {k: v for k, v in d.items() if k in known}
        kwargs["key"] = key
        kwargs["symbol"] = str(d.get("symbol", ""))
        kwargs["side"] = Side(str(d.get("side", Side.LONG.value)).upper())
        kwargs["outcome"] = Outcome(d.get("outcome", Outcome.OPEN.value))

        # Garbled optional numbers are dropped, never passed to the engines
        for name in _OPTIONAL_NUMERIC:
            if not _finite(kwargs.get(name)):
                kwargs[name] = None
        for name in ("mfe_r", "mae_r"):
            if not _finite(kwargs.get(name)):
                kwargs[name] = 0.0
        for name in ("high_seen", "low_seen"):
            if not _finite(kwargs.get(name)):
                kwargs[name] = d["entry_anchor"]
        for name in ("type", "bias_tf", "entry_tf", "mode", "status_last"):
            if not isinstance(kwargs.get(name), str):
                kwargs[name] = None
        return cls(**kwargs)


@dataclass
class LedgerDocument:
    """Versioned container persisted as a single unit."""

    version: int = cfg.TRACKER_SCHEMA_VERSION
    updated_ts: int = 0
    items: list[TrackedSetupRecord] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "version": self.version,
            "updated_ts": self.updated_ts,
            "items": [r.to_dict() for r in self.items],
        }

    def key_index(self) -> dict[str, int]:
        return {r.key: i for i, r in enumerate(self.items)}


def _finite(x: Any) -> bool:
    if isinstance(x, bool) or not isinstance(x, (int, float)):
        return False
    return math.isfinite(x)
