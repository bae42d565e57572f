"""
===============================================================================
  Setup Tracker — the per-tick orchestrator
===============================================================================
  Called once per polling cycle with the setups currently visible for one
  symbol and the live mid price.  Each tick:

    1. loads the ledger
    2. upserts candidates  (new key → derive record, known key → merge)
    3. for every OPEN record of the symbol: excursion update, then closure
    4. prunes to the size cap and writes the ledger back

  Synchronous and single-threaded.  Concurrent callers sharing one store
  get last-writer-wins; there is no locking.  tick() never raises.
===============================================================================
"""

from __future__ import annotations

import math
from typing import Any, Optional, Sequence

import config as cfg
from tracking.closure import evaluate_closure
from tracking.deriver import derive_record, setup_key
from tracking.eviction import prune
from tracking.excursion import update_excursion
from tracking.lifecycle import merge_lifecycle
from tracking.models import TrackedSetupRecord
from tracking.store import LedgerStore
from utils.logger import get_logger

log = get_logger("tracker")


class SetupTracker:
    """
    Owns the ledger store and exposes the tracker's entry points.

    ``alerter`` is optional; when given, every record closed by a tick is
    passed to ``alerter.setup_closed(record)``.
    """

    def __init__(
        self,
        store: Optional[LedgerStore] = None,
        max_items: Optional[int] = None,
        alerter: Any = None,
    ):
        self.store = store if store is not None else LedgerStore()
        self.max_items = cfg.TRACKER_MAX_ITEMS if max_items is None else max_items
        self.alerter = alerter

    # =====================================================================
    #  TICK
    # =====================================================================

    def tick(
        self,
        symbol: str,
        candidates: Sequence[Any],
        mid: float,
        now: int,
    ) -> list[TrackedSetupRecord]:
        """
        Run one polling cycle.  Returns the records closed during it.
        """
        if not isinstance(symbol, str) or not symbol:
            return []
        if not isinstance(candidates, (list, tuple)):
            return []
        if isinstance(now, bool) or not isinstance(now, (int, float)) or not math.isfinite(now):
            log.debug(f"{symbol}: tick skipped, non-finite timestamp {now!r}")
            return []

        doc = self.store.read()
        items = doc.items
        index = doc.key_index()
        n_new = 0

        # ── 1. Upsert visible candidates ─────────────────────────────────
        for candidate in candidates:
            try:
                key = setup_key(candidate)
                if not key:
                    continue
                idx = index.get(key)
                if idx is None:
                    rec = derive_record(symbol, candidate, now)
                    if rec is None:
                        continue
                    items.append(rec)
                    index[rec.key] = len(items) - 1
                    n_new += 1
                else:
                    merge_lifecycle(items[idx], candidate, now)
            except Exception as e:
                log.error(f"{symbol}: skipping malformed candidate: {e}")

        # ── 2. Excursion + closure for this symbol's OPEN records ────────
        closed: list[TrackedSetupRecord] = []
        for rec in items:
            if rec.symbol != symbol or not rec.is_open:
                continue
            update_excursion(rec, mid)
            outcome = evaluate_closure(rec, mid, now)
            if outcome is not None:
                closed.append(rec)
                log.info(
                    f"{symbol} {rec.key}: {outcome.value} "
                    f"mfe={rec.mfe_r:.2f}R mae={rec.mae_r:.2f}R"
                )

        if n_new:
            log.info(f"{symbol}: tracking {n_new} new setup(s), ledger={len(items)}")

        # ── 3. Prune + persist ───────────────────────────────────────────
        doc.updated_ts = now
        self.store.write(prune(doc, self.max_items))

        for rec in closed:
            self._notify_closed(rec)
        return closed

    def _notify_closed(self, rec: TrackedSetupRecord) -> None:
        if self.alerter is None:
            return
        try:
            self.alerter.setup_closed(rec)
        except Exception as e:
            log.warning(f"Close alert failed for {rec.key}: {e}")

    # =====================================================================
    #  READ / RESET
    # =====================================================================

    def read_all(self) -> list[TrackedSetupRecord]:
        return list(self.store.read().items)

    def clear(self) -> None:
        """Wipe the persisted ledger.  For explicit user resets only."""
        self.store.clear()
