"""
Eviction policy — decides which records survive when the ledger is over cap.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Optional

import config as cfg
from tracking.models import LedgerDocument


def prune(doc: LedgerDocument, max_items: Optional[int] = None) -> LedgerDocument:
    """
    Trim ``doc`` to at most ``max_items`` records without touching OPEN ones.

    OPEN records are all kept (even if they alone exceed the cap), followed by
    the most recently closed records that still fit.  Closed records without
    ``closed_ts`` rank as the oldest.  Returns ``doc`` itself when nothing
    needs to go, otherwise a new document.
    """
    cap = cfg.TRACKER_MAX_ITEMS if max_items is None else max(0, int(max_items))
    if len(doc.items) <= cap:
        return doc

    open_items = [r for r in doc.items if r.is_open]
    closed_items = [r for r in doc.items if not r.is_open]
    closed_items.sort(
        key=lambda r: (r.closed_ts is not None, r.closed_ts or 0),
        reverse=True,
    )

    room = max(0, cap - len(open_items))
    return replace(doc, items=open_items + closed_items[:room])
