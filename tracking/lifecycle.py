"""
Lifecycle merge for a setup that reappears on a later tick.
"""

from __future__ import annotations

from typing import Any

from tracking.deriver import extract_status, is_triggered
from tracking.models import TrackedSetupRecord


def merge_lifecycle(rec: TrackedSetupRecord, candidate: Any, now: int) -> None:
    """Refresh bookkeeping only.  ``triggered_ts`` is write-once."""
    rec.last_seen_ts = now

    status = extract_status(candidate)
    if status is None:
        return

    rec.status_last = status
    if is_triggered(status) and rec.triggered_ts is None:
        rec.triggered_ts = now
