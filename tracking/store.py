"""
===============================================================================
  Ledger Store — serialises the ledger document to its backend
===============================================================================
  read()  → always returns a usable document.  Absent, unparsable or
            schema-mismatched content resets to an empty ledger.
  write() → serialises and saves.  A rejected save gets exactly one
            evict-and-retry; if that fails too the write is dropped.
  clear() → wipes the persisted blob.

  Nothing here raises to the caller.  The tracker is an auxiliary feature
  and must never destabilise the host loop.
===============================================================================
"""

from __future__ import annotations

import json
from typing import Optional

import config as cfg
from tracking.eviction import prune
from tracking.models import LedgerDocument, TrackedSetupRecord
from tracking.storage import JsonFileStorage, StorageBackend
from utils.logger import get_logger

log = get_logger("ledger_store")


class LedgerStore:
    """Reads and writes the whole ledger document through a backend."""

    def __init__(
        self,
        backend: Optional[StorageBackend] = None,
        recovery_max_items: Optional[int] = None,
    ):
        self.backend = backend if backend is not None else JsonFileStorage(cfg.TRACKER_STORE_PATH)
        self.recovery_max_items = (
            cfg.TRACKER_RECOVERY_MAX_ITEMS if recovery_max_items is None else recovery_max_items
        )

    # =====================================================================
    #  READ
    # =====================================================================

    def read(self) -> LedgerDocument:
        try:
            raw = self.backend.load()
        except Exception as e:
            log.warning(f"Ledger unreadable, starting empty: {e}")
            return LedgerDocument()
        if not raw:
            return LedgerDocument()
        return self.decode(raw)

    @staticmethod
    def decode(raw: str) -> LedgerDocument:
        """Parse a persisted blob; anything non-conforming yields an empty ledger."""
        try:
            parsed = json.loads(raw)
        except (TypeError, ValueError, RecursionError) as e:
            log.warning(f"Ledger is not valid JSON, resetting: {e}")
            return LedgerDocument()

        if not isinstance(parsed, dict):
            log.warning("Ledger root is not an object, resetting")
            return LedgerDocument()
        version = parsed.get("version")
        if type(version) is not int or version != cfg.TRACKER_SCHEMA_VERSION:
            log.warning(f"Ledger schema version {version!r} unsupported, resetting")
            return LedgerDocument()
        raw_items = parsed.get("items")
        if not isinstance(raw_items, list):
            log.warning("Ledger items missing or not a list, resetting")
            return LedgerDocument()

        updated_ts = parsed.get("updated_ts")
        if isinstance(updated_ts, bool) or not isinstance(updated_ts, (int, float)):
            updated_ts = 0

        items: list[TrackedSetupRecord] = []
        seen: set[str] = set()
        dropped = 0
        for entry in raw_items:
            try:
                if not isinstance(entry, dict):
                    raise TypeError("item is not an object")
                rec = TrackedSetupRecord.from_dict(entry)
            except (KeyError, TypeError, ValueError) as e:
                dropped += 1
                log.debug(f"Dropping corrupt ledger item: {e}")
                continue
            if rec.key in seen:
                dropped += 1
                continue
            seen.add(rec.key)
            items.append(rec)

        if dropped:
            log.warning(f"Dropped {dropped} corrupt or duplicate ledger item(s)")
        return LedgerDocument(updated_ts=updated_ts, items=items)

    # =====================================================================
    #  WRITE
    # =====================================================================

    @staticmethod
    def encode(doc: LedgerDocument) -> str:
        return json.dumps(doc.to_dict(), allow_nan=False, separators=(",", ":"))

    def write(self, doc: LedgerDocument) -> bool:
        """Persist ``doc``.  Returns False when the write had to be dropped."""
        try:
            self.backend.save(self.encode(doc))
            return True
        except Exception as e:
            log.warning(f"Ledger write rejected ({e}) — evicting and retrying once")

        try:
            pruned = prune(doc, self.recovery_max_items)
            self.backend.save(self.encode(pruned))
            log.info(
                f"Ledger write recovered after eviction: "
                f"{len(doc.items)} → {len(pruned.items)} records"
            )
            return True
        except Exception as e:
            log.error(f"Ledger write dropped after retry: {e}")
            return False

    # =====================================================================
    #  CLEAR
    # =====================================================================

    def clear(self) -> None:
        try:
            self.backend.remove()
            log.info("Ledger cleared")
        except Exception as e:
            log.warning(f"Failed to clear ledger: {e}")
