"""
===============================================================================
  SETUP OUTCOME TRACKER — Command line
===============================================================================
  Inspect and maintain the setup ledger.  In production the host polling
  loop calls SetupTracker.tick() directly; this entry point is for
  operators.

  Usage:
    python main.py --summary                     # headline stats
    python main.py --breakdown type              # stats per setup type
    python main.py --export ledger.csv           # dump ledger to CSV
    python main.py --replay ticks.jsonl          # feed recorded ticks
    python main.py --clear --confirm CLEAR       # wipe the ledger

  Replay files hold one JSON object per line:
    {"symbol": "BTCUSDT", "setups": [...], "mid": 64210.5, "now_ts": 1718000000000}
===============================================================================
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Optional

import config as cfg
from alerts.telegram import TelegramAlerter
from tracking import (
    JsonFileStorage,
    LedgerStore,
    SetupTracker,
    breakdown,
    records_frame,
    summarize,
)
from utils.logger import get_logger, setup_logging

log = get_logger("main")

_CLEAR_CONFIRMATION = "CLEAR"


def replay(tracker: SetupTracker, path: Path) -> int:
    """Feed every tick in a JSON-lines file through ``tracker``."""
    n_ticks = 0
    n_closed = 0
    with open(path, "r", encoding="utf-8") as f:
        for line_no, line in enumerate(f, start=1):
            line = line.strip()
            if not line:
                continue
            try:
                row = json.loads(line)
            except json.JSONDecodeError as e:
                log.warning(f"{path.name}:{line_no}: skipped, not JSON ({e})")
                continue
            if not isinstance(row, dict):
                log.warning(f"{path.name}:{line_no}: skipped, not an object")
                continue
            closed = tracker.tick(
                row.get("symbol", ""),
                row.get("setups", []),
                row.get("mid"),
                row.get("now_ts"),
            )
            n_ticks += 1
            n_closed += len(closed)
    log.info(f"Replayed {n_ticks} tick(s) from {path} — {n_closed} setup(s) closed")
    return n_ticks


def print_summary(tracker: SetupTracker, alerter: Optional[TelegramAlerter] = None):
    """Print headline stats; also push them to Telegram when alerts are enabled."""
    stats = summarize(tracker.read_all())
    print("=" * 50)
    print("  SETUP LEDGER")
    print("=" * 50)
    print(f"  Total:    {stats.total}")
    print(f"  Open:     {stats.open}")
    print(f"  Closed:   {stats.closed}")
    print(f"  TP1:      {stats.tp1} ({stats.tp_rate:.1%})")
    print(f"  Stop:     {stats.stop} ({stats.stop_rate:.1%})")
    print(f"  Expired:  {stats.expired}")
    print(f"  Avg MFE:  {stats.avg_mfe_r_closed:.2f}R (closed only)")
    print(f"  Avg MAE:  {stats.avg_mae_r_closed:.2f}R (closed only)")
    print("=" * 50)
    if alerter is not None and alerter.enabled:
        alerter.ledger_summary(stats)


def main(argv=None):
    setup_logging()

    parser = argparse.ArgumentParser(description="Setup Outcome Tracker")
    parser.add_argument(
        "--store", default=str(cfg.TRACKER_STORE_PATH),
        help="Ledger file (default TRACKER_STORE_PATH)",
    )
    parser.add_argument("--summary", action="store_true", help="Print headline statistics")
    parser.add_argument("--breakdown", metavar="FIELD", help="Group statistics by a record field (type, side, symbol …)")
    parser.add_argument("--export", metavar="CSV", help="Write the ledger to a CSV file")
    parser.add_argument("--replay", metavar="JSONL", help="Feed recorded ticks through the tracker")
    parser.add_argument("--clear", action="store_true", help="Wipe the ledger")
    parser.add_argument("--confirm", default="", help=f"Must be '{_CLEAR_CONFIRMATION}' for --clear")
    args = parser.parse_args(argv)

    alerter = TelegramAlerter(
        bot_token=cfg.TELEGRAM_BOT_TOKEN,
        chat_id=cfg.TELEGRAM_CHAT_ID,
    )
    tracker = SetupTracker(
        store=LedgerStore(JsonFileStorage(args.store)),
        alerter=alerter,
    )

    try:
        if args.clear:
            if args.confirm != _CLEAR_CONFIRMATION:
                log.warning("--clear needs --confirm CLEAR — ignored")
                return 2
            tracker.clear()

        if args.replay:
            path = Path(args.replay)
            if not path.exists():
                log.error(f"Replay file not found: {path}")
                return 1
            replay(tracker, path)

        if args.export:
            records_frame(tracker.read_all()).to_csv(args.export, index=False)
            log.info(f"Ledger exported to {args.export}")

        if args.breakdown:
            try:
                table = breakdown(tracker.read_all(), by=args.breakdown)
            except ValueError as e:
                log.error(str(e))
                return 2
            print(table.to_string(float_format=lambda x: f"{x:.2f}"))

        if args.summary or not (args.clear or args.replay or args.export or args.breakdown):
            print_summary(tracker, alerter)
    finally:
        alerter.close()

    return 0


if __name__ == "__main__":
    sys.exit(main())
