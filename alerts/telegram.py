"""
===============================================================================
  TELEGRAM ALERTER — notifications when tracked setups close
===============================================================================
  Setup:
    1. Create a bot: talk to @BotFather on Telegram, get the token
    2. Get your chat ID: talk to @userinfobot
    3. Set TELEGRAM_BOT_TOKEN and TELEGRAM_CHAT_ID in .env
  Without both values the alerter is a silent no-op.
===============================================================================
"""

import html
import time
from concurrent.futures import ThreadPoolExecutor

import requests

from utils.logger import get_logger

logger = get_logger("telegram")


class TelegramAlerter:
    """Non-blocking Telegram notifications via HTTP.

    Sends are dispatched to a single background thread so a tracker tick
    never waits on the network (even if Telegram is slow or unreachable).
    """

    # Minimum interval between consecutive sends (rate-limit guard)
    _MIN_SEND_INTERVAL = 0.5  # seconds

    def __init__(self, bot_token: str = "", chat_id: str = ""):
        self.chat_id = chat_id
        self.enabled = bool(bot_token and chat_id)

        if self.enabled:
            self._url = f"https://api.telegram.org/bot{bot_token}/sendMessage"
            self._session = requests.Session()
            self._executor = ThreadPoolExecutor(
                max_workers=1, thread_name_prefix="telegram"
            )
            logger.info("Telegram alerts enabled (non-blocking, HTTP API)")
        else:
            self._url = ""
            self._session = None
            self._executor = None
            logger.debug("Telegram alerts disabled (no token/chat_id)")

        self._last_send_time: float = 0.0

    # =========================================================================
    # INTERNAL SEND (runs on background thread)
    # =========================================================================

    def _send(self, text: str):
        """Queue a message for async delivery. Never blocks the caller."""
        if not self.enabled or self._executor is None:
            return
        self._executor.submit(self._do_send, text)

    def _do_send(self, text: str, retries: int = 1):
        elapsed = time.monotonic() - self._last_send_time
        if elapsed < self._MIN_SEND_INTERVAL:
            time.sleep(self._MIN_SEND_INTERVAL - elapsed)

        for attempt in range(1 + retries):
            try:
                resp = self._session.post(
                    self._url,
                    json={
                        "chat_id": self.chat_id,
                        "text": text,
                        "parse_mode": "HTML",
                    },
                    timeout=(5, 10),
                )
                self._last_send_time = time.monotonic()
                if resp.ok:
                    return
                if resp.status_code == 429:
                    retry_after = int(resp.headers.get("Retry-After", 5))
                    logger.warning(f"Telegram rate-limited, waiting {retry_after}s")
                    time.sleep(retry_after)
                    continue
                logger.warning(
                    f"Telegram send failed: {resp.status_code} {resp.text[:200]}"
                )
            except requests.RequestException as e:
                logger.warning(f"Telegram send failed: {e}")
                if attempt < retries:
                    time.sleep(2)

    def close(self):
        if self._executor is not None:
            self._executor.shutdown(wait=True)

    # =========================================================================
    # ALERT TYPES
    # =========================================================================

    @staticmethod
    def format_setup_closed(rec) -> str:
        label = {
            "TP1": "TARGET HIT",
            "STOP": "STOPPED OUT",
            "EXPIRED": "EXPIRED",
        }.get(rec.outcome.value, rec.outcome.value)
        setup_type = f" {html.escape(rec.type)}" if rec.type else ""
        tp = f"{rec.tp1}" if rec.tp1 is not None else "—"
        return (
            f"<b>SETUP {label}</b>\n"
            f"<b>{html.escape(rec.symbol)}</b> {rec.side.value}{setup_type}\n"
            f"Entry: {rec.entry_anchor} | SL: {rec.stop} | TP1: {tp}\n"
            f"MFE: {rec.mfe_r:.2f}R | MAE: {rec.mae_r:.2f}R"
        )

    def setup_closed(self, rec):
        self._send(self.format_setup_closed(rec))

    def ledger_summary(self, stats):
        self._send(self.format_ledger_summary(stats))

    @staticmethod
    def format_ledger_summary(stats) -> str:
        return (
            f"<b>SETUP LEDGER</b>\n"
            f"Open: {stats.open} | Closed: {stats.closed}\n"
            f"TP1: {stats.tp1} ({stats.tp_rate:.0%}) | "
            f"STOP: {stats.stop} ({stats.stop_rate:.0%}) | "
            f"Expired: {stats.expired}\n"
            f"Avg MFE: {stats.avg_mfe_r_closed:.2f}R | "
            f"Avg MAE: {stats.avg_mae_r_closed:.2f}R"
        )
