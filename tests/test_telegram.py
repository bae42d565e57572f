"""
Tests for alerts.telegram — message formatting and the disabled alerter.
No network traffic: only the pure formatters and the no-op path are used.
"""

from unittest.mock import MagicMock

import pytest

from alerts.telegram import TelegramAlerter
from tracking.analytics import TrackerStats
from tracking.models import Outcome, Side, TrackedSetupRecord


def _closed(outcome, tp1=120.0, symbol="BTCUSDT", type_="breakout", side=Side.LONG):
    return TrackedSetupRecord(
        key="k", symbol=symbol, side=side, type=type_,
        entry_anchor=100.0, stop=90.0, risk=10.0, tp1=tp1,
        mfe_r=1.25, mae_r=0.5,
        outcome=outcome, closed_ts=2_000,
    )


class TestFormatSetupClosed:
    @pytest.mark.parametrize("outcome,label", [
        (Outcome.TP1, "TARGET HIT"),
        (Outcome.STOP, "STOPPED OUT"),
        (Outcome.EXPIRED, "EXPIRED"),
    ])
    def test_outcome_labels(self, outcome, label):
        msg = TelegramAlerter.format_setup_closed(_closed(outcome))
        assert msg.startswith(f"<b>SETUP {label}</b>")
        assert "<b>BTCUSDT</b> LONG breakout" in msg
        assert "Entry: 100.0 | SL: 90.0 | TP1: 120.0" in msg
        assert "MFE: 1.25R | MAE: 0.50R" in msg

    def test_missing_tp1_and_type(self):
        msg = TelegramAlerter.format_setup_closed(
            _closed(Outcome.STOP, tp1=None, type_=None, side=Side.SHORT)
        )
        assert "TP1: —" in msg
        assert "<b>BTCUSDT</b> SHORT\n" in msg

    def test_upstream_text_is_html_escaped(self):
        msg = TelegramAlerter.format_setup_closed(
            _closed(Outcome.TP1, symbol="A&B<1>", type_="<range>")
        )
        assert "<b>A&amp;B&lt;1&gt;</b>" in msg
        assert "&lt;range&gt;" in msg
        assert "<range>" not in msg


class TestFormatLedgerSummary:
    def test_summary_message(self):
        stats = TrackerStats(
            total=5, open=1, closed=4, tp1=1, stop=2, expired=1,
            tp_rate=0.25, stop_rate=0.5,
            avg_mfe_r_closed=0.9, avg_mae_r_closed=0.7,
        )
        msg = TelegramAlerter.format_ledger_summary(stats)
        assert "Open: 1 | Closed: 4" in msg
        assert "TP1: 1 (25%) | STOP: 2 (50%) | Expired: 1" in msg
        assert "Avg MFE: 0.90R | Avg MAE: 0.70R" in msg


class TestDisabledAlerter:
    @pytest.mark.parametrize("token,chat", [("", ""), ("token", ""), ("", "chat")])
    def test_incomplete_credentials_disable(self, token, chat):
        alerter = TelegramAlerter(bot_token=token, chat_id=chat)
        assert alerter.enabled is False

    def test_sends_are_noops_and_close_is_safe(self):
        alerter = TelegramAlerter()
        alerter.setup_closed(_closed(Outcome.TP1))
        alerter.ledger_summary(TrackerStats())
        alerter.close()
        alerter.close()

    def test_enabled_alerter_queues_without_blocking(self):
        alerter = TelegramAlerter()
        alerter.enabled = True
        alerter._executor = MagicMock()
        alerter.setup_closed(_closed(Outcome.STOP))

        alerter._executor.submit.assert_called_once()
        fn, text = alerter._executor.submit.call_args.args
        assert fn == alerter._do_send
        assert "STOPPED OUT" in text


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
