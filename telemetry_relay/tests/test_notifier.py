"""Tests for telemetry_relay.notifier."""

from __future__ import annotations

from telemetry_relay.notifier import Notifier, Severity


def test_history_filters() -> None:
    notifier = Notifier()
    notifier.info("usr.abrp.status", "Route started")
    notifier.error("usr.abrp.status", "Send telemetry error - boom")
    notifier.notify("error", "usr.slack.status", "HTTP request error - x")

    assert len(notifier.history()) == 3
    assert [n.message for n in notifier.history(channel="usr.abrp.status")] == [
        "Route started",
        "Send telemetry error - boom",
    ]
    errors = notifier.history(severity=Severity.ERROR)
    assert [n.channel for n in errors] == ["usr.abrp.status", "usr.slack.status"]


def test_history_is_bounded() -> None:
    notifier = Notifier(history_size=2)
    for i in range(5):
        notifier.info("c", str(i))
    assert [n.message for n in notifier.history()] == ["3", "4"]
