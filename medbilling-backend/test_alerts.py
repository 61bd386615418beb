from types import SimpleNamespace

import requests
from twilio.base.exceptions import TwilioRestException

import alerts


def fake_client(create):
    return SimpleNamespace(messages=SimpleNamespace(create=create))


def test_send_stock_alert(monkeypatch):
    sent = []
    monkeypatch.setattr(alerts, "get_client", lambda: fake_client(lambda **kwargs: sent.append(kwargs)))

    assert alerts.send_stock_alert("⚠️ Low stock alert for: Amoxicillin 250mg") is True
    assert sent[0]["body"] == "⚠️ Low stock alert for: Amoxicillin 250mg"


def test_send_stock_alert_reports_twilio_failures(monkeypatch):
    def rejected(**kwargs):
        raise TwilioRestException(400, "/Messages", msg="Invalid 'To' phone number")

    monkeypatch.setattr(alerts, "get_client", lambda: fake_client(rejected))

    assert alerts.send_stock_alert("anything") is False


def test_send_stock_alert_reports_connection_failures(monkeypatch):
    def unreachable(**kwargs):
        raise requests.ConnectionError("api.twilio.com unreachable")

    monkeypatch.setattr(alerts, "get_client", lambda: fake_client(unreachable))

    assert alerts.send_stock_alert("anything") is False


def test_low_stock_message():
    assert alerts.low_stock_message(["A", "B"]) == "⚠️ Low stock alert for: A, B"
