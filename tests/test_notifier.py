"""Tests for the email notifier."""

from __future__ import annotations

import smtplib
from unittest.mock import MagicMock, patch

from notifier import EmailNotifier, build_message


def _notifier() -> EmailNotifier:
    return EmailNotifier(host="smtp.example.com", port=2525, from_address="sync@example.com",
                         to_address="ops@example.com", subject="Flight Sync - Error notification")


def test_build_message_formats_error_body():
    msg = build_message("row 12 failed", "sync@example.com", "ops@example.com", "Subject")

    assert msg["Subject"] == "Subject"
    assert msg["To"] == "ops@example.com"
    assert msg.get_payload() == "Error : row 12 failed\nThis notification is for your information only."


@patch("notifier.smtplib.SMTP")
def test_notify_sends_through_smtp(mock_smtp):
    server = MagicMock()
    mock_smtp.return_value.__enter__.return_value = server

    assert _notifier().notify("row 12 failed") is True

    mock_smtp.assert_called_once_with("smtp.example.com", 2525, timeout=30.0)
    from_addr, to_addrs, body = server.sendmail.call_args[0]
    assert from_addr == "sync@example.com"
    assert to_addrs == ["ops@example.com"]
    assert "row 12 failed" in body


@patch("notifier.smtplib.SMTP")
def test_notify_swallows_transport_errors(mock_smtp):
    mock_smtp.side_effect = smtplib.SMTPConnectError(421, "unavailable")

    assert _notifier().notify("boom") is False
