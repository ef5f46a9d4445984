import smtplib
from datetime import date
from unittest import mock

from anniversync.config import SmtpConfig
from anniversync.models import SyncReport
from anniversync.report import SMTP_TIMEOUT, format_report, send_report


def test_format_sorts_and_fills_empty_sections():
    report = SyncReport(created=["Geburtstag Zoe", "Geburtstag Anna"], deleted=["Jahrestag: Max"])

    assert format_report(report) == (
        "Created:\nGeburtstag Anna\nGeburtstag Zoe\n\n"
        "Updated:\n(none)\n\n"
        "Deleted:\nJahrestag: Max\n"
    )


def test_send_report_uses_smtp():
    smtp = SmtpConfig(host="mail.example.com", port=2525, username="bot", password="pw",
                      use_tls=True, sender="bot@example.com")

    with mock.patch("anniversync.report.smtplib.SMTP") as smtp_cls:
        sent = send_report(SyncReport(updated=["Geburtstag Jane Doe"]), "me@example.com", smtp,
                           today=date(2025, 6, 1))

    assert sent is True
    smtp_cls.assert_called_once_with("mail.example.com", 2525, timeout=SMTP_TIMEOUT)
    server = smtp_cls.return_value
    server.starttls.assert_called_once()
    server.login.assert_called_once_with("bot", "pw")
    from_addr, to_addrs, message = server.sendmail.call_args.args
    assert from_addr == "bot@example.com"
    assert to_addrs == ["me@example.com"]
    assert "Subject: Anniversary sync report 2025-06-01" in message
    server.quit.assert_called_once()


def test_send_report_without_recipient_does_nothing():
    with mock.patch("anniversync.report.smtplib.SMTP") as smtp_cls:
        assert send_report(SyncReport(), "", SmtpConfig()) is False
    smtp_cls.assert_not_called()


def test_send_failure_is_not_fatal():
    with mock.patch("anniversync.report.smtplib.SMTP") as smtp_cls:
        smtp_cls.return_value.sendmail.side_effect = smtplib.SMTPException("rejected")
        assert send_report(SyncReport(), "me@example.com", SmtpConfig(use_tls=False)) is False
    smtp_cls.return_value.quit.assert_called_once()


def test_connection_failure_is_not_fatal():
    with mock.patch("anniversync.report.smtplib.SMTP", side_effect=OSError("refused")):
        assert send_report(SyncReport(), "me@example.com", SmtpConfig()) is False
