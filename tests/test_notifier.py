# tests/test_notifier.py
import pytest

from approvals.config import Settings
from approvals.services import notifier as notifier_module
from approvals.services.notifier import LogNotifier, SmtpNotifier, content_preview


class FakeSMTP:
    instances = []

    def __init__(self, host, port, timeout=None):
        self.host, self.port = host, port
        self.calls = []
        self.messages = []
        FakeSMTP.instances.append(self)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def starttls(self):
        self.calls.append("starttls")

    def login(self, user, password):
        self.calls.append(("login", user, password))

    def send_message(self, message):
        self.messages.append(message)


@pytest.fixture()
def fake_smtp(monkeypatch):
    FakeSMTP.instances = []
    monkeypatch.setattr(notifier_module.smtplib, "SMTP", FakeSMTP)
    return FakeSMTP


@pytest.fixture()
def smtp_notifier():
    return SmtpNotifier("smtp.example.com", 2525, "mailer", "pw", from_email="noreply@example.com")


def test_approval_request_email(fake_smtp, smtp_notifier, workflow):
    submission = workflow.create_submission(
        "Quarterly report", "x" * 500, image_reference="/uploads/chart.png", writer_email="w@example.com"
    )
    smtp_notifier.send_approval_request(
        submission, "boss@example.com", "http://a/approve?token=1", "http://a/reject?token=2"
    )

    smtp = fake_smtp.instances[0]
    assert (smtp.host, smtp.port) == ("smtp.example.com", 2525)
    assert smtp.calls == ["starttls", ("login", "mailer", "pw")]
    message = smtp.messages[0]
    assert message["To"] == "boss@example.com"
    assert message["Subject"] == "New Document Submission: Quarterly report"
    body = message.get_content()
    assert "http://a/approve?token=1" in body and "http://a/reject?token=2" in body
    assert "/uploads/chart.png" in body
    assert "x" * 301 not in body


def test_decision_emails(fake_smtp, smtp_notifier, workflow):
    submission = workflow.create_submission("Memo", "c")
    smtp_notifier.send_approval_confirmation(workflow.approve_submission(submission.id), "w@example.com")
    smtp_notifier.send_rejection_notice(workflow.reject_submission(submission.id), "w@example.com")

    subjects = [smtp.messages[0]["Subject"] for smtp in fake_smtp.instances]
    assert subjects == ["Document Approved: Memo", "Document Rejected: Memo"]


def test_delivery_errors_propagate(monkeypatch, smtp_notifier, workflow):
    class DownSMTP(FakeSMTP):
        def send_message(self, message):
            raise OSError("connection refused")

    monkeypatch.setattr(notifier_module.smtplib, "SMTP", DownSMTP)
    with pytest.raises(OSError):
        smtp_notifier.send_rejection_notice(workflow.create_submission("t", "c"), "w@example.com")


def test_from_settings_requires_host():
    assert SmtpNotifier.from_settings(Settings(smtp_host="")) is None
    built = SmtpNotifier.from_settings(Settings(smtp_host="mail.example.com", smtp_user="u"))
    assert built.host == "mail.example.com"
    assert built.from_email == "u"


def test_log_notifier_does_not_raise(workflow):
    submission = workflow.create_submission("t", "c")
    LogNotifier().send_approval_request(submission, "boss@example.com", "a", "r")
    LogNotifier().send_approval_confirmation(submission, "w@example.com")


def test_content_preview():
    assert content_preview("short") == "short"
    assert content_preview("word " * 100, limit=10) == "word word..."
