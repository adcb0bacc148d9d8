"""
Notification senders.

A Notifier delivers the three messages of the approval workflow. Delivery
errors propagate to the caller; the event subject decides what to do
with them.
"""

import logging
import smtplib
from abc import ABC, abstractmethod
from email.message import EmailMessage
from typing import Optional

from ..models import Submission

logger = logging.getLogger(__name__)

PREVIEW_CHARS = 300


def content_preview(content: str, limit: int = PREVIEW_CHARS) -> str:
    if len(content) <= limit:
        return content
    return content[:limit].rstrip() + "..."


class Notifier(ABC):
    """Outbound notifications for submission events"""

    @abstractmethod
    def send_approval_request(
        self, submission: Submission, recipient: str, approve_link: str, reject_link: str
    ) -> None:
        """Ask a manager to approve or reject a new submission."""

    @abstractmethod
    def send_approval_confirmation(self, submission: Submission, recipient: str) -> None:
        """Tell the recipient a submission was approved."""

    @abstractmethod
    def send_rejection_notice(self, submission: Submission, recipient: str) -> None:
        """Tell the recipient a submission was rejected."""


class LogNotifier(Notifier):
    """Writes notifications to the log instead of sending them."""

    def send_approval_request(self, submission, recipient, approve_link, reject_link):
        logger.info(
            "Approval request for %s to %s (approve: %s, reject: %s)",
            submission.id, recipient, approve_link, reject_link,
        )

    def send_approval_confirmation(self, submission, recipient):
        logger.info("Approval confirmation for %s to %s", submission.id, recipient)

    def send_rejection_notice(self, submission, recipient):
        logger.info("Rejection notice for %s to %s", submission.id, recipient)


class SmtpNotifier(Notifier):
    """Plain-text email over SMTP"""

    def __init__(
        self,
        host: str,
        port: int = 587,
        username: str = "",
        password: str = "",
        from_email: str = "",
        starttls: bool = True,
        from_name: str = "Document Approval System",
        timeout: float = 30.0,
    ):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.from_email = from_email or username
        self.starttls = starttls
        self.from_name = from_name
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings) -> Optional["SmtpNotifier"]:
        if not settings.smtp_host:
            return None
        return cls(
            host=settings.smtp_host,
            port=settings.smtp_port,
            username=settings.smtp_user,
            password=settings.smtp_password,
            from_email=settings.from_email,
            starttls=settings.smtp_starttls,
        )

    def send_approval_request(self, submission, recipient, approve_link, reject_link):
        body = (
            "A new document has been submitted for your review.\n\n"
            f"Title: {submission.title}\n"
            f"Submitted by: {submission.writer_email or 'unknown'}\n"
            f"Submitted at: {submission.created_at}\n"
        )
        if submission.image_reference:
            body += f"Image: {submission.image_reference}\n"
        body += (
            f"\n{content_preview(submission.content)}\n\n"
            f"Approve: {approve_link}\n"
            f"Reject: {reject_link}\n"
        )
        self._send(recipient, f"New Document Submission: {submission.title}", body)

    def send_approval_confirmation(self, submission, recipient):
        body = (
            f'The document "{submission.title}" has been approved.\n\n'
            f"Approved at: {submission.updated_at}\n"
        )
        self._send(recipient, f"Document Approved: {submission.title}", body)

    def send_rejection_notice(self, submission, recipient):
        body = (
            f'The document "{submission.title}" has been rejected.\n\n'
            f"Rejected at: {submission.updated_at}\n"
        )
        self._send(recipient, f"Document Rejected: {submission.title}", body)

    def _send(self, recipient: str, subject: str, body: str) -> None:
        message = EmailMessage()
        message["From"] = f'"{self.from_name}" <{self.from_email}>'
        message["To"] = recipient
        message["Subject"] = subject
        message.set_content(body)

        with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as smtp:
            if self.starttls:
                smtp.starttls()
            if self.username:
                smtp.login(self.username, self.password)
            smtp.send_message(message)
        logger.info("Sent '%s' to %s", subject, recipient)
