"""
Observer Pattern: submission events.

HTTP and email handlers publish an event after a workflow operation has
committed. Observers react (audit trail, notifications); a failing observer
is logged and skipped so it can never undo or block the transition.
"""

import logging
from abc import ABC, abstractmethod
from datetime import datetime, UTC
from typing import Any, Dict, List

from ..models import Submission, SubmissionStatus
from .email_tokens import EmailAction, EmailActionSigner
from .notifier import Notifier

logger = logging.getLogger(__name__)

CREATED = "submission.created"
APPROVED = "submission.approved"
REJECTED = "submission.rejected"


class SubmissionEvent:
    """Something that happened to a submission."""

    def __init__(self, event_type: str, submission: Submission, channel: str = "web"):
        self.event_type = event_type
        self.submission = submission
        self.channel = channel
        self.timestamp = datetime.now(UTC).isoformat()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event_type": self.event_type,
            "submission_id": self.submission.id,
            "status": self.submission.status.value,
            "channel": self.channel,
            "timestamp": self.timestamp,
        }


class SubmissionObserver(ABC):
    """Observer base for submission events."""

    @abstractmethod
    def update(self, event: SubmissionEvent) -> None:
        pass


class AuditLogObserver(SubmissionObserver):
    """Logs every event and keeps the recent ones in memory."""

    def __init__(self, max_entries: int = 500):
        self.max_entries = max_entries
        self._entries: List[Dict[str, Any]] = []

    def update(self, event: SubmissionEvent) -> None:
        entry = event.to_dict()
        self._entries.append(entry)
        del self._entries[:-self.max_entries]
        logger.info(
            "%s %s via %s", event.event_type, event.submission.id, event.channel
        )

    def get_entries(self) -> List[Dict[str, Any]]:
        return self._entries.copy()


class NotificationObserver(SubmissionObserver):
    """
    Sends the workflow emails.

    New submissions go to the manager with signed approve/reject links;
    decisions go to the writer (or the configured sender address when the
    submission has no writer).
    """

    def __init__(
        self,
        notifier: Notifier,
        signer: EmailActionSigner,
        base_url: str,
        manager_email: str = "",
        fallback_email: str = "",
    ):
        self.notifier = notifier
        self.signer = signer
        self.base_url = base_url.rstrip("/")
        self.manager_email = manager_email
        self.fallback_email = fallback_email

    def action_link(self, submission_id: str, action: EmailAction) -> str:
        token = self.signer.generate(submission_id, action)
        return f"{self.base_url}/api/email/{action.value}?token={token}"

    def update(self, event: SubmissionEvent) -> None:
        submission = event.submission

        if event.event_type == CREATED:
            if not self.manager_email:
                logger.debug("No manager email configured; skipping approval request")
                return
            self.notifier.send_approval_request(
                submission,
                self.manager_email,
                self.action_link(submission.id, EmailAction.approve),
                self.action_link(submission.id, EmailAction.reject),
            )
            return

        recipient = submission.writer_email or self.fallback_email
        if not recipient:
            return
        if event.event_type == APPROVED:
            self.notifier.send_approval_confirmation(submission, recipient)
        elif event.event_type == REJECTED:
            self.notifier.send_rejection_notice(submission, recipient)


class SubmissionSubject:
    """
    Subject of the Observer pattern.

    Keeps the observer list and fans events out to it.
    """

    def __init__(self):
        self._observers: List[SubmissionObserver] = []

    def attach(self, observer: SubmissionObserver) -> None:
        if observer not in self._observers:
            self._observers.append(observer)

    def detach(self, observer: SubmissionObserver) -> None:
        if observer in self._observers:
            self._observers.remove(observer)

    def notify(self, event: SubmissionEvent) -> None:
        for observer in self._observers:
            try:
                observer.update(event)
            except Exception:
                logger.exception(
                    "%s failed handling %s for submission %s",
                    type(observer).__name__, event.event_type, event.submission.id,
                )

    def notify_created(self, submission: Submission) -> None:
        self.notify(SubmissionEvent(CREATED, submission))

    def notify_decision(self, submission: Submission, channel: str = "web") -> None:
        """Publish approved/rejected according to the submission's current status."""
        if submission.status == SubmissionStatus.approved:
            event_type = APPROVED
        elif submission.status == SubmissionStatus.rejected:
            event_type = REJECTED
        else:
            return
        self.notify(SubmissionEvent(event_type, submission, channel))
