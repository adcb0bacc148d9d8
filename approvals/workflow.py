"""
Workflow Engine
Creation, validation and status transitions for submissions.

The engine keeps no copy of the collection: every query and mutation
round-trips through the repository.
"""

import logging
from datetime import datetime
from typing import Callable, Dict, List, Optional, Tuple, Union

from .errors import NotFoundError, ValidationError
from .models import Submission, SubmissionCounts, SubmissionStatus, TransitionOutcome
from .repository import SubmissionRepository
from .util.clock import to_timestamp, utc_now
from .util.ids import new_id

logger = logging.getLogger(__name__)

PENDING = SubmissionStatus.pending
APPROVED = SubmissionStatus.approved
REJECTED = SubmissionStatus.rejected

# Managers may change their mind, so every pair is allowed.
# Set an entry to False to forbid that move.
ALLOWED_TRANSITIONS: Dict[Tuple[SubmissionStatus, SubmissionStatus], bool] = {
    (PENDING, PENDING): True,
    (PENDING, APPROVED): True,
    (PENDING, REJECTED): True,
    (APPROVED, APPROVED): True,
    (APPROVED, REJECTED): True,
    (APPROVED, PENDING): True,
    (REJECTED, REJECTED): True,
    (REJECTED, APPROVED): True,
    (REJECTED, PENDING): True,
}


def parse_status(value: Union[str, SubmissionStatus]) -> SubmissionStatus:
    try:
        return SubmissionStatus(value)
    except ValueError:
        raise ValidationError(
            "Invalid status. Must be: pending, approved, or rejected"
        ) from None


class WorkflowEngine:
    """Enforces the submission lifecycle on top of the repository"""

    def __init__(
        self,
        repository: SubmissionRepository,
        clock: Callable[[], datetime] = utc_now,
        id_factory: Callable[[], str] = new_id,
        transitions: Optional[Dict[Tuple[SubmissionStatus, SubmissionStatus], bool]] = None,
    ):
        self.repository = repository
        self.clock = clock
        self.id_factory = id_factory
        self.transitions = ALLOWED_TRANSITIONS if transitions is None else transitions

    def _now(self) -> str:
        return to_timestamp(self.clock())

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    def create_submission(
        self,
        title: Optional[str],
        content: Optional[str],
        image_reference: Optional[str] = None,
        embedded_images: Optional[List[str]] = None,
        writer_email: Optional[str] = None,
    ) -> Submission:
        """
        Validate and store a new submission.
        Status always starts as pending, whatever the caller had in mind.
        """
        title = (title or "").strip()
        content = (content or "").strip()
        if not title:
            raise ValidationError("Title is required")
        if not content:
            raise ValidationError("Content is required")

        now = self._now()
        submission = Submission(
            id=self.id_factory(),
            title=title,
            content=content,
            image_reference=image_reference,
            embedded_images=list(embedded_images) if embedded_images is not None else None,
            writer_email=writer_email,
            status=PENDING,
            created_at=now,
            updated_at=now,
        )
        self.repository.save(submission)
        logger.info("Created submission %s (writer=%s)", submission.id, writer_email or "-")
        return submission

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def transition(
        self, submission_id: str, new_status: Union[str, SubmissionStatus]
    ) -> TransitionOutcome:
        """
        Move a submission to new_status.

        Re-applying the current status succeeds without writing and leaves
        updated_at untouched; outcome.changed tells the two cases apart.
        """
        target = parse_status(new_status)

        current = self.repository.get_by_id(submission_id)
        if current is None:
            raise NotFoundError(f"Submission with ID {submission_id} not found")

        if not self.transitions.get((current.status, target), False):
            raise ValidationError(
                f"Cannot move submission from {current.status.value} to {target.value}"
            )

        if current.status == target:
            logger.info("Submission %s already %s", submission_id, target.value)
            return TransitionOutcome(
                submission=current, previous_status=current.status, changed=False
            )

        # Never earlier than the stored value, even if the clock steps back
        updated_at = max(self._now(), current.updated_at)
        updated = current.model_copy(update={"status": target, "updated_at": updated_at})
        self.repository.update(updated)
        logger.info(
            "Submission %s moved %s -> %s",
            submission_id, current.status.value, target.value,
        )
        return TransitionOutcome(
            submission=updated, previous_status=current.status, changed=True
        )

    def update_submission_status(
        self, submission_id: str, new_status: Union[str, SubmissionStatus]
    ) -> Submission:
        return self.transition(submission_id, new_status).submission

    def approve_submission(self, submission_id: str) -> Submission:
        return self.update_submission_status(submission_id, APPROVED)

    def reject_submission(self, submission_id: str) -> Submission:
        return self.update_submission_status(submission_id, REJECTED)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_submission(self, submission_id: str) -> Optional[Submission]:
        return self.repository.get_by_id(submission_id)

    def get_all_submissions(self) -> List[Submission]:
        return self.repository.get_all()

    def get_submissions_by_status(
        self, status: Union[str, SubmissionStatus]
    ) -> List[Submission]:
        return self.repository.get_by_status(parse_status(status))

    def get_pending_submissions(self) -> List[Submission]:
        return self.repository.get_by_status(PENDING)

    def get_approved_submissions(self) -> List[Submission]:
        return self.repository.get_by_status(APPROVED)

    def get_rejected_submissions(self) -> List[Submission]:
        return self.repository.get_by_status(REJECTED)

    def get_submission_counts(self) -> SubmissionCounts:
        return self.repository.count_by_status()

    def delete_submission(self, submission_id: str) -> bool:
        deleted = self.repository.delete(submission_id)
        if deleted:
            logger.info("Deleted submission %s", submission_id)
        return deleted
