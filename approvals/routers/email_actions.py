"""
Email-link endpoints.

Managers approve or reject straight from the notification email. A link
only acts on a pending submission: once any channel has decided, the link
lands on an "already processed" page (first decision wins on this channel).
"""

import html
import logging
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends
from fastapi.responses import HTMLResponse

from ..deps import get_events, get_signer, get_workflow
from ..errors import NotFoundError, PersistenceError
from ..models import Submission, SubmissionStatus
from ..services.email_tokens import EmailAction, EmailActionSigner
from ..services.events import SubmissionSubject
from ..workflow import WorkflowEngine

logger = logging.getLogger(__name__)

router = APIRouter()

PAGE = """<html><body style="font-family: Arial, sans-serif; padding: 40px; text-align: center;">
<h2 style="color: {color};">{heading}</h2>
<p>{message}</p>
{details}
</body></html>"""

RED = "#e74c3c"
AMBER = "#f39c12"
GREEN = "#27ae60"

TARGETS = {
    EmailAction.approve: SubmissionStatus.approved,
    EmailAction.reject: SubmissionStatus.rejected,
}


def render_page(
    heading: str,
    message: str,
    color: str,
    status_code: int = 200,
    submission: Optional[Submission] = None,
) -> HTMLResponse:
    details = ""
    if submission is not None:
        details = (
            '<div style="margin: 20px; padding: 20px; background: #f8f9fa; border-radius: 8px;">'
            f"<h3>{html.escape(submission.title)}</h3>"
            f"<p><strong>Status:</strong> {submission.status.value.upper()}</p>"
            f"<p><strong>Updated:</strong> {html.escape(submission.updated_at)}</p>"
            "</div>"
        )
    body = PAGE.format(color=color, heading=heading, message=message, details=details)
    return HTMLResponse(body, status_code=status_code)


def already_processed(submission: Submission) -> HTMLResponse:
    return render_page(
        "Already Processed",
        f"This submission has already been <strong>{submission.status.value}</strong>.",
        AMBER,
        submission=submission,
    )


def handle_email_action(
    token: str,
    action: EmailAction,
    workflow: WorkflowEngine,
    signer: EmailActionSigner,
    events: SubmissionSubject,
    background_tasks: BackgroundTasks,
) -> HTMLResponse:
    noun = "approval" if action == EmailAction.approve else "rejection"

    if not token:
        return render_page(
            "Invalid Link", f"The {noun} link is missing required information.", RED, 400
        )

    claim = signer.verify(token)
    if claim is None or claim.action != action:
        return render_page(
            "Invalid or Expired Link", f"This {noun} link is invalid or has expired.", RED, 400
        )

    not_found = render_page(
        "Submission Not Found", "The submission could not be found.", RED, 404
    )
    try:
        submission = workflow.get_submission(claim.submission_id)
        if submission is None:
            return not_found
        if submission.status != SubmissionStatus.pending:
            return already_processed(submission)

        # Sync call from an async route: serialized with the web decisions
        outcome = workflow.transition(claim.submission_id, TARGETS[action])
    except NotFoundError:
        return not_found
    except PersistenceError:
        logger.exception("Email %s failed for submission %s", action.value, claim.submission_id)
        return render_page(
            "Something Went Wrong",
            "The decision could not be saved. Please try again later.",
            RED,
            500,
        )

    if not outcome.changed:
        return already_processed(outcome.submission)

    background_tasks.add_task(events.notify_decision, outcome.submission, "email")
    verb = "Approved" if action == EmailAction.approve else "Rejected"
    return render_page(
        f"Submission {verb}",
        f"The submission has been {verb.lower()} successfully.",
        GREEN if action == EmailAction.approve else RED,
        submission=outcome.submission,
    )


@router.get("/email/approve", response_class=HTMLResponse)
async def email_approve(
    background_tasks: BackgroundTasks,
    token: str = "",
    workflow: WorkflowEngine = Depends(get_workflow),
    signer: EmailActionSigner = Depends(get_signer),
    events: SubmissionSubject = Depends(get_events),
) -> HTMLResponse:
    return handle_email_action(
        token, EmailAction.approve, workflow, signer, events, background_tasks
    )


@router.get("/email/reject", response_class=HTMLResponse)
async def email_reject(
    background_tasks: BackgroundTasks,
    token: str = "",
    workflow: WorkflowEngine = Depends(get_workflow),
    signer: EmailActionSigner = Depends(get_signer),
    events: SubmissionSubject = Depends(get_events),
) -> HTMLResponse:
    return handle_email_action(
        token, EmailAction.reject, workflow, signer, events, background_tasks
    )
