"""
Submission endpoints.

Handlers are async and call the synchronous workflow engine directly, so
mutations run one at a time on the event loop.
"""

from typing import List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException

from ..deps import current_identity, get_events, get_workflow, require_manager, require_writer
from ..errors import ValidationError
from ..models import Submission, SubmissionCounts, SubmissionStatus
from ..models.api import MessageResponse, SubmissionListResponse, SubmissionResponse, SubmitRequest
from ..services.auth import Identity, Role
from ..services.events import SubmissionSubject
from ..workflow import WorkflowEngine

router = APIRouter()


def visible_to(identity: Identity, submissions: List[Submission]) -> List[Submission]:
    """Writers only see their own submissions; managers see everything"""
    if identity.role == Role.writer:
        return [s for s in submissions if s.writer_email == identity.email]
    return submissions


def count_submissions(submissions: List[Submission]) -> SubmissionCounts:
    def of(status: SubmissionStatus) -> int:
        return sum(1 for s in submissions if s.status == status)

    return SubmissionCounts(
        pending=of(SubmissionStatus.pending),
        approved=of(SubmissionStatus.approved),
        rejected=of(SubmissionStatus.rejected),
        total=len(submissions),
    )


def _owned_or_403(identity: Identity, submission: Submission, verb: str) -> None:
    if identity.role == Role.writer and submission.writer_email != identity.email:
        raise HTTPException(
            status_code=403,
            detail=f"Access denied. You can only {verb} your own submissions.",
        )


# ============================================================================
# Writer
# ============================================================================

@router.post("/submit", response_model=SubmissionResponse, status_code=201)
async def submit(
    payload: SubmitRequest,
    background_tasks: BackgroundTasks,
    identity: Identity = Depends(require_writer),
    workflow: WorkflowEngine = Depends(get_workflow),
    events: SubmissionSubject = Depends(get_events),
) -> SubmissionResponse:
    """Create a pending submission and ask the manager for a decision"""
    # Runs on the event loop. Mutations must stay serialized, so keep handlers async
    submission = workflow.create_submission(
        payload.title,
        payload.content,
        image_reference=payload.image_reference,
        embedded_images=payload.embedded_images,
        writer_email=identity.email,
    )
    # Runs after the response is sent; failures never reach the writer
    background_tasks.add_task(events.notify_created, submission)
    return SubmissionResponse(message="Submission created successfully", data=submission)


# ============================================================================
# Listing & detail
# ============================================================================

@router.get("/submissions/pending", response_model=SubmissionListResponse)
async def list_pending(
    identity: Identity = Depends(current_identity),
    workflow: WorkflowEngine = Depends(get_workflow),
) -> SubmissionListResponse:
    submissions = visible_to(identity, workflow.get_pending_submissions())
    return SubmissionListResponse(count=len(submissions), data=submissions)


@router.get("/submissions", response_model=SubmissionListResponse)
async def list_submissions(
    status: Optional[str] = None,
    identity: Identity = Depends(current_identity),
    workflow: WorkflowEngine = Depends(get_workflow),
) -> SubmissionListResponse:
    """All submissions (optionally one status), newest first, with counts"""
    if status:
        submissions = workflow.get_submissions_by_status(status)
    else:
        submissions = workflow.get_all_submissions()

    if identity.role == Role.writer:
        submissions = visible_to(identity, submissions)
        counts = count_submissions(submissions)
    else:
        counts = workflow.get_submission_counts()

    return SubmissionListResponse(count=len(submissions), counts=counts, data=submissions)


@router.get("/submissions/{submission_id}", response_model=SubmissionResponse)
async def get_submission(
    submission_id: str,
    identity: Identity = Depends(current_identity),
    workflow: WorkflowEngine = Depends(get_workflow),
) -> SubmissionResponse:
    submission = workflow.get_submission(submission_id)
    if submission is None:
        raise HTTPException(status_code=404, detail="Submission not found")
    _owned_or_403(identity, submission, "view")
    return SubmissionResponse(data=submission)


@router.delete("/submissions/{submission_id}", response_model=MessageResponse)
async def delete_submission(
    submission_id: str,
    identity: Identity = Depends(current_identity),
    workflow: WorkflowEngine = Depends(get_workflow),
) -> MessageResponse:
    submission = workflow.get_submission(submission_id)
    if submission is None:
        raise HTTPException(status_code=404, detail="Submission not found")
    _owned_or_403(identity, submission, "delete")

    # Stays on the event loop (async handler), see submit()
    if not workflow.delete_submission(submission_id):
        raise HTTPException(status_code=404, detail="Submission not found")
    return MessageResponse(message="Submission deleted successfully")


# ============================================================================
# Manager decisions
# ============================================================================

def _decide(
    post_id: Optional[str],
    target: SubmissionStatus,
    workflow: WorkflowEngine,
    events: SubmissionSubject,
    background_tasks: BackgroundTasks,
) -> SubmissionResponse:
    if not post_id:
        raise ValidationError("post_id query parameter is required")

    # Called from async handlers: runs on the event loop, one mutation at a time
    outcome = workflow.transition(post_id, target)
    if outcome.changed:
        background_tasks.add_task(events.notify_decision, outcome.submission)
        message = f"Submission {target.value} successfully"
    else:
        message = f"Submission already {target.value}"
    return SubmissionResponse(message=message, data=outcome.submission)


@router.get("/approve", response_model=SubmissionResponse)
async def approve(
    background_tasks: BackgroundTasks,
    post_id: Optional[str] = None,
    identity: Identity = Depends(require_manager),
    workflow: WorkflowEngine = Depends(get_workflow),
    events: SubmissionSubject = Depends(get_events),
) -> SubmissionResponse:
    return _decide(post_id, SubmissionStatus.approved, workflow, events, background_tasks)


@router.get("/reject", response_model=SubmissionResponse)
async def reject(
    background_tasks: BackgroundTasks,
    post_id: Optional[str] = None,
    identity: Identity = Depends(require_manager),
    workflow: WorkflowEngine = Depends(get_workflow),
    events: SubmissionSubject = Depends(get_events),
) -> SubmissionResponse:
    return _decide(post_id, SubmissionStatus.rejected, workflow, events, background_tasks)
