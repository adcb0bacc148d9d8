"""
Document approval workflow: submissions move from pending to approved or
rejected through the web API or signed email links.
"""

from .errors import ConflictError, NotFoundError, PersistenceError, ValidationError, WorkflowError
from .models import Submission, SubmissionCounts, SubmissionStatus
from .repository import SubmissionRepository, build_engine
from .workflow import ALLOWED_TRANSITIONS, WorkflowEngine

__all__ = [
    "ALLOWED_TRANSITIONS",
    "ConflictError", "NotFoundError", "PersistenceError", "ValidationError", "WorkflowError",
    "Submission", "SubmissionCounts", "SubmissionStatus",
    "SubmissionRepository", "build_engine",
    "WorkflowEngine",
]
