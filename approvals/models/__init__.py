from .submission import (
    Submission,
    SubmissionCounts,
    SubmissionStatus,
    SubmissionTable,
    TransitionOutcome,
)

__all__ = [
    "Submission", "SubmissionCounts", "SubmissionStatus",
    "SubmissionTable", "TransitionOutcome",
]
