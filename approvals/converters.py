"""
Format Converters
Translates between the stored row format (SubmissionTable) and the
immutable domain record (Submission).
"""

import json
from typing import List, Optional

from .errors import PersistenceError
from .models import Submission, SubmissionStatus, SubmissionTable


def encode_images(images: Optional[List[str]]) -> Optional[str]:
    """
    Serialize embedded images for storage.
    None stays NULL so absence and an empty list remain distinct.
    """
    if images is None:
        return None
    return json.dumps(list(images))


def decode_images(raw: Optional[str]) -> Optional[List[str]]:
    if raw is None:
        return None
    return json.loads(raw)


def submission_to_row(submission: Submission) -> SubmissionTable:
    """Convert a domain record into a table row"""
    return SubmissionTable(
        id=submission.id,
        title=submission.title,
        content=submission.content,
        image_reference=submission.image_reference,
        embedded_images=encode_images(submission.embedded_images),
        writer_email=submission.writer_email,
        status=submission.status.value,
        created_at=submission.created_at,
        updated_at=submission.updated_at,
    )


def copy_into_row(submission: Submission, row: SubmissionTable) -> None:
    """Overwrite every mutable column of an existing row (full replacement)"""
    row.title = submission.title
    row.content = submission.content
    row.image_reference = submission.image_reference
    row.embedded_images = encode_images(submission.embedded_images)
    row.writer_email = submission.writer_email
    row.status = submission.status.value
    row.created_at = submission.created_at
    row.updated_at = submission.updated_at


def row_to_submission(row: SubmissionTable) -> Submission:
    """
    Convert a table row into a domain record.
    A row that does not decode (bad JSON, unknown status) raises PersistenceError.
    """
    try:
        return Submission(
            id=row.id,
            title=row.title,
            content=row.content,
            image_reference=row.image_reference,
            embedded_images=decode_images(row.embedded_images),
            writer_email=row.writer_email,
            status=SubmissionStatus(row.status),
            created_at=row.created_at,
            updated_at=row.updated_at,
        )
    except (ValueError, TypeError) as exc:
        raise PersistenceError(f"Stored submission {row.id} is unreadable") from exc
