"""
Submission Models
Database table for the durable record set and the immutable domain record
returned by the store and the workflow engine.
"""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from sqlmodel import SQLModel, Field


class SubmissionStatus(str, Enum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"


# ============================================================================
# DATABASE MODEL
# ============================================================================

class SubmissionTable(SQLModel, table=True):
    """
    One row per submission.
    Timestamps are fixed-width ISO strings (UTC) so they sort as text.
    """
    __tablename__ = "submissions"

    id: str = Field(primary_key=True)
    title: str
    content: str
    image_reference: Optional[str] = None
    embedded_images: Optional[str] = None  # JSON array, NULL when absent
    writer_email: Optional[str] = Field(default=None, index=True)
    status: str = Field(index=True)  # "pending", "approved", "rejected"
    created_at: str = Field(index=True)
    updated_at: str


# ============================================================================
# DOMAIN MODELS
# ============================================================================

class CamelModel(BaseModel):
    """Serializes with camelCase aliases, accepts either spelling on input"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Submission(CamelModel):
    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    content: str
    image_reference: Optional[str] = None
    embedded_images: Optional[List[str]] = None
    writer_email: Optional[str] = None
    status: SubmissionStatus = SubmissionStatus.pending
    created_at: str
    updated_at: str


class SubmissionCounts(BaseModel):
    pending: int = 0
    approved: int = 0
    rejected: int = 0
    total: int = 0


class TransitionOutcome(BaseModel):
    """Result of a status transition; changed is False for a same-state re-apply"""
    submission: Submission
    previous_status: SubmissionStatus
    changed: bool
