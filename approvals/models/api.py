"""
API DTOs
Request and response bodies for the HTTP surface.
"""

from typing import List, Optional

from pydantic import BaseModel

from .submission import CamelModel, Submission, SubmissionCounts


# --- Authentication ---

class LoginRequest(BaseModel):
    email: str = ""
    password: str = ""


class UserInfo(BaseModel):
    email: str
    role: str


class LoginData(BaseModel):
    token: str
    user: UserInfo


class LoginResponse(BaseModel):
    success: bool = True
    message: str = "Login successful"
    data: LoginData


class MeResponse(BaseModel):
    success: bool = True
    user: UserInfo


class MessageResponse(BaseModel):
    success: bool = True
    message: str


# --- Submissions ---

class SubmitRequest(CamelModel):
    """Parsed document handed over by the upload flow"""
    title: Optional[str] = None
    content: Optional[str] = None
    image_reference: Optional[str] = None
    embedded_images: Optional[List[str]] = None


class SubmissionResponse(BaseModel):
    success: bool = True
    message: Optional[str] = None
    data: Submission


class SubmissionListResponse(BaseModel):
    success: bool = True
    count: int
    counts: Optional[SubmissionCounts] = None
    data: List[Submission]
