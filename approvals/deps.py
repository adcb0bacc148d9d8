from typing import Optional

from fastapi import Cookie, Depends, HTTPException, Request, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from .services.auth import AuthService, Identity, Role
from .services.email_tokens import EmailActionSigner
from .services.events import SubmissionSubject
from .workflow import WorkflowEngine

security = HTTPBearer(auto_error=False)


def get_workflow(request: Request) -> WorkflowEngine:
    return request.app.state.workflow


def get_auth_service(request: Request) -> AuthService:
    return request.app.state.auth


def get_events(request: Request) -> SubmissionSubject:
    return request.app.state.events


def get_signer(request: Request) -> EmailActionSigner:
    return request.app.state.signer


async def bearer_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Security(security),
    token: Optional[str] = Cookie(default=None),
) -> str:
    """Token from the Authorization header, falling back to the login cookie"""
    if credentials and credentials.credentials:
        return credentials.credentials
    if token:
        return token
    raise HTTPException(status_code=401, detail="Access denied. No token provided.")


async def current_identity(
    token: str = Depends(bearer_token),
    auth: AuthService = Depends(get_auth_service),
) -> Identity:
    if auth.is_revoked(token):
        raise HTTPException(
            status_code=401, detail="Token has been invalidated. Please login again."
        )
    identity = auth.verify(token)
    if identity is None:
        raise HTTPException(status_code=401, detail="Invalid or expired token")
    return identity


async def require_writer(identity: Identity = Depends(current_identity)) -> Identity:
    if identity.role != Role.writer:
        raise HTTPException(status_code=403, detail="Access denied. Writer role required.")
    return identity


async def require_manager(identity: Identity = Depends(current_identity)) -> Identity:
    if identity.role != Role.manager:
        raise HTTPException(status_code=403, detail="Access denied. Manager role required.")
    return identity
