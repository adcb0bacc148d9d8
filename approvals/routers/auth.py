from fastapi import APIRouter, Depends, HTTPException, Request, Response

from ..deps import bearer_token, current_identity, get_auth_service
from ..models.api import LoginData, LoginRequest, LoginResponse, MeResponse, MessageResponse, UserInfo
from ..services.auth import AuthenticationError, AuthService, Identity

router = APIRouter()

COOKIE_NAME = "token"


@router.post("/login", response_model=LoginResponse)
def login(
    payload: LoginRequest,
    request: Request,
    response: Response,
    auth: AuthService = Depends(get_auth_service),
) -> LoginResponse:
    """Exchange writer/manager credentials for a bearer token (also set as cookie)"""
    if not payload.email or not payload.password:
        raise HTTPException(status_code=400, detail="Email and password are required")
    try:
        token, identity = auth.login(payload.email, payload.password)
    except AuthenticationError:
        raise HTTPException(status_code=401, detail="Invalid email or password")

    response.set_cookie(
        COOKIE_NAME,
        token,
        httponly=True,
        secure=request.app.state.settings.app_env == "production",
        samesite="lax",
        max_age=auth.expires_hours * 3600,
    )
    return LoginResponse(
        data=LoginData(
            token=token,
            user=UserInfo(email=identity.email, role=identity.role.value),
        )
    )


@router.post("/logout", response_model=MessageResponse)
def logout(
    response: Response,
    identity: Identity = Depends(current_identity),
    token: str = Depends(bearer_token),
    auth: AuthService = Depends(get_auth_service),
) -> MessageResponse:
    auth.revoke(token)
    response.delete_cookie(COOKIE_NAME, httponly=True, samesite="lax")
    return MessageResponse(message="Logout successful")


@router.get("/me", response_model=MeResponse)
def me(identity: Identity = Depends(current_identity)) -> MeResponse:
    return MeResponse(user=UserInfo(email=identity.email, role=identity.role.value))
