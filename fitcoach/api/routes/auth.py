"""
Authentication endpoints.

Sign-in hands out a bearer token; every other endpoint reads the caller's
identity from it. Sign-up registers an account but does not sign in.
Error messages from the auth service are shown to the user verbatim.
"""

import logging
from typing import Optional

from fastapi import APIRouter, HTTPException, status
from pydantic import BaseModel, Field

from ...core.auth.models import AuthFormMode, AuthSnapshot
from ...core.auth.router import resolve_route, resolve_router_state
from ...core.views.notifications import error, success
from ...infrastructure.auth.service import AuthError, SignInThrottled
from ..dependencies import AuthServiceDep, BearerToken, CurrentSnapshot, SettingsDep
from ..schemas import IdentityModel, NotificationModel

logger = logging.getLogger(__name__)

router = APIRouter()


# ---------------------------------------------------------------------------
# Request/Response Models
# ---------------------------------------------------------------------------

class CredentialsRequest(BaseModel):
    email: str = Field(description="Email address", min_length=3, max_length=320)
    password: str = Field(description="Password", min_length=1, max_length=256)


class SignUpRequest(CredentialsRequest):
    full_name: str = Field("", description="Display name", max_length=200)


class SignInResponse(BaseModel):
    access_token: str = Field(description="Bearer token for the Authorization header")
    token_type: str = Field("bearer", description="Always 'bearer'")
    expires_at: str = Field(description="Token expiry (ISO format)")
    identity: IdentityModel
    redirect_to: str = Field(description="Landing page for the identity's role")


class SignUpResponse(BaseModel):
    identity: IdentityModel
    notifications: list[NotificationModel]


class SessionResponse(BaseModel):
    """The `{identity, loading}` pair plus the router state it implies."""
    identity: Optional[IdentityModel] = None
    loading: bool = False
    state: str = Field(description="Router state for this identity")


class AuthFormResponse(BaseModel):
    mode: str
    title: str
    description: str
    submit_label: str
    pending_label: str
    toggle_label: str
    toggle_mode: str = Field(description="Mode the toggle switches to")


def _error_detail(message: str) -> dict:
    return {"notifications": [NotificationModel.from_domain(error(message)).model_dump()]}


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.post(
    "/sign-in",
    response_model=SignInResponse,
    summary="Sign in with email and password",
    responses={401: {"description": "Invalid credentials"}, 429: {"description": "Too many attempts"}},
)
def sign_in(
    request: CredentialsRequest,
    auth_service: AuthServiceDep,
    settings: SettingsDep,
) -> SignInResponse:
    try:
        result = auth_service.sign_in(request.email, request.password)
    except SignInThrottled as e:
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail=_error_detail(e.message),
        )
    except AuthError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=_error_detail(e.message),
        )

    decision = resolve_route(
        AuthSnapshot.signed_in(result.identity),
        "/",
        markers=settings.coach_email_markers_list,
    )
    return SignInResponse(
        access_token=result.token,
        expires_at=result.expires_at.isoformat(),
        identity=IdentityModel.from_domain(result.identity),
        redirect_to=decision.path,
    )


@router.post(
    "/sign-up",
    response_model=SignUpResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register an account",
    responses={400: {"description": "Invalid or already registered email, weak password"}},
)
def sign_up(request: SignUpRequest, auth_service: AuthServiceDep) -> SignUpResponse:
    try:
        identity = auth_service.sign_up(request.email, request.password, request.full_name)
    except AuthError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=_error_detail(e.message),
        )

    return SignUpResponse(
        identity=IdentityModel.from_domain(identity),
        notifications=[NotificationModel.from_domain(success(
            "Registration successful",
            "Your account has been created. You can now sign in.",
        ))],
    )


@router.post(
    "/sign-out",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="End the current session",
)
def sign_out(token: BearerToken, auth_service: AuthServiceDep) -> None:
    """Idempotent: signing out without (or with an unknown) token is not an error."""
    if token:
        auth_service.sign_out(token)


@router.get(
    "/session",
    response_model=SessionResponse,
    summary="Current identity",
)
def current_session(snapshot: CurrentSnapshot, settings: SettingsDep) -> SessionResponse:
    return SessionResponse(
        identity=IdentityModel.from_domain(snapshot.identity) if snapshot.identity else None,
        loading=snapshot.loading,
        state=resolve_router_state(snapshot, settings.coach_email_markers_list).value,
    )


@router.get(
    "/form",
    response_model=AuthFormResponse,
    summary="Labels for the sign-in / sign-up form",
)
async def auth_form(mode: AuthFormMode = AuthFormMode.SIGN_IN) -> AuthFormResponse:
    labels = mode.labels
    return AuthFormResponse(
        mode=mode.value,
        title=labels.title,
        description=labels.description,
        submit_label=labels.submit_label,
        pending_label=labels.pending_label,
        toggle_label=labels.toggle_label,
        toggle_mode=mode.toggled().value,
    )
