"""API router for authentication, password reset and MFA enrollment."""

from fastapi import APIRouter, Depends, status

from ....application.services.auth_service import AuthService
from ....core.dependencies import get_auth_service
from ....domain.models import TokenClaims, User
from ...api.dependencies import require_session
from ...api.schemas.auth import (
    ForgotPasswordRequest,
    LoginRequest,
    MfaSetupResponse,
    MfaVerifyRequest,
    OkResponse,
    ProfileResponse,
    RegisterRequest,
    ResetPasswordRequest,
    SessionResponse,
    UserResponse,
)

router = APIRouter(prefix="/api/auth", tags=["Authentication"])


@router.post("/register", response_model=SessionResponse, status_code=status.HTTP_201_CREATED)
def register(
    payload: RegisterRequest,
    auth_service: AuthService = Depends(get_auth_service),
) -> SessionResponse:
    user, token = auth_service.register(payload.name, payload.email, payload.password)
    return _session(user, token)


@router.post("/login", response_model=SessionResponse)
def login(
    payload: LoginRequest,
    auth_service: AuthService = Depends(get_auth_service),
) -> SessionResponse:
    user, token = auth_service.login(payload.email, payload.password, payload.mfa_code)
    return _session(user, token)


@router.get("/me", response_model=ProfileResponse)
def me(
    claims: TokenClaims = Depends(require_session),
    auth_service: AuthService = Depends(get_auth_service),
) -> ProfileResponse:
    user = auth_service.get_profile(claims.subject_id)
    return ProfileResponse(id=user.id, name=user.name, email=user.email, mfa_enabled=user.mfa_enabled)


@router.post("/forgot-password", response_model=OkResponse)
def forgot_password(
    payload: ForgotPasswordRequest,
    auth_service: AuthService = Depends(get_auth_service),
) -> OkResponse:
    """Always answers ok; the token only travels by email."""
    auth_service.request_password_reset(payload.email)
    return OkResponse()


@router.post("/reset-password", response_model=OkResponse)
def reset_password(
    payload: ResetPasswordRequest,
    auth_service: AuthService = Depends(get_auth_service),
) -> OkResponse:
    auth_service.reset_password(payload.token, payload.new_password)
    return OkResponse()


@router.get("/mfa/setup", response_model=MfaSetupResponse)
def mfa_setup(
    claims: TokenClaims = Depends(require_session),
    auth_service: AuthService = Depends(get_auth_service),
) -> MfaSetupResponse:
    setup = auth_service.mfa_setup(claims.subject_id)
    return MfaSetupResponse(secret=setup.secret, otpauth_url=setup.provisioning_uri)


@router.post("/mfa/verify", response_model=OkResponse)
def mfa_verify(
    payload: MfaVerifyRequest,
    claims: TokenClaims = Depends(require_session),
    auth_service: AuthService = Depends(get_auth_service),
) -> OkResponse:
    auth_service.mfa_verify(claims.subject_id, payload.code, payload.secret)
    return OkResponse()


@router.post("/mfa/disable", response_model=OkResponse)
def mfa_disable(
    claims: TokenClaims = Depends(require_session),
    auth_service: AuthService = Depends(get_auth_service),
) -> OkResponse:
    auth_service.mfa_disable(claims.subject_id)
    return OkResponse()


def _session(user: User, token: str) -> SessionResponse:
    return SessionResponse(
        token=token,
        user=UserResponse(id=user.id, name=user.name, email=user.email),
    )
