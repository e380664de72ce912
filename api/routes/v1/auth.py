"""
api/routes/v1/auth.py -- Account, session, and password-reset endpoints.

Routes:
  POST  /api/v1/auth/register                 -- create an account
  POST  /api/v1/auth/login                    -- password login; sets session cookie
  POST  /api/v1/auth/logout                   -- destroys the session; idempotent
  GET   /api/v1/auth/me                       -- current user (requires auth)
  PATCH /api/v1/auth/me                       -- update name/email/password (requires auth)
  POST  /api/v1/auth/forgot-password          -- mail a reset link; generic response
  GET   /api/v1/auth/reset-password/{token}   -- check a reset token
  POST  /api/v1/auth/reset-password/{token}   -- set a new password with a token
  GET   /reestablecer-password/{token}        -- target of the mailed link (same as GET above)
  POST  /reestablecer-password/{token}        -- same as POST above

Security:
  POST /login and POST /forgot-password are rate-limited per IP.
  SessionAuthenticator.login() equalizes timing -- use it, never inline the lookup.
  Credential and token failures raise the typed errors from auth/errors.py;
  the handler in api/main.py renders them with their fixed messages.
  Cache-Control: no-store on login and reset responses.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse

from api.limiter import limiter
from api.models import (
    ForgotPasswordRequest,
    LoginRequest,
    LoginResponse,
    MeResponse,
    MessageResponse,
    ProfilePatch,
    RegisterRequest,
    ResetPasswordRequest,
)
from auth.accounts import AccountService
from auth.authenticator import SessionAuthenticator
from auth.dependencies import get_current_user, get_session_id
from auth.models import User
from auth.reset import PasswordResetFlow
from auth.tokens import clear_session_cookie, encode_session_cookie, set_session_cookie
from core.config import get_settings

_settings = get_settings()

# Auth policy:
# - POST  /auth/register, /auth/login, /auth/forgot-password: public
# - POST  /auth/logout: public -- ending a session needs no prior auth check
# - GET/POST /auth/reset-password/{token}: public -- the token is the credential
# - GET/PATCH /auth/me: requires auth (get_current_user)
router = APIRouter()

# Mounted without the /api/v1 prefix: the mailed link points here.
link_router = APIRouter()


# ---------------------------------------------------------------------------
# Registration and sessions
# ---------------------------------------------------------------------------


@router.post("/auth/register", response_model=MeResponse, status_code=201)
def register(request: Request, body: RegisterRequest) -> MeResponse:
    """Create an account. 409 duplicate_email if the address is taken."""
    accounts: AccountService = request.app.state.accounts
    user = accounts.register(body.email, body.name, body.password)
    return MeResponse.from_user(user)


@limiter.limit(_settings.login_rate_limit)  # must be ABOVE @router to preserve FastAPI introspection
@router.post("/auth/login", response_model=LoginResponse)
def login(request: Request, body: LoginRequest) -> JSONResponse:
    """Authenticate with email and password; set the session cookie.

    Unknown email and wrong password both produce 401 invalid_credentials
    with the same message.
    """
    authenticator: SessionAuthenticator = request.app.state.authenticator
    user, session = authenticator.authenticate(body.email, body.password)

    token = encode_session_cookie(session.session_id, session.expires_at)
    resp = JSONResponse(
        status_code=200,
        content=LoginResponse(
            access_token=token,
            token_type="bearer",  # noqa: S106 # nosec B106 -- token type, not a password
            expires_in=_settings.session_expire_seconds,
            user_id=user.id,
            email=user.email,
            name=user.name,
        ).model_dump(),
    )
    set_session_cookie(resp, token)
    resp.headers["Cache-Control"] = "no-store"
    return resp


@router.post("/auth/logout", response_model=MessageResponse)
def logout(request: Request) -> JSONResponse:
    """Destroy the session binding and clear the cookie. Safe to call twice."""
    authenticator: SessionAuthenticator = request.app.state.authenticator
    ended = authenticator.logout(get_session_id(request))
    message = "Logged out." if ended else "Already logged out."
    resp = JSONResponse(content=MessageResponse(message=message).model_dump())
    clear_session_cookie(resp)
    return resp


# ---------------------------------------------------------------------------
# Profile
# ---------------------------------------------------------------------------


@router.get("/auth/me", response_model=MeResponse)
def me(current_user: User = Depends(get_current_user)) -> MeResponse:
    return MeResponse.from_user(current_user)


@router.patch("/auth/me", response_model=MeResponse)
def update_me(
    request: Request,
    body: ProfilePatch,
    current_user: User = Depends(get_current_user),
) -> MeResponse:
    """Update the caller's own profile. A new password is re-hashed before storage."""
    accounts: AccountService = request.app.state.accounts
    updated = accounts.update_profile(
        current_user,
        name=body.name,
        email=body.email,
        password=body.password,
        avatar=body.avatar,
    )
    return MeResponse.from_user(updated)


# ---------------------------------------------------------------------------
# Password reset
# ---------------------------------------------------------------------------


@limiter.limit(_settings.reset_rate_limit)
@router.post("/auth/forgot-password", response_model=MessageResponse)
def forgot_password(request: Request, body: ForgotPasswordRequest) -> MessageResponse:
    """Mail a reset link if the account exists. The response never says which."""
    flow: PasswordResetFlow = request.app.state.reset_flow
    base_url = _settings.base_url or str(request.base_url)
    message = flow.request_reset(body.email, base_url=base_url)
    return MessageResponse(message=message)


@router.get("/auth/reset-password/{token}", response_model=MessageResponse)
@link_router.get("/reestablecer-password/{token}", response_model=MessageResponse)
def check_reset_token(request: Request, token: str, response: Response) -> MessageResponse:
    """400 token_invalid_or_expired unless the token is live."""
    flow: PasswordResetFlow = request.app.state.reset_flow
    flow.validate_token(token)
    response.headers["Cache-Control"] = "no-store"
    return MessageResponse(message="Choose a new password.")


@router.post("/auth/reset-password/{token}", response_model=MessageResponse)
@link_router.post("/reestablecer-password/{token}", response_model=MessageResponse)
def reset_password(request: Request, token: str, body: ResetPasswordRequest, response: Response) -> MessageResponse:
    """Store the new password and burn the token. Replays get 400."""
    flow: PasswordResetFlow = request.app.state.reset_flow
    flow.complete_reset(token, body.password)
    response.headers["Cache-Control"] = "no-store"
    return MessageResponse(message="Password changed. Please log in.")
