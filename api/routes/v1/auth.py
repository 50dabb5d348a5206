"""
api/routes/v1/auth.py -- Registration, session and token rotation endpoints.

Routes (mounted under /auth by api/main.py):
  POST /auth/sign-up        -- register; 201 with the new profile
  POST /auth/sign-in        -- password login; 200 with access + refresh token
  POST /auth/sign-out       -- revoke every session of the bearer's user; 204
  POST /auth/refresh-token  -- rotate a stored refresh token; 200 with a new pair
  GET  /auth/protected      -- probe that only answers to a valid access token

Handlers are thin: they unpack the body, call AuthService, and map the result
onto a response model. AuthError subclasses are translated to status codes by
the exception handler in api/main.py, so nothing here catches them.

Handlers are plain `def`: AuthService is synchronous (bcrypt + SQLAlchemy) and
FastAPI runs sync handlers in its threadpool, so one slow hash never blocks
the event loop.

Security:
  [E1] sign-in returns the same "invalid_credentials" error for an unknown
       email and a wrong password.
  [M5] Cache-Control: no-store on every response that carries tokens.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request, Response

from api.models import (
    ProtectedResponse,
    RefreshRequest,
    SignInRequest,
    SignInResponse,
    SignUpRequest,
    SignUpResponse,
    TokenPairResponse,
    UserSummary,
)
from auth.dependencies import get_auth_service, get_current_user_id
from auth.service import AuthService

# Auth policy:
# - POST /auth/sign-up:        public
# - POST /auth/sign-in:        public
# - POST /auth/sign-out:       access token checked by AuthService.sign_out
# - POST /auth/refresh-token:  public -- the refresh token in the body is the credential
# - GET  /auth/protected:      requires a valid access token (get_current_user_id)
router = APIRouter()


def _no_store(response: Response) -> None:
    response.headers["Cache-Control"] = "no-store"  # [M5]


@router.post("/sign-up", response_model=SignUpResponse, status_code=201)
def sign_up(body: SignUpRequest, service: AuthService = Depends(get_auth_service)) -> SignUpResponse:
    """Register a new user. The password hash is never part of the response."""
    profile = service.sign_up(body.email, body.password, body.first_name, body.last_name)
    return SignUpResponse.from_profile(profile)


@router.post("/sign-in", response_model=SignInResponse)
def sign_in(
    body: SignInRequest,
    response: Response,
    service: AuthService = Depends(get_auth_service),
) -> SignInResponse:
    """Authenticate with email and password; open a new session."""
    result = service.sign_in(body.email, body.password)
    _no_store(response)
    return SignInResponse(
        user=UserSummary.from_profile(result.user),
        token=result.tokens.access_token,
        refresh_token=result.tokens.refresh_token,
    )


@router.post("/sign-out", status_code=204)
def sign_out(request: Request, service: AuthService = Depends(get_auth_service)) -> Response:
    """Log the bearer's user out everywhere: all of their refresh tokens are deleted."""
    service.sign_out(request.headers.get("Authorization"))
    return Response(status_code=204)


@router.post("/refresh-token", response_model=TokenPairResponse)
def refresh_token(
    body: RefreshRequest,
    response: Response,
    service: AuthService = Depends(get_auth_service),
) -> TokenPairResponse:
    """Exchange a stored refresh token for a new pair. The old token stops working."""
    pair = service.refresh(body.refresh_token)
    _no_store(response)
    return TokenPairResponse.from_pair(pair)


@router.get("/protected", response_model=ProtectedResponse)
def protected(user_id: int = Depends(get_current_user_id)) -> ProtectedResponse:
    """Example protected resource used to check access-token validation end to end."""
    return ProtectedResponse(message="This is a protected route", user_id=user_id)
