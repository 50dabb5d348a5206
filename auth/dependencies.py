"""
auth/dependencies.py -- FastAPI Depends() helpers for authentication.

Access tokens arrive in the Authorization header ("Bearer <token>"). There is
no cookie or API-key fallback: the access token is the only credential for
protected routes, and it is verified statelessly (signature + expiry only, no
store round-trip).

get_auth_service() hands route handlers the AuthService wired up in lifespan.
get_current_user_id() raises HTTP 401 unless a valid access token is present.

Layer rule: no imports from api/ or core/.
  auth/dependencies.py may import from fastapi (for HTTPException/Request)
  because this module is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

from fastapi import HTTPException, Request

from auth.exceptions import AuthRejected, TokenError
from auth.service import AuthService, extract_bearer_token
from auth.tokens import TokenIssuer


def get_auth_service(request: Request) -> AuthService:
    return request.app.state.auth_service


def get_current_user_id(request: Request) -> int:
    """Require a valid access token. Raises HTTP 401 otherwise.

    Use as a FastAPI dependency:
        @router.get("/protected")
        def route(user_id: int = Depends(get_current_user_id)): ...
    """
    issuer: TokenIssuer = request.app.state.token_issuer
    try:
        token = extract_bearer_token(request.headers.get("Authorization"))
        claims = issuer.verify(token)
    except (AuthRejected, TokenError) as exc:
        raise HTTPException(
            status_code=401,
            detail={"code": "unauthorized", "message": "Authentication required."},
        ) from exc
    return claims["id"]
