import hmac
from typing import Annotated, Optional

import jwt
from fastapi import HTTPException, status, Header

from common.core.config import settings
from common.core.otel_axiom_exporter import trace_span, get_logger
from packages.auth.models.domain.authenticated_account import AuthenticatedAccount

logger = get_logger(__name__)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


@trace_span
async def get_current_account(
    authorization: Annotated[Optional[str], Header()] = None,
) -> AuthenticatedAccount:
    """Get the authenticated billing account from a bearer JWT (`sub` = account id)."""
    if not authorization or not authorization.startswith("Bearer "):
        raise _unauthorized("Authorization header missing or invalid")

    token = authorization.split(" ")[1]

    try:
        payload = jwt.decode(
            token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm]
        )
    except jwt.ExpiredSignatureError:
        raise _unauthorized("Token has expired")
    except jwt.InvalidTokenError as e:
        logger.warning(f"Rejected token: {e}")
        raise _unauthorized("Invalid token")

    try:
        account_id = int(payload.get("sub"))
    except (TypeError, ValueError):
        raise _unauthorized("Token subject is not an account")

    return AuthenticatedAccount(account_id=account_id, email=payload.get("email"))


@trace_span
async def require_internal_api_key(
    x_api_key: Annotated[Optional[str], Header()] = None,
) -> None:
    """Guard for scheduler-triggered endpoints (API key only, no user tokens)."""
    expected = settings.billing_internal_api_key
    if not expected:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Internal endpoints are disabled",
        )
    if not x_api_key or not hmac.compare_digest(x_api_key, expected):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid API key",
        )
