"""FastAPI dependencies for the store and the external clients.

The payment and auth-provider clients are built once in the app lifespan
and kept on ``app.state``; these providers hand them to request handlers,
and tests replace them through ``app.dependency_overrides``.
"""

import hmac
from typing import Annotated

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from src.config import Settings, get_settings
from src.database import get_db
from src.services.auth_provider import AuthProviderClient
from src.services.email_log import EmailLog
from src.services.payment import PaymentClient
from src.services.user_store import UserStore

bearer_security = HTTPBearer(auto_error=False)


def get_user_store(db: Annotated[Session, Depends(get_db)]) -> UserStore:
    """Get a user store bound to the request's session."""
    return UserStore(db)


def get_payment_client(request: Request) -> PaymentClient:
    """Get the shared Stripe client."""
    return request.app.state.payment_client


def get_auth_provider(request: Request) -> AuthProviderClient:
    """Get the shared Supabase auth client."""
    return request.app.state.auth_provider


def get_email_log(settings: Annotated[Settings, Depends(get_settings)]) -> EmailLog:
    """Get the backup email log."""
    return EmailLog(settings.email_log_path)


def _check_bearer(credentials: HTTPAuthorizationCredentials | None, expected: str) -> None:
    supplied = credentials.credentials if credentials else ""
    if not hmac.compare_digest(supplied.encode("utf-8"), expected.encode("utf-8")):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
            headers={"WWW-Authenticate": "Bearer"},
        )


def verify_cron_secret(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_security)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> None:
    """Require ``Authorization: Bearer <CRON_SECRET>``."""
    _check_bearer(credentials, settings.require("cron_secret"))


def verify_internal_secret(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_security)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> None:
    """Require ``Authorization: Bearer <INTERNAL_API_SECRET>``."""
    _check_bearer(credentials, settings.require("internal_api_secret"))
