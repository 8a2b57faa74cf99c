"""Password reset API endpoints."""

import logging
import re
from typing import Annotated

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from src.api.dependencies import get_auth_provider, get_user_store
from src.config import ConfigurationError, Settings, get_settings
from src.schemas.auth import (
    EMAIL_PATTERN,
    MIN_PASSWORD_LENGTH,
    ApiResponse,
    ForgotPasswordRequest,
    ResetPasswordRequest,
)
from src.services.auth_provider import AuthProviderClient, AuthProviderError
from src.services.passwords import hash_password
from src.services.user_store import UserStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["passwords"])

RESET_EMAIL_SENT = (
    "If an account with this email exists, a password reset link has been sent "
    "to your email address."
)
PASSWORD_UPDATED = "Password updated successfully! You can now sign in with your new password."


def _fail(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ApiResponse(success=False, message=message).model_dump(exclude_none=True),
    )


@router.post(
    "/forgot-password", response_model=ApiResponse, response_model_exclude_none=True
)
async def forgot_password(
    body: ForgotPasswordRequest,
    auth_provider: Annotated[AuthProviderClient, Depends(get_auth_provider)],
    settings: Annotated[Settings, Depends(get_settings)],
):
    """Send a reset link; the reply never reveals whether the account exists."""
    if not body.email:
        return _fail(status.HTTP_400_BAD_REQUEST, "Email is required")
    if not re.match(EMAIL_PATTERN, body.email):
        return _fail(status.HTTP_400_BAD_REQUEST, "Invalid email format")
    if not auth_provider.is_configured:
        raise ConfigurationError("Supabase auth is not configured")

    redirect_to = f"{settings.public_base_url.rstrip('/')}/reset-password"
    try:
        await auth_provider.send_password_reset(body.email, redirect_to)
    except AuthProviderError as e:
        if not e.is_not_found:
            logger.error(f"Password reset email failed for {body.email}: {e.message}")
            return _fail(
                status.HTTP_500_INTERNAL_SERVER_ERROR,
                "Failed to send reset email. Please try again.",
            )
        logger.info(f"Password reset requested for unknown email {body.email}")

    return ApiResponse(success=True, message=RESET_EMAIL_SENT)


@router.post(
    "/reset-password", response_model=ApiResponse, response_model_exclude_none=True
)
async def reset_password(
    body: ResetPasswordRequest,
    store: Annotated[UserStore, Depends(get_user_store)],
    auth_provider: Annotated[AuthProviderClient, Depends(get_auth_provider)],
):
    """Store a new password hash, then update the auth credential if possible."""
    if not body.email or not body.password:
        return _fail(status.HTTP_400_BAD_REQUEST, "Email and password are required")
    if len(body.password) < MIN_PASSWORD_LENGTH:
        return _fail(
            status.HTTP_400_BAD_REQUEST,
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters long",
        )

    logger.info(f"Updating password for {body.email}")
    try:
        store.update_password(body.email, hash_password(body.password))
    except SQLAlchemyError as e:
        logger.error(f"Error updating password for {body.email}: {e}", exc_info=True)
        return _fail(status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to update password in database")

    await _update_auth_password(auth_provider, body.email, body.password)

    return ApiResponse(success=True, message=PASSWORD_UPDATED)


async def _update_auth_password(
    auth_provider: AuthProviderClient, email: str, password: str
) -> None:
    """Best effort: the Users table is already updated, so failures only log."""
    if not auth_provider.is_configured:
        logger.info("Supabase auth not configured, skipping auth password update")
        return

    try:
        user_id = await auth_provider.find_user_id(email)
        if user_id is None:
            logger.info(f"No auth user for {email}, Users table was updated")
            return
        await auth_provider.update_password(user_id, password)
    except AuthProviderError as e:
        logger.warning(f"Auth password update failed for {email}: {e.message}")
        return

    logger.info(f"Auth password updated for {email}")
