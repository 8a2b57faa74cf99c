"""Signup API endpoints."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from src.api.dependencies import get_auth_provider, get_user_store
from src.schemas.auth import ApiResponse, SignupRequest, UserListResponse, UserSummary
from src.services.auth_provider import AuthProviderClient, AuthProviderError
from src.services.passwords import hash_email, hash_password
from src.services.user_store import UserStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/signup", tags=["signup"])


def _reply(status_code: int, **body) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ApiResponse(**body).model_dump(mode="json", exclude_none=True),
    )


@router.post("", response_model=ApiResponse, status_code=status.HTTP_201_CREATED)
async def signup(
    body: SignupRequest,
    store: Annotated[UserStore, Depends(get_user_store)],
    auth_provider: Annotated[AuthProviderClient, Depends(get_auth_provider)],
):
    """Create a non-pro account for a new email."""
    if not body.email or not body.password:
        return _reply(
            status.HTTP_400_BAD_REQUEST,
            success=False,
            message="Email and password are required",
        )

    logger.info(f"Signup requested for {body.email}")
    duplicate = _reply(
        status.HTTP_400_BAD_REQUEST,
        success=False,
        message="User already exists",
        error="DUPLICATE_EMAIL",
    )

    try:
        if store.email_exists(body.email):
            logger.info(f"Signup rejected, {body.email} already exists")
            return duplicate

        user = store.create(
            body.email,
            password_hash=hash_password(body.password),
            encrypted_email=hash_email(body.email),
            is_pro=False,
        )
    except IntegrityError:
        # Lost a race with a concurrent signup for the same email
        logger.info(f"Signup rejected, {body.email} was created concurrently")
        return duplicate
    except SQLAlchemyError as e:
        logger.error(f"Error inserting user {body.email}: {e}", exc_info=True)
        return _reply(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            success=False,
            message="Failed to create user",
        )

    if auth_provider.is_configured:
        try:
            await auth_provider.create_user(body.email, body.password)
        except AuthProviderError as e:
            logger.warning(f"Auth user for {body.email} not created: {e.message}")

    logger.info(f"Signup successful for {body.email}")
    return _reply(
        status.HTTP_201_CREATED,
        success=True,
        message="User created successfully",
        data=[UserSummary.model_validate(user).model_dump(by_alias=True)],
    )


@router.get("", response_model=UserListResponse)
async def list_users(store: Annotated[UserStore, Depends(get_user_store)]):
    """List all stored accounts."""
    try:
        users = store.list_users()
    except SQLAlchemyError as e:
        logger.error(f"Error fetching users: {e}", exc_info=True)
        return _reply(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            success=False,
            message="Failed to fetch users",
        )
    return UserListResponse(users=[UserSummary.model_validate(user) for user in users])
