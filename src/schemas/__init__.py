"""Pydantic schemas for request/response validation."""

from src.schemas.auth import (
    ApiResponse,
    ForgotPasswordRequest,
    ResetPasswordRequest,
    SignupRequest,
    UserListResponse,
    UserSummary,
)
from src.schemas.sync import SyncResult, SyncStats, SyncSummary
from src.schemas.webhook import DirectInsertRequest, EmailLogEntry, EmailLogResponse, WebhookAck

__all__ = [
    "ApiResponse",
    "DirectInsertRequest",
    "EmailLogEntry",
    "EmailLogResponse",
    "ForgotPasswordRequest",
    "ResetPasswordRequest",
    "SignupRequest",
    "SyncResult",
    "SyncStats",
    "SyncSummary",
    "UserListResponse",
    "UserSummary",
    "WebhookAck",
]
