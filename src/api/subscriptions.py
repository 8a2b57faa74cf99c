"""Subscription reconciliation endpoint, called by a scheduler."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from src.api.dependencies import get_payment_client, get_user_store, verify_cron_secret
from src.config import ConfigurationError, Settings, get_settings
from src.schemas.sync import SyncSummary
from src.services.payment import PaymentClient
from src.services.subscription_sync import SubscriptionSyncService
from src.services.user_store import UserStore

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/sync-subscriptions",
    tags=["subscriptions"],
    dependencies=[Depends(verify_cron_secret)],
)


@router.api_route("", methods=["GET", "POST"], response_model=SyncSummary)
async def sync_subscriptions(
    store: Annotated[UserStore, Depends(get_user_store)],
    payments: Annotated[PaymentClient, Depends(get_payment_client)],
    settings: Annotated[Settings, Depends(get_settings)],
):
    """Set each user's pro flag from their Stripe subscriptions."""
    if not payments.is_configured:
        raise ConfigurationError("STRIPE_SECRET_KEY is not configured")

    service = SubscriptionSyncService(
        store,
        payments,
        batch_size=settings.sync_batch_size,
        batch_delay=settings.sync_batch_delay_seconds,
    )
    try:
        return await service.run()
    except SQLAlchemyError as e:
        logger.error(f"Failed to fetch users: {e}", exc_info=True)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"success": False, "error": "Failed to fetch users from database"},
        )
