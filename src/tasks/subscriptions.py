"""Celery task for periodic subscription reconciliation."""

import asyncio
import logging

from src.celery_app import app as celery_app
from src.config import get_settings
from src.database import session_scope
from src.services.payment import PaymentClient
from src.services.subscription_sync import SubscriptionSyncService
from src.services.user_store import UserStore

logger = logging.getLogger(__name__)


@celery_app.task
def sync_subscriptions() -> dict:
    """Reconcile every user's pro flag with Stripe.

    Runs on the celery-beat schedule; the HTTP endpoint does the same work
    on demand.

    Returns:
        dict with the sync summary
    """
    settings = get_settings()
    payments = PaymentClient.from_settings(settings)
    if not payments.is_configured:
        logger.info("Stripe not configured - skipping subscription sync")
        return {"skipped": True, "reason": "Stripe not configured"}

    with session_scope() as db:
        service = SubscriptionSyncService(
            UserStore(db),
            payments,
            batch_size=settings.sync_batch_size,
            batch_delay=settings.sync_batch_delay_seconds,
        )
        summary = asyncio.run(service.run())

    return summary.model_dump(by_alias=True)
