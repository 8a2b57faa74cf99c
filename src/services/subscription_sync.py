"""Reconcile stored pro flags with Stripe subscription state."""

import asyncio
import logging
import time

from sqlalchemy.exc import SQLAlchemyError

from src.schemas.sync import SyncResult, SyncStats, SyncSummary
from src.services.payment import PaymentClient
from src.services.user_store import UserStore

logger = logging.getLogger(__name__)


class SubscriptionSyncService:
    """Batch job that checks every stored user against Stripe.

    Lookups within a batch run concurrently; batches run one after another
    with a pause in between to stay under Stripe's rate limits.
    """

    def __init__(
        self,
        store: UserStore,
        payments: PaymentClient,
        batch_size: int = 5,
        batch_delay: float = 0.1,
    ) -> None:
        self.store = store
        self.payments = payments
        self.batch_size = max(1, batch_size)
        self.batch_delay = batch_delay

    async def run(self) -> SyncSummary:
        """Sync all users and summarise the run.

        Raises:
            SQLAlchemyError: if the users cannot be read
        """
        logger.info("Starting subscription sync")
        started = time.monotonic()

        # Snapshot before any commit expires the loaded rows
        users = [(user.email, bool(user.is_pro)) for user in self.store.list_users()]
        if not users:
            logger.info("No users found in database")
            return SyncSummary(message="No users to sync")

        logger.info(f"Found {len(users)} users to sync")
        results: list[SyncResult] = []
        for start in range(0, len(users), self.batch_size):
            batch = users[start : start + self.batch_size]
            results.extend(
                await asyncio.gather(*(self._sync_user(email, is_pro) for email, is_pro in batch))
            )
            if start + self.batch_size < len(users):
                await asyncio.sleep(self.batch_delay)

        stats = SyncStats(
            total_users=len(users),
            updated_users=sum(1 for r in results if r.changed),
            error_count=sum(1 for r in results if r.error),
            duration_ms=int((time.monotonic() - started) * 1000),
        )
        logger.info(
            f"Sync completed: {stats.updated_users} updated, "
            f"{stats.error_count} errors, {stats.duration_ms}ms"
        )
        return SyncSummary(
            message="Subscription sync completed",
            stats=stats,
            results=[r for r in results if r.changed or r.error],
        )

    async def _sync_user(self, email: str, is_pro: bool) -> SyncResult:
        result = SyncResult(email=email, old_status=is_pro, new_status=is_pro)

        try:
            active = await asyncio.to_thread(self.payments.has_active_subscription, email)
        except Exception as e:
            # Unknown answer: leave the stored flag alone
            logger.error(f"Error checking subscription for {email}: {e}")
            result.error = str(e)
            return result

        result.has_active_subscription = active
        if active == is_pro:
            logger.debug(f"{email}: status unchanged ({is_pro})")
            return result

        try:
            self.store.set_pro(email, active)
        except SQLAlchemyError as e:
            logger.error(f"Failed to update {email}: {e}")
            result.error = "Failed to update database"
            return result

        result.new_status = active
        logger.info(f"{email}: {is_pro} -> {active}")
        return result
