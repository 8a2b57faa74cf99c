"""Ordered fallback chain for recording a customer's pro status.

A chain is a list of strategies tried in order. Each strategy returns a
``PersistResult``; the first success stops the chain, and each failure is
handed to the next strategy so it can decide whether it applies. The last
strategy of every chain appends to the backup email log, so an email that
cannot be stored anywhere is still written down exactly once.
"""

import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

import httpx
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from src.config import Settings
from src.schemas.auth import EMAIL_PATTERN, UserSummary
from src.services.email_log import EmailLog
from src.services.user_store import UserStore

logger = logging.getLogger(__name__)

_email_re = re.compile(EMAIL_PATTERN)


def is_valid_email(email: str | None) -> bool:
    """Check an email against the simple address pattern."""
    return bool(email) and _email_re.match(email) is not None


@dataclass
class PersistRequest:
    """What to record for one webhook delivery."""

    email: str
    event_type: str
    first_name: str | None = None
    is_pro: bool = True

    @classmethod
    def grant(cls, email: str, event_type: str, first_name: str | None = None) -> "PersistRequest":
        return cls(email=email, event_type=event_type, first_name=first_name, is_pro=True)

    @classmethod
    def revoke(cls, email: str, event_type: str) -> "PersistRequest":
        return cls(email=email, event_type=f"{event_type}_cancellation", is_pro=False)


@dataclass
class PersistResult:
    """Outcome of one strategy, or of a whole chain."""

    success: bool
    stage: str
    data: Any = None
    reason: str | None = None
    conflict: bool = False

    @classmethod
    def ok(cls, stage: str, data: Any = None) -> "PersistResult":
        return cls(success=True, stage=stage, data=data)

    @classmethod
    def failed(cls, stage: str, reason: str, conflict: bool = False) -> "PersistResult":
        return cls(success=False, stage=stage, reason=reason, conflict=conflict)


class PersistStrategy(ABC):
    """One way of recording a customer's status."""

    name: str = "strategy"

    @abstractmethod
    async def attempt(
        self, request: PersistRequest, previous: PersistResult | None
    ) -> PersistResult:
        """Try to record the request; ``previous`` is the last failure, if any."""


class StoreInsertStrategy(PersistStrategy):
    """Insert a new pro user."""

    name = "insert"

    def __init__(self, store: UserStore) -> None:
        self.store = store

    async def attempt(
        self, request: PersistRequest, previous: PersistResult | None
    ) -> PersistResult:
        try:
            user = self.store.create(
                request.email, is_pro=request.is_pro, first_name=request.first_name
            )
        except IntegrityError as e:
            return PersistResult.failed(self.name, f"Email already exists: {e.orig}", conflict=True)
        except SQLAlchemyError as e:
            return PersistResult.failed(self.name, str(e))
        return PersistResult.ok(self.name, UserSummary.model_validate(user))


class ConflictUpdateStrategy(PersistStrategy):
    """Update the existing user after the insert hit the unique email."""

    name = "update"

    def __init__(self, store: UserStore) -> None:
        self.store = store

    async def attempt(
        self, request: PersistRequest, previous: PersistResult | None
    ) -> PersistResult:
        if previous is None or not previous.conflict:
            return PersistResult.failed(self.name, "Skipped: insert did not conflict")

        values: dict[str, Any] = {"is_pro": request.is_pro}
        if request.first_name:
            values["first_name"] = request.first_name
        try:
            count = self.store.update_by_email(request.email, values)
        except SQLAlchemyError as e:
            return PersistResult.failed(self.name, str(e))
        if count == 0:
            return PersistResult.failed(self.name, "No row matched the email")
        return PersistResult.ok(self.name, {"email": request.email, "isPro": request.is_pro})


class StoreDowngradeStrategy(PersistStrategy):
    """Clear the pro flag for an existing user."""

    name = "downgrade"

    def __init__(self, store: UserStore) -> None:
        self.store = store

    async def attempt(
        self, request: PersistRequest, previous: PersistResult | None
    ) -> PersistResult:
        try:
            count = self.store.set_pro(request.email, False)
        except SQLAlchemyError as e:
            return PersistResult.failed(self.name, str(e))
        if count == 0:
            logger.info(f"No stored user for {request.email}, nothing to downgrade")
        return PersistResult.ok(self.name, {"email": request.email, "updated": count})


class SecondaryInsertStrategy(PersistStrategy):
    """POST the email to the service's own direct-insert endpoint."""

    name = "secondary"

    def __init__(
        self,
        base_url: str,
        token: str | None,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.url = f"{base_url.rstrip('/')}/api/direct-insert"
        self.token = token
        self.timeout = timeout
        self._transport = transport

    async def attempt(
        self, request: PersistRequest, previous: PersistResult | None
    ) -> PersistResult:
        if not self.token:
            return PersistResult.failed(self.name, "Skipped: INTERNAL_API_SECRET is not set")

        logger.info(f"Attempting secondary insertion for {request.email}")
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(
                    self.url,
                    json={"email": request.email, "isPro": request.is_pro},
                    headers={"Authorization": f"Bearer {self.token}"},
                )
            result = response.json()
        except (httpx.HTTPError, ValueError) as e:
            return PersistResult.failed(self.name, f"Secondary insertion failed: {e}")

        if not isinstance(result, dict) or not result.get("success"):
            error = result.get("error") if isinstance(result, dict) else None
            return PersistResult.failed(self.name, error or "Secondary insertion failed")
        return PersistResult.ok(self.name, result.get("data"))


class EmailLogStrategy(PersistStrategy):
    """Write the email to the backup log as a last resort."""

    name = "email_log"

    def __init__(self, email_log: EmailLog) -> None:
        self.email_log = email_log

    async def attempt(
        self, request: PersistRequest, previous: PersistResult | None
    ) -> PersistResult:
        try:
            entry = self.email_log.append(request.email, request.event_type, request.is_pro)
        except OSError as e:
            return PersistResult.failed(self.name, f"Failed to write email log: {e}")
        return PersistResult.ok(self.name, entry)


class PersistenceChain:
    """Runs strategies in order until one succeeds."""

    def __init__(self, strategies: list[PersistStrategy]) -> None:
        self.strategies = strategies

    async def run(self, request: PersistRequest) -> PersistResult:
        """Record the request, returning the first success or the last failure."""
        if not is_valid_email(request.email):
            logger.error(f"Invalid email format: {request.email}")
            return PersistResult.failed("validation", "Invalid email format")

        result = PersistResult.failed("chain", "No strategies configured")
        previous: PersistResult | None = None
        for strategy in self.strategies:
            try:
                result = await strategy.attempt(request, previous)
            except Exception as e:
                logger.error(
                    f"Stage {strategy.name} raised for {request.email}: {e}", exc_info=True
                )
                result = PersistResult.failed(strategy.name, str(e))

            if result.success:
                logger.info(f"Stored {request.email} via {strategy.name}")
                return result

            logger.warning(f"Stage {strategy.name} failed for {request.email}: {result.reason}")
            previous = result

        logger.error(f"All persistence stages failed for {request.email}")
        return result


def build_grant_chain(
    store: UserStore, email_log: EmailLog, settings: Settings
) -> PersistenceChain:
    """insert -> update on conflict -> secondary endpoint -> backup log."""
    return PersistenceChain(
        [
            StoreInsertStrategy(store),
            ConflictUpdateStrategy(store),
            SecondaryInsertStrategy(
                settings.public_base_url,
                settings.internal_api_secret,
                timeout=settings.http_timeout_seconds,
            ),
            EmailLogStrategy(email_log),
        ]
    )


def build_revoke_chain(store: UserStore, email_log: EmailLog) -> PersistenceChain:
    """downgrade -> backup log."""
    return PersistenceChain([StoreDowngradeStrategy(store), EmailLogStrategy(email_log)])
