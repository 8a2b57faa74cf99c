"""Stripe access: webhook verification, customer and subscription lookups."""

import json
import logging
from dataclasses import dataclass
from typing import Any

import stripe

from src.config import ConfigurationError, Settings

logger = logging.getLogger(__name__)


class InvalidSignatureError(ValueError):
    """The stripe-signature header does not match the payload."""


@dataclass
class CustomerInfo:
    """The parts of a Stripe customer the webhook needs."""

    id: str
    email: str | None
    name: str | None
    deleted: bool = False


class PaymentClient:
    """Service for talking to Stripe.

    One instance is built at startup and shared by all requests; the
    underlying ``stripe.StripeClient`` holds no per-request state.
    """

    def __init__(
        self,
        secret_key: str | None,
        webhook_secret: str | None,
        client: stripe.StripeClient | None = None,
    ) -> None:
        self.webhook_secret = webhook_secret
        self._client = client
        if self._client is None and secret_key:
            self._client = stripe.StripeClient(secret_key)

    @classmethod
    def from_settings(cls, settings: Settings) -> "PaymentClient":
        """Build a client from application settings."""
        return cls(settings.stripe_secret_key, settings.stripe_webhook_secret)

    @property
    def is_configured(self) -> bool:
        """Check if API calls can be made."""
        return self._client is not None

    @property
    def client(self) -> stripe.StripeClient:
        if self._client is None:
            raise ConfigurationError("STRIPE_SECRET_KEY is not configured")
        return self._client

    def construct_event(self, payload: bytes, signature: str) -> dict[str, Any]:
        """Verify a webhook delivery and decode its JSON body.

        Raises:
            ConfigurationError: if no signing secret is configured
            InvalidSignatureError: if the signature does not verify
            ValueError: if the body is not valid JSON
        """
        if not self.webhook_secret:
            raise ConfigurationError("STRIPE_WEBHOOK_SECRET is not configured")

        body = payload.decode("utf-8")
        try:
            stripe.WebhookSignature.verify_header(
                body,
                signature,
                self.webhook_secret,
                tolerance=stripe.Webhook.DEFAULT_TOLERANCE,
            )
        except stripe.SignatureVerificationError as e:
            raise InvalidSignatureError(str(e)) from e

        event = json.loads(body)
        if not isinstance(event, dict):
            raise ValueError("Webhook body is not a JSON object")
        return event

    def retrieve_customer(self, customer_id: str) -> CustomerInfo:
        """Fetch a customer by ID."""
        customer = self.client.customers.retrieve(customer_id)
        return CustomerInfo(
            id=customer_id,
            email=getattr(customer, "email", None),
            name=getattr(customer, "name", None),
            deleted=bool(getattr(customer, "deleted", False)),
        )

    def has_active_subscription(self, email: str) -> bool:
        """Check if the customer with this email has an active subscription.

        An email with no Stripe customer has no subscription.
        """
        customers = self.client.customers.list(params={"email": email, "limit": 1})
        if not customers.data:
            logger.info(f"No Stripe customer found for {email}")
            return False

        customer = customers.data[0]
        subscriptions = self.client.subscriptions.list(
            params={"customer": customer.id, "status": "active", "limit": 10}
        )
        logger.info(f"{email} has {len(subscriptions.data)} active subscriptions")
        return len(subscriptions.data) > 0
