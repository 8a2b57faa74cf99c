"""Stripe webhook events as typed variants, plus email extraction.

Each event kind gets a dataclass carrying only the fields it needs.
``parse_event`` builds the variant from the raw payload, ``extract_customer``
finds the paying customer's email and first name, and ``resolve_action``
decides what the event does to the stored account.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any

from src.models.enums import StripeEventType, SubscriptionStatus, WebhookAction
from src.services.payment import PaymentClient

logger = logging.getLogger(__name__)


@dataclass
class CustomerData:
    """Email and first name pulled out of an event."""

    email: str | None = None
    first_name: str | None = None


@dataclass
class PaymentIntentEvent:
    type: str
    object_id: str | None
    receipt_email: str | None = None
    billing_name: str | None = None


@dataclass
class ChargeEvent:
    type: str
    object_id: str | None
    billing_email: str | None = None
    receipt_email: str | None = None
    billing_name: str | None = None


@dataclass
class CheckoutSessionEvent:
    type: str
    object_id: str | None
    customer_email: str | None = None
    customer_name: str | None = None


@dataclass
class InvoiceEvent:
    type: str
    object_id: str | None
    customer_email: str | None = None


@dataclass
class SubscriptionEvent:
    """Subscription lifecycle events carry no email inline."""

    type: str
    object_id: str | None
    customer_id: str | None = None
    status: str | None = None
    customer_email: str | None = None
    metadata_email: str | None = None
    metadata_first_name: str | None = None


@dataclass
class UnknownEvent:
    type: str
    object_id: str | None
    data: dict[str, Any] = field(default_factory=dict)


StripeEvent = (
    PaymentIntentEvent
    | ChargeEvent
    | CheckoutSessionEvent
    | InvoiceEvent
    | SubscriptionEvent
    | UnknownEvent
)


def _get(data: dict[str, Any], *path: str) -> Any:
    """Walk nested dicts, returning None at the first missing key."""
    value: Any = data
    for key in path:
        if not isinstance(value, dict):
            return None
        value = value.get(key)
    return value or None


def first_name_from(full_name: str | None) -> str | None:
    """First whitespace-separated token of a full name."""
    if not full_name:
        return None
    parts = full_name.split()
    return parts[0] if parts else None


def parse_event(event: dict[str, Any]) -> StripeEvent:
    """Build the typed variant for a raw Stripe event payload."""
    event_type = str(event.get("type") or "")
    obj = _get(event, "data", "object")
    if not isinstance(obj, dict):
        obj = {}
    object_id = obj.get("id")

    if event_type.startswith("payment_intent."):
        return PaymentIntentEvent(
            type=event_type,
            object_id=object_id,
            receipt_email=_get(obj, "receipt_email"),
            billing_name=_get(obj, "billing_details", "name"),
        )
    if event_type.startswith("charge."):
        return ChargeEvent(
            type=event_type,
            object_id=object_id,
            billing_email=_get(obj, "billing_details", "email"),
            receipt_email=_get(obj, "receipt_email"),
            billing_name=_get(obj, "billing_details", "name"),
        )
    if event_type.startswith("checkout.session."):
        return CheckoutSessionEvent(
            type=event_type,
            object_id=object_id,
            customer_email=_get(obj, "customer_details", "email"),
            customer_name=_get(obj, "customer_details", "name"),
        )
    if event_type.startswith("invoice."):
        return InvoiceEvent(
            type=event_type,
            object_id=object_id,
            customer_email=_get(obj, "customer_email"),
        )
    if event_type.startswith("customer.subscription."):
        customer = obj.get("customer")
        if isinstance(customer, dict):
            customer = customer.get("id")
        return SubscriptionEvent(
            type=event_type,
            object_id=object_id,
            customer_id=customer or None,
            status=_get(obj, "status"),
            customer_email=_get(obj, "customer_email"),
            metadata_email=_get(obj, "metadata", "email"),
            metadata_first_name=_get(obj, "metadata", "firstName"),
        )
    return UnknownEvent(type=event_type, object_id=object_id, data=obj)


async def extract_customer(event: StripeEvent, payments: PaymentClient) -> CustomerData:
    """Find the customer's email and first name for any event variant."""
    if isinstance(event, PaymentIntentEvent):
        return CustomerData(event.receipt_email, first_name_from(event.billing_name))

    if isinstance(event, ChargeEvent):
        return CustomerData(
            event.billing_email or event.receipt_email,
            first_name_from(event.billing_name),
        )

    if isinstance(event, CheckoutSessionEvent):
        return CustomerData(event.customer_email, first_name_from(event.customer_name))

    if isinstance(event, InvoiceEvent):
        return CustomerData(event.customer_email, None)

    if isinstance(event, SubscriptionEvent):
        return await _extract_subscription_customer(event, payments)

    if isinstance(event, UnknownEvent):
        logger.info(f"Attempting to extract data from unknown event type: {event.type}")
        data = event.data
        email = (
            _get(data, "receipt_email")
            or _get(data, "customer_email")
            or _get(data, "billing_details", "email")
            or _get(data, "customer_details", "email")
            or _get(data, "metadata", "email")
        )
        first_name = (
            first_name_from(_get(data, "billing_details", "name"))
            or first_name_from(_get(data, "customer_details", "name"))
            or _get(data, "metadata", "firstName")
        )
        return CustomerData(email, first_name)

    raise TypeError(f"Unhandled event variant: {type(event).__name__}")


async def _extract_subscription_customer(
    event: SubscriptionEvent, payments: PaymentClient
) -> CustomerData:
    if not event.customer_id:
        return CustomerData(
            event.customer_email or event.metadata_email,
            event.metadata_first_name,
        )

    logger.info(f"Subscription event for customer {event.customer_id}, fetching details")
    try:
        customer = await asyncio.to_thread(payments.retrieve_customer, event.customer_id)
    except Exception as e:
        logger.error(f"Failed to fetch customer {event.customer_id} from Stripe: {e}")
        return CustomerData(event.metadata_email, event.metadata_first_name)

    if customer.deleted or not customer.email:
        logger.warning(f"Customer {event.customer_id} is deleted or has no email")
        return CustomerData()
    return CustomerData(customer.email, first_name_from(customer.name))


def resolve_action(event: StripeEvent) -> WebhookAction:
    """Decide what an event does to the stored account."""
    if event.type in (
        StripeEventType.PAYMENT_INTENT_CREATED,
        StripeEventType.CHARGE_UPDATED,
    ):
        return WebhookAction.NONE

    if event.type == StripeEventType.SUBSCRIPTION_DELETED:
        return WebhookAction.REVOKE_PRO

    # Other subscription lifecycle events follow the subscription status
    if isinstance(event, SubscriptionEvent):
        try:
            status = SubscriptionStatus(event.status)
        except ValueError:
            return WebhookAction.NONE
        if status.grants_pro():
            return WebhookAction.GRANT_PRO
        if status.revokes_pro():
            return WebhookAction.REVOKE_PRO
        return WebhookAction.NONE

    # Successful payments and unrecognised kinds both grant pro
    return WebhookAction.GRANT_PRO
