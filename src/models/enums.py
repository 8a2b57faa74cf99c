"""Enums for Stripe event handling."""

from enum import Enum


class StripeEventType(str, Enum):
    """Stripe event kinds with explicit handling."""

    PAYMENT_INTENT_SUCCEEDED = "payment_intent.succeeded"
    PAYMENT_INTENT_CREATED = "payment_intent.created"
    CHARGE_SUCCEEDED = "charge.succeeded"
    CHARGE_UPDATED = "charge.updated"
    CHECKOUT_SESSION_COMPLETED = "checkout.session.completed"
    INVOICE_PAYMENT_SUCCEEDED = "invoice.payment_succeeded"
    SUBSCRIPTION_UPDATED = "customer.subscription.updated"
    SUBSCRIPTION_DELETED = "customer.subscription.deleted"


class WebhookAction(str, Enum):
    """What a webhook event does to the stored account."""

    GRANT_PRO = "grant_pro"
    REVOKE_PRO = "revoke_pro"
    NONE = "none"

    def changes_account(self) -> bool:
        """Check if this action writes to the store."""
        return self != WebhookAction.NONE


class SubscriptionStatus(str, Enum):
    """Stripe subscription statuses relevant to pro entitlement."""

    ACTIVE = "active"
    TRIALING = "trialing"
    PAST_DUE = "past_due"
    CANCELED = "canceled"
    UNPAID = "unpaid"
    INCOMPLETE = "incomplete"
    INCOMPLETE_EXPIRED = "incomplete_expired"
    PAUSED = "paused"

    def grants_pro(self) -> bool:
        """Check if a subscription in this status entitles the user to pro."""
        return self in (SubscriptionStatus.ACTIVE, SubscriptionStatus.TRIALING)

    def revokes_pro(self) -> bool:
        """Check if a subscription in this status has ended for good."""
        return self in (
            SubscriptionStatus.CANCELED,
            SubscriptionStatus.UNPAID,
            SubscriptionStatus.INCOMPLETE_EXPIRED,
        )
