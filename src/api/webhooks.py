"""Stripe webhook endpoint and the endpoints backing its fallback chain."""

import logging
from typing import Annotated, Any

from fastapi import APIRouter, Depends, Header, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from src.api.dependencies import (
    get_email_log,
    get_payment_client,
    get_user_store,
    verify_internal_secret,
)
from src.config import Settings, get_settings
from src.models.enums import WebhookAction
from src.schemas.auth import UserSummary
from src.schemas.webhook import DirectInsertRequest, EmailLogResponse, WebhookAck
from src.services.email_log import EmailLog
from src.services.payment import InvalidSignatureError, PaymentClient
from src.services.persistence import PersistRequest, build_grant_chain, build_revoke_chain
from src.services.user_store import UserStore
from src.services.webhook_events import extract_customer, parse_event, resolve_action

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["webhooks"])


def _reject(error: str) -> JSONResponse:
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"error": error})


@router.post("/webhook/stripe", response_model=WebhookAck)
async def stripe_webhook(
    request: Request,
    payments: Annotated[PaymentClient, Depends(get_payment_client)],
    store: Annotated[UserStore, Depends(get_user_store)],
    email_log: Annotated[EmailLog, Depends(get_email_log)],
    settings: Annotated[Settings, Depends(get_settings)],
    stripe_signature: Annotated[str | None, Header()] = None,
):
    """Handle a Stripe event.

    Requests that fail signature verification are rejected with 400. Once
    verified, the reply is always 200 so Stripe does not retry; processing
    failures are only logged.
    """
    payload = await request.body()
    if not stripe_signature:
        logger.error("Stripe webhook without signature")
        return _reject("Missing signature")

    try:
        event = payments.construct_event(payload, stripe_signature)
    except InvalidSignatureError as e:
        logger.error(f"Stripe webhook signature verification failed: {e}")
        return _reject("Invalid signature")
    except ValueError as e:
        logger.error(f"Failed to parse webhook body: {e}")
        return _reject("Invalid JSON")

    event_type = event.get("type")
    logger.info(f"Received Stripe webhook {event.get('id')} of type {event_type}")

    ack = WebhookAck(event_type=str(event_type) if event_type is not None else None)
    try:
        await _process_event(event, ack, payments, store, email_log, settings)
    except Exception as e:
        logger.error(f"Webhook {event.get('id')} processed with errors: {e}", exc_info=True)
    return ack


async def _process_event(
    event: dict[str, Any],
    ack: WebhookAck,
    payments: PaymentClient,
    store: UserStore,
    email_log: EmailLog,
    settings: Settings,
) -> None:
    """Extract the customer and record the action, filling in ``ack`` as it goes."""
    parsed = parse_event(event)
    customer = await extract_customer(parsed, payments)
    ack.email_extracted = bool(customer.email)
    action = resolve_action(parsed)

    if not customer.email:
        if action.changes_account():
            logger.warning(f"No email found in {parsed.type} event {parsed.object_id}")
        return

    logger.info(f"Extracted email {customer.email} from {parsed.type}")

    if action == WebhookAction.GRANT_PRO:
        chain = build_grant_chain(store, email_log, settings)
        request = PersistRequest.grant(customer.email, parsed.type, customer.first_name)
    elif action == WebhookAction.REVOKE_PRO:
        chain = build_revoke_chain(store, email_log)
        request = PersistRequest.revoke(customer.email, parsed.type)
    else:
        logger.info(f"No account change for {parsed.type} event {parsed.object_id}")
        return

    result = await chain.run(request)
    if result.success:
        logger.info(f"{action.value} for {customer.email} recorded via {result.stage}")
    else:
        logger.error(f"{action.value} for {customer.email} not recorded: {result.reason}")


@router.post("/direct-insert", dependencies=[Depends(verify_internal_secret)])
async def direct_insert(
    body: DirectInsertRequest,
    store: Annotated[UserStore, Depends(get_user_store)],
):
    """Secondary insertion path used when the webhook's own insert fails.

    Only the service itself calls this, with the internal bearer token.
    """
    if not body.email:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"success": False, "error": "Email is required"},
        )

    logger.info(f"Direct insertion attempt for {body.email}")
    try:
        user = store.upsert_pro(body.email, is_pro=body.is_pro)
    except SQLAlchemyError as e:
        logger.error(f"Direct insert failed for {body.email}: {e}", exc_info=True)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"success": False, "error": "Direct insert failed"},
        )

    return {
        "success": True,
        "message": "Email captured successfully",
        "data": UserSummary.model_validate(user).model_dump(by_alias=True),
    }


@router.get("/check-emails", response_model=EmailLogResponse)
async def check_emails(email_log: Annotated[EmailLog, Depends(get_email_log)]):
    """Read back the backup email log."""
    entries = email_log.read()
    if entries is None:
        return EmailLogResponse(message="No emails logged yet")
    return EmailLogResponse(
        message=f"Found {len(entries)} logged emails",
        emails=entries,
        count=len(entries),
    )
