"""Stripe webhook endpoints.

One endpoint per webhook source, each with its own signing secret:

    /webhooks/payments   payment_intent.* events for marketplace charges
    /webhooks/accounts   account.updated events from connected accounts

Signature verification fails closed: a missing secret, missing header, bad
signature or unparseable body answers 500 before any document is touched.
"""

import logging

from fastapi import APIRouter, Depends, Header, Request
from fastapi.responses import JSONResponse

from resale.core.exceptions import WebhookVerificationError
from resale.services.container import ServiceContainer, get_services

router = APIRouter(tags=["webhooks"])
logger = logging.getLogger(__name__)


@router.post("/webhooks/payments")
async def payments_webhook(
    request: Request,
    stripe_signature: str = Header(None, alias="Stripe-Signature"),
    services: ServiceContainer = Depends(get_services),
):
    """Handle Stripe payment intent events."""
    return await _process(
        request, stripe_signature, services.settings.stripe_payments_webhook_secret, services,
    )


@router.post("/webhooks/accounts")
async def accounts_webhook(
    request: Request,
    stripe_signature: str = Header(None, alias="Stripe-Signature"),
    services: ServiceContainer = Depends(get_services),
):
    """Handle Stripe Connect account events."""
    return await _process(
        request, stripe_signature, services.settings.stripe_accounts_webhook_secret, services,
    )


async def _process(
    request: Request,
    stripe_signature: str | None,
    webhook_secret: str,
    services: ServiceContainer,
) -> JSONResponse:
    payload = await request.body()
    try:
        event = services.processor.construct_webhook_event(payload, stripe_signature, webhook_secret)
    except WebhookVerificationError as exc:
        logger.warning("Stripe webhook rejected on %s: %s", request.url.path, exc)
        return JSONResponse(
            status_code=500,
            content={"error": "Webhook verification failed"},
        )

    outcome = await services.settlement.handle_event(event)
    return JSONResponse(status_code=outcome.http_status, content=outcome.as_dict())
