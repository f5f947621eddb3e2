"""Stripe payment integration.

Provides the payment-processor operations the resale flow needs: destination
charges with an application fee, Express connected accounts for sellers,
onboarding links, and webhook verification.

Runs in simulated mode when no secret key is provided (local development).
Webhook signature verification is never simulated: it only needs the
endpoint's webhook secret, and a missing secret rejects the delivery.
"""

import json
import logging
import uuid
from datetime import datetime, timezone

import stripe

from resale.core.exceptions import WebhookVerificationError

logger = logging.getLogger(__name__)


class StripePaymentService:
    """Stripe payment operations with real SDK support."""

    def __init__(self, secret_key: str = "", webhook_tolerance: int = 300):
        self.secret_key = secret_key
        self.webhook_tolerance = webhook_tolerance
        self._simulated = not secret_key
        if not self._simulated:
            logger.info(
                "Stripe SDK configured (mode=%s)",
                "test" if secret_key.startswith("sk_test_") else "live",
            )

    async def create_payment_intent(
        self,
        amount_cents: int,
        currency: str,
        application_fee_cents: int,
        destination_account: str,
        metadata: dict | None = None,
    ) -> dict:
        """Create a destination-charge PaymentIntent (or simulate one)."""
        if self._simulated:
            intent_id = f"pi_sim_{uuid.uuid4().hex[:16]}"
            return {
                "id": intent_id,
                "client_secret": f"{intent_id}_secret_sim",
                "amount": amount_cents,
                "currency": currency,
                "application_fee_amount": application_fee_cents,
                "destination": destination_account,
                "status": "requires_payment_method",
                "metadata": metadata or {},
                "created": int(datetime.now(timezone.utc).timestamp()),
                "simulated": True,
            }

        intent = stripe.PaymentIntent.create(
            amount=amount_cents,
            currency=currency,
            application_fee_amount=application_fee_cents,
            transfer_data={"destination": destination_account},
            metadata=metadata or {},
            automatic_payment_methods={"enabled": True},
            api_key=self.secret_key,
        )
        return {
            "id": intent.id,
            "client_secret": intent.client_secret,
            "amount": intent.amount,
            "currency": intent.currency,
            "application_fee_amount": application_fee_cents,
            "destination": destination_account,
            "status": intent.status,
            "metadata": metadata or {},
            "created": intent.created,
            "simulated": False,
        }

    async def retrieve_payment_intent(self, intent_id: str) -> dict:
        """Fetch an existing PaymentIntent so a retried purchase can resume it."""
        if self._simulated:
            return {
                "id": intent_id,
                "client_secret": f"{intent_id}_secret_sim",
                "status": "requires_payment_method",
                "simulated": True,
            }

        intent = stripe.PaymentIntent.retrieve(intent_id, api_key=self.secret_key)
        return {
            "id": intent.id,
            "client_secret": intent.client_secret,
            "status": intent.status,
            "simulated": False,
        }

    async def cancel_payment_intent(self, intent_id: str) -> dict:
        """Cancel an abandoned PaymentIntent so it can no longer be confirmed."""
        if self._simulated:
            return {"id": intent_id, "status": "canceled", "simulated": True}

        intent = stripe.PaymentIntent.cancel(
            intent_id, cancellation_reason="abandoned", api_key=self.secret_key,
        )
        logger.info("PaymentIntent %s canceled", intent_id)
        return {"id": intent.id, "status": intent.status, "simulated": False}

    async def create_connected_account(self, email: str, country: str = "GB") -> dict:
        """Create a Stripe Connect Express account for a seller."""
        if self._simulated:
            return {
                "id": f"acct_sim_{uuid.uuid4().hex[:12]}",
                "email": email,
                "country": country,
                "capabilities": {"transfers": "inactive"},
                "simulated": True,
            }

        account = stripe.Account.create(
            type="express",
            email=email,
            country=country,
            capabilities={
                "transfers": {"requested": True},
            },
            api_key=self.secret_key,
        )
        return {
            "id": account.id,
            "email": email,
            "country": country,
            "capabilities": {"transfers": getattr(account.capabilities, "transfers", None)},
            "simulated": False,
        }

    async def create_account_link(self, account_id: str, refresh_url: str, return_url: str) -> dict:
        """Create a single-use hosted onboarding link for a connected account."""
        if self._simulated:
            return {
                "url": f"https://connect.stripe.com/setup/sim/{account_id}/{uuid.uuid4().hex[:8]}",
                "account": account_id,
                "simulated": True,
            }

        link = stripe.AccountLink.create(
            account=account_id,
            refresh_url=refresh_url,
            return_url=return_url,
            type="account_onboarding",
            api_key=self.secret_key,
        )
        return {
            "url": link.url,
            "account": account_id,
            "expires_at": link.expires_at,
            "simulated": False,
        }

    async def retrieve_account(self, account_id: str) -> dict:
        """Retrieve a connected account's capability state."""
        if self._simulated:
            return {
                "id": account_id,
                "capabilities": {"transfers": "active"},
                "simulated": True,
            }

        account = stripe.Account.retrieve(account_id, api_key=self.secret_key)
        return {
            "id": account.id,
            "capabilities": {"transfers": getattr(account.capabilities, "transfers", None)},
            "simulated": False,
        }

    def construct_webhook_event(self, payload: bytes, sig_header: str | None, webhook_secret: str) -> dict:
        """Verify a Stripe webhook signature and return the decoded event.

        Raises WebhookVerificationError on a missing secret, a missing or
        invalid signature, or a body that is not a JSON object.
        """
        if not webhook_secret:
            raise WebhookVerificationError("Webhook secret is not configured")
        if not sig_header:
            raise WebhookVerificationError("Missing Stripe-Signature header")
        try:
            body = payload.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise WebhookVerificationError("Payload is not valid UTF-8") from exc

        try:
            stripe.WebhookSignature.verify_header(
                body, sig_header, webhook_secret, self.webhook_tolerance,
            )
        except stripe.SignatureVerificationError as exc:
            raise WebhookVerificationError(f"Invalid Stripe signature: {exc}") from exc

        try:
            event = json.loads(body)
        except ValueError as exc:
            raise WebhookVerificationError("Invalid JSON payload") from exc
        if not isinstance(event, dict):
            raise WebhookVerificationError("Webhook payload is not an event object")
        return event
