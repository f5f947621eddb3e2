"""Settlement of payment intents from Stripe webhook events.

Per payment intent:

    pending (transaction exists)
        ├── payment_intent.succeeded      → succeeded: ticket sold, transaction deleted
        └── payment_intent.payment_failed → failed: transaction archived and deleted

``account.updated`` flips a seller's payout eligibility. Every other event
type is acknowledged and ignored.

The success path has several side effects that cannot commit together, so
each step is safe to repeat: the buyer and seller emails are recorded on the
transaction as they go out and are skipped on re-delivery, marking the
ticket sold is a merge, and the transaction is deleted last. A delivery that
arrives after the transaction is gone does nothing.
"""

import asyncio
import logging
from dataclasses import dataclass

from resale.schemas.documents import Transaction
from resale.services.identity_service import IdentityProvider
from resale.services.notification_service import FulfillmentNotifier
from resale.services.store_adapter import DocumentRepository
from resale.storage.artifacts import ArtifactStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WebhookOutcome:
    status: str  # ok | not_found | ignored
    detail: str = ""

    @property
    def http_status(self) -> int:
        return 404 if self.status == "not_found" else 200

    def as_dict(self) -> dict:
        body = {"status": self.status}
        if self.detail:
            body["detail"] = self.detail
        return body

    @classmethod
    def ok(cls, detail: str = "") -> "WebhookOutcome":
        return cls("ok", detail)

    @classmethod
    def not_found(cls, detail: str) -> "WebhookOutcome":
        logger.info("Webhook target not found: %s", detail)
        return cls("not_found", detail)

    @classmethod
    def ignored(cls, detail: str = "") -> "WebhookOutcome":
        return cls("ignored", detail)


class SettlementService:
    def __init__(
        self,
        documents: DocumentRepository,
        artifacts: ArtifactStore,
        identity: IdentityProvider,
        notifier: FulfillmentNotifier,
    ):
        self._documents = documents
        self._artifacts = artifacts
        self._identity = identity
        self._notifier = notifier
        self._handlers = {
            "payment_intent.succeeded": self.handle_payment_succeeded,
            "payment_intent.payment_failed": self.handle_payment_failed,
            "account.updated": self.handle_account_updated,
        }

    async def handle_event(self, event: dict) -> WebhookOutcome:
        """Dispatch a verified Stripe event to its handler."""
        event_type = event.get("type", "")
        data = event.get("data")
        obj = data.get("object") if isinstance(data, dict) else None
        handler = self._handlers.get(event_type)
        if handler is None:
            logger.debug("Unhandled Stripe event type: %s", event_type)
            return WebhookOutcome.ignored(event_type)
        if not isinstance(obj, dict):
            logger.warning("Stripe event %s (%s) has no object payload", event_type, event.get("id", ""))
            return WebhookOutcome.ignored(f"{event_type} without object")
        logger.info("Stripe webhook %s (%s) for %s", event_type, event.get("id", ""), obj.get("id", ""))
        return await handler(obj)

    # ── payment_intent.succeeded ──

    async def handle_payment_succeeded(self, intent: dict) -> WebhookOutcome:
        intent_id = intent.get("id", "")
        tx = await self._documents.get_transaction(intent_id)
        if tx is None:
            return WebhookOutcome.not_found(f"Transaction {intent_id} not found")

        buyer = await self._identity.get_user(tx.buyer_id)
        if buyer is None:
            return WebhookOutcome.not_found(f"Buyer {tx.buyer_id} not found")
        event = await self._documents.get_event(tx.event_id)
        if event is None:
            return WebhookOutcome.not_found(f"Event {tx.event_id} not found")
        ticket = await self._documents.get_ticket(tx.event_id, tx.ticket_id)
        if ticket is None:
            return WebhookOutcome.not_found(f"Ticket {tx.ticket_id} not found")
        artifact = None
        if ticket.artifact_ref:
            artifact = await asyncio.to_thread(self._artifacts.get, ticket.artifact_ref)
        if artifact is None:
            return WebhookOutcome.not_found(f"Artifact for ticket {ticket.id} not found")

        if not tx.buyer_notified:
            await self._notifier.send_buyer_ticket(buyer, event, ticket, artifact)
            await self._documents.mark_transaction(intent_id, buyer_notified=True)

        if not tx.seller_notified:
            seller = await self._identity.get_user(ticket.seller_id) if ticket.seller_id else None
            if seller is not None:
                await self._notifier.send_seller_confirmation(seller, event, ticket)
                await self._documents.mark_transaction(intent_id, seller_notified=True)
            else:
                logger.info("Seller %s not resolvable; no sale confirmation sent", ticket.seller_id)

        if ticket.sold:
            logger.warning("Ticket %s/%s was already marked sold", tx.event_id, tx.ticket_id)
        else:
            await self._documents.mark_ticket_sold(tx.event_id, tx.ticket_id)

        await self._finish(tx)
        logger.info("Payment %s settled: ticket %s/%s sold", intent_id, tx.event_id, tx.ticket_id)
        return WebhookOutcome.ok()

    # ── payment_intent.payment_failed ──

    async def handle_payment_failed(self, intent: dict) -> WebhookOutcome:
        intent_id = intent.get("id", "")
        tx = await self._documents.get_transaction(intent_id)
        if tx is None:
            return WebhookOutcome.not_found(f"Transaction {intent_id} not found")

        error = intent.get("last_payment_error") or {}
        message = error.get("message", "") if isinstance(error, dict) else ""
        await self._documents.archive_failed_transaction(tx, message)
        await self._finish(tx)
        logger.warning("Payment %s failed for ticket %s/%s: %s", intent_id, tx.event_id, tx.ticket_id, message)
        return WebhookOutcome.ok()

    # ── account.updated ──

    async def handle_account_updated(self, account: dict) -> WebhookOutcome:
        account_id = account.get("id", "")
        user_id = await self._documents.resolve_account_owner(account_id)
        if user_id is None:
            return WebhookOutcome.not_found(f"Account {account_id} not linked to a user")

        capabilities = account.get("capabilities") or {}
        active = capabilities.get("transfers") == "active"
        if not await self._documents.set_transfers_active(user_id, active):
            return WebhookOutcome.not_found(f"Seller account for user {user_id} not found")
        logger.info("Seller %s transfers_active=%s (account %s)", user_id, active, account_id)
        return WebhookOutcome.ok()

    async def _finish(self, tx: Transaction) -> None:
        # The hold outlives the transaction so the ticket never looks free
        # while a transaction for it still exists.
        await self._documents.delete_transaction(tx.payment_intent_id)
        await self._documents.release_ticket_hold(
            tx.event_id, tx.ticket_id,
            payment_intent_id=tx.payment_intent_id, buyer_id=tx.buyer_id,
        )
