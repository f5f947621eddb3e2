"""Purchase intents and the per-ticket hold.

A ticket has at most one live transaction. The hold document
``ticketHolds/{event}:{ticket}`` is taken with a conditional create before
the processor is called, and is handled on later attempts as follows:

    same buyer, intent recorded     resume: the existing intent is returned
    same buyer, nothing recorded    take over: stale intent canceled, hold re-taken
    other buyer, hold within TTL    409
    other buyer, hold past TTL      expire: intent canceled, transaction archived
"""

import logging
from datetime import datetime, timedelta, timezone

from resale.core.exceptions import (
    MissingArgumentError,
    SellerNotOnboardedError,
    SellerTransfersInactiveError,
    TicketAlreadySoldError,
    TicketNotFoundError,
    TicketOnHoldError,
    TicketPriceMissingError,
    TicketSellerMissingError,
    UnauthorizedError,
)
from resale.schemas.documents import TicketHold, Transaction
from resale.services.fee_service import FeePolicy
from resale.services.store_adapter import DocumentRepository
from resale.services.stripe_service import StripePaymentService

logger = logging.getLogger(__name__)

HOLD_EXPIRED_MESSAGE = "Payment intent expired before payment"


class PurchaseService:
    def __init__(
        self,
        documents: DocumentRepository,
        processor: StripePaymentService,
        fee_policy: FeePolicy,
        currency: str = "gbp",
        hold_ttl_seconds: int = 1800,
    ):
        self._documents = documents
        self._processor = processor
        self._fee_policy = fee_policy
        self._currency = currency
        self._hold_ttl = timedelta(seconds=hold_ttl_seconds)

    async def create_purchase_intent(
        self, caller_id: str | None, event_id: str | None, ticket_id: str | None,
    ) -> dict:
        """Price a ticket, open a payment intent for it and record the in-flight transaction.

        Every precondition is checked before the ticket hold or the processor
        call, so a rejected request leaves no trace. A processor or store
        failure after the hold is taken releases the hold and propagates.
        A retry by the buyer who holds the ticket returns the same intent.
        """
        if not caller_id:
            raise UnauthorizedError("Sign in to buy a ticket")
        missing = [name for name, value in (("event_id", event_id), ("ticket_id", ticket_id)) if not value]
        if missing:
            raise MissingArgumentError(*missing)

        ticket = await self._documents.get_ticket(event_id, ticket_id)
        if ticket is None:
            raise TicketNotFoundError(event_id, ticket_id)
        if ticket.price is None:
            raise TicketPriceMissingError(ticket_id)
        if not ticket.seller_id:
            raise TicketSellerMissingError(ticket_id)

        account = await self._documents.get_seller_account(ticket.seller_id)
        if account is None:
            raise SellerNotOnboardedError(ticket.seller_id)
        if not account.transfers_active:
            raise SellerTransfersInactiveError(ticket.seller_id)
        if ticket.sold:
            raise TicketAlreadySoldError(ticket_id)

        quote = self._fee_policy.quote(ticket.price)

        if not await self._documents.acquire_ticket_hold(event_id, ticket_id, caller_id):
            resumed = await self._resolve_existing_hold(caller_id, event_id, ticket_id)
            if resumed is not None:
                return resumed

        try:
            intent = await self._processor.create_payment_intent(
                amount_cents=quote.total_cents,
                currency=self._currency,
                application_fee_cents=quote.markup_cents,
                destination_account=account.processor_account_id,
                metadata={"event_id": event_id, "ticket_id": ticket_id, "buyer_id": caller_id},
            )
        except Exception:
            logger.exception("Payment intent creation failed for ticket %s", ticket_id)
            await self._documents.release_ticket_hold(
                event_id, ticket_id, payment_intent_id=None, buyer_id=caller_id,
            )
            raise

        try:
            await self._documents.attach_hold_intent(event_id, ticket_id, intent["id"])
            await self._documents.create_transaction(Transaction(
                payment_intent_id=intent["id"],
                buyer_id=caller_id,
                event_id=event_id,
                ticket_id=ticket_id,
                amount_cents=quote.total_cents,
                application_fee_cents=quote.markup_cents,
            ))
        except Exception:
            logger.exception("Recording payment intent %s failed for ticket %s", intent["id"], ticket_id)
            await self._documents.release_ticket_hold(
                event_id, ticket_id, payment_intent_id=intent["id"], buyer_id=caller_id,
            )
            raise

        logger.info(
            "Payment intent %s opened for ticket %s/%s: %d (fee %d)",
            intent["id"], event_id, ticket_id, quote.total_cents, quote.markup_cents,
        )
        return self._result(intent, quote.total_cents, quote.markup_cents)

    async def _resolve_existing_hold(self, caller_id: str, event_id: str, ticket_id: str) -> dict | None:
        """Handle a ticket that is already held.

        Returns the resumed intent for the holding buyer, or None once the
        caller owns a fresh hold. Raises ``TicketOnHoldError`` otherwise.
        """
        hold = await self._documents.get_ticket_hold(event_id, ticket_id)
        if hold is not None:
            if hold.buyer_id == caller_id and hold.payment_intent_id:
                tx = await self._documents.get_transaction(hold.payment_intent_id)
                if tx is not None:
                    intent = await self._processor.retrieve_payment_intent(tx.payment_intent_id)
                    logger.info("Resuming payment intent %s for buyer %s", tx.payment_intent_id, caller_id)
                    return self._result(intent, tx.amount_cents, tx.application_fee_cents)
            if hold.buyer_id != caller_id and not self._expired(hold):
                raise TicketOnHoldError(ticket_id)
            await self._expire_hold(hold)

        if not await self._documents.acquire_ticket_hold(event_id, ticket_id, caller_id):
            raise TicketOnHoldError(ticket_id)
        return None

    def _expired(self, hold: TicketHold) -> bool:
        if hold.created_at is None:
            return True
        return datetime.now(timezone.utc) - hold.created_at > self._hold_ttl

    async def _expire_hold(self, hold: TicketHold) -> None:
        if hold.payment_intent_id:
            # Raises if the intent can no longer be canceled (e.g. it succeeded);
            # the hold then stays until the settlement webhook arrives.
            await self._processor.cancel_payment_intent(hold.payment_intent_id)
            tx = await self._documents.get_transaction(hold.payment_intent_id)
            if tx is not None:
                await self._documents.archive_failed_transaction(tx, HOLD_EXPIRED_MESSAGE)
                await self._documents.delete_transaction(tx.payment_intent_id)
        await self._documents.release_ticket_hold(
            hold.event_id, hold.ticket_id,
            payment_intent_id=hold.payment_intent_id, buyer_id=hold.buyer_id,
        )
        logger.info(
            "Hold on %s/%s by %s released (intent %s)",
            hold.event_id, hold.ticket_id, hold.buyer_id, hold.payment_intent_id,
        )

    def _result(self, intent: dict, amount_cents: int, fee_cents: int) -> dict:
        return {
            "client_secret": intent["client_secret"],
            "payment_intent_id": intent["id"],
            "amount_cents": amount_cents,
            "application_fee_cents": fee_cents,
            "currency": self._currency,
        }
