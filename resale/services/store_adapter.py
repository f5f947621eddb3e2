"""Typed access to the resale documents.

Collection layout:

    events/{event_id}
    events/{event_id}/tickets/{ticket_id}
    transactions/{payment_intent_id}
    failedTransactions/{payment_intent_id}
    ticketHolds/{event_id}:{ticket_id}
    users/{user_id}
    sellerAccounts/{user_id}
    processorAccounts/{account_id}
    identities/{uid}
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from resale.core.events import TICKET_PRICE_WRITTEN, EventBus, TicketPriceWritten
from resale.core.exceptions import DocumentDecodeError, DocumentExistsError
from resale.schemas.documents import (
    AccountIndex,
    Event,
    FailedTransaction,
    Identity,
    PayableUser,
    SellerAccount,
    Ticket,
    TicketHold,
    Transaction,
)
from resale.storage.documents import DocumentStore

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)


def event_path(event_id: str) -> str:
    return f"events/{event_id}"


def ticket_path(event_id: str, ticket_id: str) -> str:
    return f"events/{event_id}/tickets/{ticket_id}"


def transaction_path(payment_intent_id: str) -> str:
    return f"transactions/{payment_intent_id}"


def failed_transaction_path(payment_intent_id: str) -> str:
    return f"failedTransactions/{payment_intent_id}"


def hold_path(event_id: str, ticket_id: str) -> str:
    return f"ticketHolds/{event_id}:{ticket_id}"


def user_path(user_id: str) -> str:
    return f"users/{user_id}"


def seller_account_path(user_id: str) -> str:
    return f"sellerAccounts/{user_id}"


def account_index_path(account_id: str) -> str:
    return f"processorAccounts/{account_id}"


def identity_path(uid: str) -> str:
    return f"identities/{uid}"


def _decode(model: type[M], path: str, data: dict[str, Any]) -> M:
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        raise DocumentDecodeError(path, str(exc)) from exc


def _encode(doc: BaseModel, exclude: set[str] | None = None) -> dict[str, Any]:
    return doc.model_dump(mode="json", exclude=exclude)


class DocumentRepository:
    """Entity-level reads and writes over a ``DocumentStore``.

    Ticket writes that carry a price publish ``ticket.price_written`` on the
    event bus after the write succeeds.
    """

    def __init__(self, store: DocumentStore, bus: EventBus | None = None):
        self.store = store
        self.bus = bus or EventBus()

    async def _load(self, model: type[M], path: str, **keys: str) -> M | None:
        data = await self.store.get(path)
        if data is None:
            return None
        return _decode(model, path, {**data, **keys})

    # ── Events ──

    async def get_event(self, event_id: str) -> Event | None:
        return await self._load(Event, event_path(event_id), id=event_id)

    async def merge_event_prices(
        self,
        event_id: str,
        price_window: list[float],
        average_price: float,
        previous_average: float,
    ) -> None:
        await self.store.merge(event_path(event_id), {
            "price_window": price_window,
            "average_price": average_price,
            "previous_average": previous_average,
        })

    # ── Tickets ──

    async def get_ticket(self, event_id: str, ticket_id: str) -> Ticket | None:
        return await self._load(
            Ticket, ticket_path(event_id, ticket_id), id=ticket_id, event_id=event_id,
        )

    async def create_ticket(self, ticket: Ticket) -> Ticket:
        await self.store.create(
            ticket_path(ticket.event_id, ticket.id),
            _encode(ticket, exclude={"id", "event_id"}),
        )
        await self.bus.publish(
            TICKET_PRICE_WRITTEN,
            TicketPriceWritten(event_id=ticket.event_id, ticket_id=ticket.id, price=ticket.price),
        )
        return ticket

    async def mark_ticket_sold(self, event_id: str, ticket_id: str) -> None:
        await self.store.merge(ticket_path(event_id, ticket_id), {"sold": True})

    # ── Transactions ──

    async def get_transaction(self, payment_intent_id: str) -> Transaction | None:
        return await self._load(
            Transaction, transaction_path(payment_intent_id), payment_intent_id=payment_intent_id,
        )

    async def create_transaction(self, tx: Transaction) -> Transaction:
        if tx.created_at is None:
            tx = tx.model_copy(update={"created_at": datetime.now(timezone.utc)})
        await self.store.create(transaction_path(tx.payment_intent_id), _encode(tx))
        return tx

    async def mark_transaction(self, payment_intent_id: str, **flags: bool) -> None:
        await self.store.merge(transaction_path(payment_intent_id), flags)

    async def delete_transaction(self, payment_intent_id: str) -> bool:
        return await self.store.delete(transaction_path(payment_intent_id))

    async def archive_failed_transaction(self, tx: Transaction, failure_message: str) -> FailedTransaction:
        failed = FailedTransaction(
            **tx.model_dump(),
            failure_message=failure_message,
            failed_at=datetime.now(timezone.utc),
        )
        await self.store.set(failed_transaction_path(tx.payment_intent_id), _encode(failed))
        return failed

    async def get_failed_transaction(self, payment_intent_id: str) -> FailedTransaction | None:
        return await self._load(
            FailedTransaction,
            failed_transaction_path(payment_intent_id),
            payment_intent_id=payment_intent_id,
        )

    # ── Ticket holds (one live transaction per ticket) ──

    async def acquire_ticket_hold(self, event_id: str, ticket_id: str, buyer_id: str) -> bool:
        hold = TicketHold(
            event_id=event_id,
            ticket_id=ticket_id,
            buyer_id=buyer_id,
            created_at=datetime.now(timezone.utc),
        )
        try:
            await self.store.create(hold_path(event_id, ticket_id), _encode(hold))
        except DocumentExistsError:
            return False
        return True

    async def attach_hold_intent(self, event_id: str, ticket_id: str, payment_intent_id: str) -> None:
        await self.store.merge(hold_path(event_id, ticket_id), {"payment_intent_id": payment_intent_id})

    async def get_ticket_hold(self, event_id: str, ticket_id: str) -> TicketHold | None:
        return await self._load(TicketHold, hold_path(event_id, ticket_id))

    async def release_ticket_hold(
        self,
        event_id: str,
        ticket_id: str,
        *,
        payment_intent_id: str | None,
        buyer_id: str,
    ) -> bool:
        """Delete the hold only if it still belongs to the caller.

        A hold with an attached intent belongs to that intent; before an
        intent is attached it belongs to the buyer who took it.
        """
        hold = await self.get_ticket_hold(event_id, ticket_id)
        if hold is None:
            return False
        if hold.payment_intent_id is not None:
            owned = hold.payment_intent_id == payment_intent_id
        else:
            owned = hold.buyer_id == buyer_id
        if not owned:
            logger.warning(
                "Hold on %s/%s belongs to %s, not %s; left in place",
                event_id, ticket_id, hold.payment_intent_id or hold.buyer_id,
                payment_intent_id or buyer_id,
            )
            return False
        return await self.store.delete(hold_path(event_id, ticket_id))

    # ── Sellers and payable users ──

    async def get_seller_account(self, user_id: str) -> SellerAccount | None:
        return await self._load(SellerAccount, seller_account_path(user_id), user_id=user_id)

    async def create_seller_account(self, account: SellerAccount) -> SellerAccount:
        await self.store.set(seller_account_path(account.user_id), _encode(account))
        await self.store.set(
            account_index_path(account.processor_account_id),
            _encode(AccountIndex(account_id=account.processor_account_id, user_id=account.user_id)),
        )
        return account

    async def set_transfers_active(self, user_id: str, active: bool) -> bool:
        """Merge the payout flag into both seller records. Returns False if the seller is unknown."""
        if await self.store.get(seller_account_path(user_id)) is None:
            return False
        await self.store.merge(seller_account_path(user_id), {"transfers_active": active})
        if await self.store.get(user_path(user_id)) is not None:
            await self.store.merge(user_path(user_id), {"payable": active})
        return True

    async def resolve_account_owner(self, account_id: str) -> str | None:
        index = await self._load(AccountIndex, account_index_path(account_id), account_id=account_id)
        return index.user_id if index else None

    async def get_payable_user(self, user_id: str) -> PayableUser | None:
        return await self._load(PayableUser, user_path(user_id), user_id=user_id)

    async def put_payable_user(self, user: PayableUser) -> PayableUser:
        await self.store.set(user_path(user.user_id), _encode(user))
        return user

    # ── Identities ──

    async def get_identity(self, uid: str) -> Identity | None:
        return await self._load(Identity, identity_path(uid), uid=uid)

    async def put_identity(self, identity: Identity) -> Identity:
        await self.store.set(identity_path(identity.uid), _encode(identity))
        return identity
