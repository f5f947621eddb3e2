import logging
import math
import uuid
from typing import Any

from resale.core.exceptions import DocumentExistsError, IdentityResolutionError
from resale.schemas.documents import Ticket
from resale.services.identity_service import IdentityProvider
from resale.services.store_adapter import DocumentRepository

logger = logging.getLogger(__name__)


def parse_price(raw: Any) -> float:
    """Parse an uploaded price string; anything unparseable or non-finite lists at 0."""
    try:
        price = float(raw)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(price):
        return 0.0
    return price


class ListingIngestor:
    """Turns an uploaded ticket artifact into an unsold ticket listing."""

    def __init__(self, documents: DocumentRepository, identity: IdentityProvider):
        self._documents = documents
        self._identity = identity

    async def ingest(self, artifact: dict[str, Any]) -> Ticket | None:
        """Create a ticket from an upload-completion notification.

        Returns None when the upload is not a marketplace ticket (no event or
        seller tagged), names an unknown event, or repeats a ticket id that
        is already listed. Raises
        ``IdentityResolutionError`` when the seller cannot be resolved.
        """
        metadata = artifact.get("metadata") or {}
        event_id = metadata.get("event_id")
        seller_id = metadata.get("seller_id")
        if not event_id or not seller_id:
            logger.debug("Upload %s is not a ticket artifact", artifact.get("name"))
            return None

        event = await self._documents.get_event(event_id)
        if event is None:
            logger.info("Upload %s names unknown event %s", artifact.get("name"), event_id)
            return None

        try:
            seller = await self._identity.get_user(seller_id)
        except Exception as exc:
            raise IdentityResolutionError(seller_id, str(exc)) from exc
        if seller is None:
            raise IdentityResolutionError(seller_id)

        ticket = Ticket(
            id=metadata.get("ticket_id") or uuid.uuid4().hex,
            event_id=event_id,
            seller_id=seller_id,
            seller_email=seller.email,
            price=parse_price(metadata.get("price")),
            sold=False,
            artifact_ref=artifact.get("name"),
        )
        try:
            await self._documents.create_ticket(ticket)
        except DocumentExistsError:
            # Storage notifications are delivered at least once.
            logger.info("Ticket %s/%s already listed; duplicate upload notification", event_id, ticket.id)
            return None
        logger.info(
            "Listed ticket %s for event %s at %.2f (seller %s)",
            ticket.id, event_id, ticket.price, seller_id,
        )
        return ticket
