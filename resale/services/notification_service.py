import logging
import posixpath

from resale.schemas.documents import Event, Identity, Ticket
from resale.services.email_service import EmailAttachment, EmailClient, EmailMessage

logger = logging.getLogger(__name__)


def artifact_filename(ticket: Ticket, event: Event) -> str:
    if ticket.artifact_ref:
        name = posixpath.basename(ticket.artifact_ref)
        if name:
            return name
    return f"{event.id}-{ticket.id}.pdf"


class FulfillmentNotifier:
    """Composes and sends the buyer's ticket email and the seller's sale confirmation."""

    def __init__(self, email: EmailClient, sender: str):
        self._email = email
        self._sender = sender

    async def send_buyer_ticket(
        self, buyer: Identity, event: Event, ticket: Ticket, artifact: bytes,
    ) -> dict:
        message = EmailMessage(
            to=buyer.email,
            sender=self._sender,
            subject=f"Your ticket for {event.name}",
            body=(
                f"Hi {buyer.display_name or buyer.email},\n\n"
                f"Thanks for your purchase. Your ticket for {event.name} is attached.\n"
            ),
            attachments=(
                EmailAttachment(content=artifact, filename=artifact_filename(ticket, event)),
            ),
        )
        return await self._email.send(message)

    async def send_seller_confirmation(self, seller: Identity, event: Event, ticket: Ticket) -> dict:
        message = EmailMessage(
            to=seller.email,
            sender=self._sender,
            subject=f"Your ticket for {event.name} has sold",
            body=(
                f"Hi {seller.display_name or seller.email},\n\n"
                f"Your ticket for {event.name} sold for {ticket.price or 0:.2f}. "
                "The payout will be transferred to your connected account.\n"
            ),
        )
        return await self._email.send(message)
