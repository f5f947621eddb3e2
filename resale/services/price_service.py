"""Rolling market price per event.

Each event keeps the last ``PRICE_WINDOW_SIZE`` ticket prices in write order.
A new price evicts the oldest entry once the window is full, and the
displayed average is the plain mean of whatever the window holds.

Re-delivering the same price write counts the price twice; publishers are
expected to deliver each logical write once.
"""

import logging

from resale.core.events import TicketPriceWritten
from resale.schemas.documents import PRICE_WINDOW_SIZE, PriceSummary
from resale.services.store_adapter import DocumentRepository

logger = logging.getLogger(__name__)


def roll_window(window: list[float], new_price: float, size: int = PRICE_WINDOW_SIZE) -> list[float]:
    """Append ``new_price``, dropping the oldest entries so at most ``size`` remain."""
    rolled = list(window) + [float(new_price)]
    return rolled[-size:]


class PriceAggregator:
    def __init__(self, documents: DocumentRepository):
        self._documents = documents

    async def update_average(self, event_id: str, new_price: float | None) -> PriceSummary | None:
        if new_price is None:
            return None

        event = await self._documents.get_event(event_id)
        if event is None:
            logger.warning("Price write for unknown event %s ignored", event_id)
            return None

        previous_average = event.average_price
        window = roll_window(event.price_window, new_price)
        average = sum(window) / len(window)

        await self._documents.merge_event_prices(
            event_id,
            price_window=window,
            average_price=average,
            previous_average=previous_average,
        )
        logger.info(
            "Event %s average %.2f -> %.2f (%d prices)",
            event_id, previous_average, average, len(window),
        )
        return PriceSummary(average_price=average, previous_average=previous_average)

    async def on_ticket_price_written(self, written: TicketPriceWritten) -> PriceSummary | None:
        return await self.update_average(written.event_id, written.price)
