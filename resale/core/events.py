"""In-process event subscription.

Named events with typed payloads replace implicit "on document write"
triggers. Handlers run in subscription order and are awaited by the
publisher; a handler error propagates to whoever published.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

logger = logging.getLogger(__name__)

TICKET_PRICE_WRITTEN = "ticket.price_written"

Handler = Callable[[Any], Awaitable[Any]]


@dataclass(frozen=True)
class TicketPriceWritten:
    event_id: str
    ticket_id: str
    price: float | None


class EventBus:
    def __init__(self):
        self._handlers: dict[str, list[Handler]] = defaultdict(list)

    def subscribe(self, name: str, handler: Handler) -> None:
        self._handlers[name].append(handler)

    def handlers(self, name: str) -> list[Handler]:
        return list(self._handlers.get(name, []))

    async def publish(self, name: str, payload: Any) -> int:
        """Deliver ``payload`` to every handler of ``name``. Returns the handler count."""
        handlers = self.handlers(name)
        if not handlers:
            logger.debug("No subscribers for %s", name)
        for handler in handlers:
            await handler(payload)
        return len(handlers)
