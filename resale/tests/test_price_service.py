"""Rolling event price average: window bounds, mean and previous average."""

import random

import pytest

from resale.core.events import TICKET_PRICE_WRITTEN, TicketPriceWritten
from resale.services.price_service import roll_window


class TestRollWindow:
    def test_appends_when_not_full(self):
        assert roll_window([10.0, 12.0], 14.0) == [10.0, 12.0, 14.0]

    def test_evicts_oldest_when_full(self):
        assert roll_window([10, 12, 14, 16, 18], 20) == [12, 14, 16, 18, 20]

    def test_empty_window(self):
        assert roll_window([], 7.5) == [7.5]

    def test_does_not_mutate_input(self):
        window = [1.0, 2.0, 3.0, 4.0, 5.0]
        roll_window(window, 6.0)
        assert window == [1.0, 2.0, 3.0, 4.0, 5.0]


class TestUpdateAverage:
    async def test_full_window_scenario(self, services, seed):
        event = await seed.event(prices=[10, 12, 14, 16, 18])

        summary = await services.prices.update_average(event.id, 20)

        stored = await services.documents.get_event(event.id)
        assert stored.price_window == [12, 14, 16, 18, 20]
        assert stored.average_price == pytest.approx(16.0)
        assert stored.previous_average == pytest.approx(14.0)
        assert summary.average_price == pytest.approx(16.0)
        assert summary.previous_average == pytest.approx(14.0)

    async def test_first_price_on_new_event(self, services, seed):
        event = await seed.event()

        summary = await services.prices.update_average(event.id, 42.0)

        stored = await services.documents.get_event(event.id)
        assert stored.price_window == [42.0]
        assert stored.average_price == 42.0
        assert stored.previous_average == 0.0
        assert summary.previous_average == 0.0

    async def test_partial_window_mean(self, services, seed):
        event = await seed.event(prices=[10, 20])

        await services.prices.update_average(event.id, 30)

        stored = await services.documents.get_event(event.id)
        assert stored.price_window == [10, 20, 30]
        assert stored.average_price == pytest.approx(20.0)
        assert stored.previous_average == pytest.approx(15.0)

    async def test_none_price_is_noop(self, services, seed, store):
        event = await seed.event(prices=[10])
        store.calls.clear()

        assert await services.prices.update_average(event.id, None) is None
        assert store.calls == []

    async def test_unknown_event_writes_nothing(self, services, store):
        assert await services.prices.update_average("ev_missing", 10.0) is None
        assert store.writes() == []

    async def test_merge_leaves_other_event_fields(self, services, seed, store):
        event = await seed.event(name="Arena Night", prices=[5])
        await store.merge(f"events/{event.id}", {"venue": "Main Arena"})

        await services.prices.update_average(event.id, 15)

        raw = await store.get(f"events/{event.id}")
        assert raw["name"] == "Arena Night"
        assert raw["venue"] == "Main Arena"

    async def test_window_holds_latest_five_in_order(self, services, seed):
        event = await seed.event()
        rng = random.Random(7)
        written = []

        for _ in range(23):
            price = round(rng.uniform(5, 200), 2)
            before = await services.documents.get_event(event.id)
            await services.prices.update_average(event.id, price)
            written.append(price)

            after = await services.documents.get_event(event.id)
            assert len(after.price_window) <= 5
            assert after.price_window == written[-5:]
            assert after.average_price == pytest.approx(sum(after.price_window) / len(after.price_window))
            assert after.previous_average == pytest.approx(before.average_price)


class TestPriceSubscription:
    async def test_aggregator_subscribed_to_price_writes(self, services):
        handlers = services.bus.handlers(TICKET_PRICE_WRITTEN)
        assert services.prices.on_ticket_price_written in handlers

    async def test_published_price_write_updates_event(self, services, seed):
        event = await seed.event(prices=[100])

        await services.bus.publish(
            TICKET_PRICE_WRITTEN,
            TicketPriceWritten(event_id=event.id, ticket_id="tk_1", price=50.0),
        )

        stored = await services.documents.get_event(event.id)
        assert stored.price_window == [100, 50]
        assert stored.average_price == pytest.approx(75.0)

    async def test_marking_sold_does_not_count_price(self, services, seed):
        seller = await seed.seller()
        event = await seed.event(prices=[40])
        ticket = await seed.ticket(event.id, seller.user_id, price=40)

        await services.documents.mark_ticket_sold(event.id, ticket.id)

        stored = await services.documents.get_event(event.id)
        assert stored.price_window == [40]
