"""Shared test fixtures for the resale test suite.

Every test gets a fresh in-memory document store, a temp-dir artifact store,
a simulated Stripe service and an email outbox, wired through the same
``build_container`` the app uses at startup.
"""

import hashlib
import hmac
import json
import time
import uuid

import httpx
import pytest

from resale.config import Settings
from resale.core.auth import create_user_token
from resale.schemas.documents import Event, Identity, SellerAccount, Ticket, Transaction
from resale.services.container import build_container
from resale.services.email_service import EmailClient, EmailMessage
from resale.services.stripe_service import StripePaymentService
from resale.storage.artifacts import LocalArtifactStore
from resale.storage.documents import InMemoryDocumentStore

PAYMENTS_SECRET = "whsec_payments_test"
ACCOUNTS_SECRET = "whsec_accounts_test"
STORAGE_TOKEN = "storage-test-token"
FIELD_KEY_HEX = "4f" * 32


class CountingDocumentStore(InMemoryDocumentStore):
    """In-memory store that records every call as (method, path)."""

    def __init__(self):
        super().__init__()
        self.calls: list[tuple[str, str]] = []

    async def get(self, path):
        self.calls.append(("get", path))
        return await super().get(path)

    async def create(self, path, data):
        self.calls.append(("create", path))
        return await super().create(path, data)

    async def set(self, path, data):
        self.calls.append(("set", path))
        return await super().set(path, data)

    async def merge(self, path, data):
        self.calls.append(("merge", path))
        return await super().merge(path, data)

    async def delete(self, path):
        self.calls.append(("delete", path))
        return await super().delete(path)

    def writes(self) -> list[tuple[str, str]]:
        return [c for c in self.calls if c[0] != "get"]


class OutboxEmailClient(EmailClient):
    """Email client that records messages instead of calling the provider."""

    def __init__(self):
        super().__init__(api_key="")
        self.sent: list[EmailMessage] = []
        self.fail_for: set[str] = set()

    async def send(self, message: EmailMessage) -> dict:
        if message.to in self.fail_for:
            raise httpx.HTTPStatusError(
                "provider rejected message",
                request=httpx.Request("POST", self.api_url),
                response=httpx.Response(502),
            )
        self.sent.append(message)
        return {"status": "recorded", "to": message.to}


def _new_id() -> str:
    return uuid.uuid4().hex[:12]


def sign_stripe_payload(payload: bytes, secret: str, timestamp: int | None = None) -> str:
    """Build a Stripe-Signature header (t=<ts>,v1=<hmac-sha256>) for ``payload``."""
    ts = timestamp if timestamp is not None else int(time.time())
    signed = f"{ts}.{payload.decode('utf-8')}".encode("utf-8")
    sig = hmac.new(secret.encode("utf-8"), signed, hashlib.sha256).hexdigest()
    return f"t={ts},v1={sig}"


def stripe_event(event_type: str, obj: dict) -> bytes:
    return json.dumps({
        "id": f"evt_{_new_id()}",
        "object": "event",
        "type": event_type,
        "data": {"object": obj},
    }).encode("utf-8")


# ---------------------------------------------------------------------------
# Core fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def test_settings(tmp_path):
    return Settings(
        environment="test",
        document_store="memory",
        artifact_store_path=str(tmp_path / "artifacts"),
        stripe_secret_key="",
        stripe_payments_webhook_secret=PAYMENTS_SECRET,
        stripe_accounts_webhook_secret=ACCOUNTS_SECRET,
        storage_notification_token=STORAGE_TOKEN,
        field_encryption_key=FIELD_KEY_HEX,
        fee_policy="percentage",
        percentage_fee_rate=0.014,
        fixed_fee_cents=20,
        currency="gbp",
        email_sender="tickets@resale.test",
    )


@pytest.fixture
def store():
    return CountingDocumentStore()


@pytest.fixture
def artifacts(tmp_path):
    return LocalArtifactStore(root_dir=str(tmp_path / "artifacts"))


@pytest.fixture
def outbox():
    return OutboxEmailClient()


@pytest.fixture
def processor():
    return StripePaymentService()


@pytest.fixture
def services(test_settings, store, artifacts, processor, outbox):
    return build_container(test_settings, store, artifacts, processor=processor, email=outbox)


@pytest.fixture
async def client(services):
    """httpx AsyncClient wired to a FastAPI app holding the test container."""
    from resale.main import create_app

    app = create_app(services)
    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app),
        base_url="http://test",
    ) as c:
        yield c


@pytest.fixture
def auth_header():
    """Return a callable that builds an Authorization header for a user id."""
    def _build(user_id: str, email: str = "user@resale.test") -> dict:
        return {"Authorization": f"Bearer {create_user_token(user_id, email)}"}
    return _build


# ---------------------------------------------------------------------------
# Seeding helpers
# ---------------------------------------------------------------------------

class Seeder:
    def __init__(self, services):
        self.services = services
        self.documents = services.documents

    async def event(self, event_id: str | None = None, name: str = "Summer Festival", prices=None) -> Event:
        event_id = event_id or f"ev_{_new_id()}"
        prices = list(prices or [])
        data = {"name": name, "price_window": prices}
        if prices:
            data["average_price"] = sum(prices) / len(prices)
        await self.documents.store.set(f"events/{event_id}", data)
        return await self.documents.get_event(event_id)

    async def identity(self, uid: str | None = None, email: str | None = None, name: str | None = None) -> Identity:
        uid = uid or f"user_{_new_id()}"
        return await self.documents.put_identity(
            Identity(uid=uid, email=email or f"{uid}@resale.test", display_name=name)
        )

    async def seller(self, uid: str | None = None, transfers_active: bool = True) -> SellerAccount:
        ident = await self.identity(uid)
        return await self.documents.create_seller_account(SellerAccount(
            user_id=ident.uid,
            processor_account_id=f"acct_{_new_id()}",
            transfers_active=transfers_active,
        ))

    async def ticket(
        self,
        event_id: str,
        seller_id: str | None,
        price: float | None = 50.0,
        artifact: bytes | None = b"%PDF-1.4 ticket",
        sold: bool = False,
        ticket_id: str | None = None,
    ) -> Ticket:
        ticket_id = ticket_id or f"tk_{_new_id()}"
        artifact_ref = None
        if artifact is not None:
            artifact_ref = f"tickets/{event_id}/{ticket_id}.pdf"
            self.services.artifacts.put(artifact_ref, artifact, {"event_id": event_id})
        data = {"seller_id": seller_id, "price": price, "sold": sold, "artifact_ref": artifact_ref}
        # Written directly so seeding does not feed the price aggregator.
        await self.documents.store.set(f"events/{event_id}/tickets/{ticket_id}", data)
        return await self.documents.get_ticket(event_id, ticket_id)

    async def transaction(self, buyer_id: str, event_id: str, ticket_id: str, intent_id: str | None = None) -> Transaction:
        intent_id = intent_id or f"pi_{_new_id()}"
        tx = await self.documents.create_transaction(Transaction(
            payment_intent_id=intent_id,
            buyer_id=buyer_id,
            event_id=event_id,
            ticket_id=ticket_id,
            amount_cents=5090,
            application_fee_cents=90,
        ))
        await self.documents.acquire_ticket_hold(event_id, ticket_id, buyer_id)
        await self.documents.attach_hold_intent(event_id, ticket_id, intent_id)
        return tx


@pytest.fixture
def seed(services):
    return Seeder(services)
