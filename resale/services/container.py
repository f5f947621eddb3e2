"""Explicit wiring of the resale components.

Each component receives the capabilities it uses through its constructor;
the container is built once at startup (or by a test) and exposed to routes
through ``get_services``.
"""

from __future__ import annotations

from dataclasses import dataclass

from fastapi import Request

from resale.config import Settings
from resale.core.events import TICKET_PRICE_WRITTEN, EventBus
from resale.core.field_codec import load_field_key
from resale.services.email_service import EmailClient
from resale.services.fee_service import FeePolicy
from resale.services.identity_service import DocumentIdentityProvider, IdentityProvider
from resale.services.listing_service import ListingIngestor
from resale.services.notification_service import FulfillmentNotifier
from resale.services.price_service import PriceAggregator
from resale.services.purchase_service import PurchaseService
from resale.services.seller_service import SellerService
from resale.services.settlement_service import SettlementService
from resale.services.store_adapter import DocumentRepository
from resale.services.stripe_service import StripePaymentService
from resale.storage.artifacts import ArtifactStore
from resale.storage.documents import DocumentStore


@dataclass
class ServiceContainer:
    settings: Settings
    bus: EventBus
    documents: DocumentRepository
    artifacts: ArtifactStore
    processor: StripePaymentService
    email: EmailClient
    identity: IdentityProvider
    prices: PriceAggregator
    listings: ListingIngestor
    purchases: PurchaseService
    settlement: SettlementService
    sellers: SellerService


def build_container(
    cfg: Settings,
    store: DocumentStore,
    artifacts: ArtifactStore,
    processor: StripePaymentService | None = None,
    email: EmailClient | None = None,
    identity: IdentityProvider | None = None,
) -> ServiceContainer:
    bus = EventBus()
    documents = DocumentRepository(store, bus)
    processor = processor or StripePaymentService(
        secret_key=cfg.stripe_secret_key,
        webhook_tolerance=cfg.stripe_webhook_tolerance_seconds,
    )
    email = email or EmailClient(
        api_key=cfg.email_api_key,
        api_url=cfg.email_api_url,
        timeout=cfg.email_timeout_seconds,
    )
    identity = identity or DocumentIdentityProvider(documents)

    prices = PriceAggregator(documents)
    bus.subscribe(TICKET_PRICE_WRITTEN, prices.on_ticket_price_written)

    notifier = FulfillmentNotifier(email, sender=cfg.email_sender)
    return ServiceContainer(
        settings=cfg,
        bus=bus,
        documents=documents,
        artifacts=artifacts,
        processor=processor,
        email=email,
        identity=identity,
        prices=prices,
        listings=ListingIngestor(documents, identity),
        purchases=PurchaseService(
            documents,
            processor,
            FeePolicy.from_settings(cfg),
            currency=cfg.currency,
            hold_ttl_seconds=cfg.ticket_hold_ttl_seconds,
        ),
        settlement=SettlementService(documents, artifacts, identity, notifier),
        sellers=SellerService(
            documents,
            processor,
            field_key=load_field_key(cfg.field_encryption_key),
            refresh_url=cfg.onboarding_refresh_url,
            return_url=cfg.onboarding_return_url,
        ),
    )


def get_services(request: Request) -> ServiceContainer:
    """FastAPI dependency returning the container attached at startup."""
    return request.app.state.services
