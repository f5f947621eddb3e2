"""API router registry used by the app factory.

This keeps route module imports and inclusion order in one place so
`resale.main` stays focused on startup wiring.
"""

from __future__ import annotations

from fastapi import APIRouter

from . import health, purchases, sellers, storage, webhooks

API_PREFIX = "/api/v1"

API_ROUTERS: tuple[APIRouter, ...] = (
    health.router,
    purchases.router,
    sellers.router,
    storage.router,
    webhooks.router,
)

__all__ = ["API_PREFIX", "API_ROUTERS"]
