"""User identity lookups (user id -> email)."""

from typing import Protocol

from resale.schemas.documents import Identity
from resale.services.store_adapter import DocumentRepository


class IdentityProvider(Protocol):
    async def get_user(self, uid: str) -> Identity | None: ...


class DocumentIdentityProvider:
    """Reads the ``identities/{uid}`` directory mirror kept by the identity platform."""

    def __init__(self, documents: DocumentRepository):
        self._documents = documents

    async def get_user(self, uid: str) -> Identity | None:
        if not uid:
            return None
        return await self._documents.get_identity(uid)
