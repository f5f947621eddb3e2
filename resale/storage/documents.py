"""Keyed document storage.

Documents are JSON objects addressed by a hierarchical path such as
``events/e1/tickets/t1``. Two backends share one async interface:

    SqlDocumentStore        one row per document in the ``documents`` table
    InMemoryDocumentStore   process-local dict, for tests and local dev

``merge`` is a shallow partial update that creates the document when absent;
``create`` is the only conditional write and fails if the path is taken.
"""

from __future__ import annotations

import copy
import json
from typing import Any, Protocol

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from resale.core.exceptions import DocumentExistsError
from resale.models.document import Document


def parent_collection(path: str) -> str:
    return path.rsplit("/", 1)[0] if "/" in path else ""


class DocumentStore(Protocol):
    async def get(self, path: str) -> dict[str, Any] | None: ...

    async def create(self, path: str, data: dict[str, Any]) -> None: ...

    async def set(self, path: str, data: dict[str, Any]) -> None: ...

    async def merge(self, path: str, data: dict[str, Any]) -> None: ...

    async def delete(self, path: str) -> bool: ...


class InMemoryDocumentStore:
    def __init__(self):
        self._docs: dict[str, dict[str, Any]] = {}

    async def get(self, path: str) -> dict[str, Any] | None:
        doc = self._docs.get(path)
        return copy.deepcopy(doc) if doc is not None else None

    async def create(self, path: str, data: dict[str, Any]) -> None:
        if path in self._docs:
            raise DocumentExistsError(path)
        self._docs[path] = copy.deepcopy(data)

    async def set(self, path: str, data: dict[str, Any]) -> None:
        self._docs[path] = copy.deepcopy(data)

    async def merge(self, path: str, data: dict[str, Any]) -> None:
        self._docs.setdefault(path, {}).update(copy.deepcopy(data))

    async def delete(self, path: str) -> bool:
        return self._docs.pop(path, None) is not None

    def paths(self) -> list[str]:
        return sorted(self._docs)


class SqlDocumentStore:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def get(self, path: str) -> dict[str, Any] | None:
        async with self._session_factory() as db:
            row = await db.get(Document, path)
            return json.loads(row.data_json) if row is not None else None

    async def create(self, path: str, data: dict[str, Any]) -> None:
        async with self._session_factory() as db:
            db.add(Document(
                path=path,
                collection=parent_collection(path),
                data_json=json.dumps(data),
            ))
            try:
                await db.commit()
            except IntegrityError as exc:
                await db.rollback()
                raise DocumentExistsError(path) from exc

    async def set(self, path: str, data: dict[str, Any]) -> None:
        async with self._session_factory() as db:
            row = await db.get(Document, path)
            if row is None:
                db.add(Document(
                    path=path,
                    collection=parent_collection(path),
                    data_json=json.dumps(data),
                ))
            else:
                row.data_json = json.dumps(data)
            await db.commit()

    async def merge(self, path: str, data: dict[str, Any]) -> None:
        async with self._session_factory() as db:
            result = await db.execute(
                select(Document).where(Document.path == path).with_for_update()
            )
            row = result.scalar_one_or_none()
            if row is None:
                db.add(Document(
                    path=path,
                    collection=parent_collection(path),
                    data_json=json.dumps(data),
                ))
            else:
                merged = json.loads(row.data_json)
                merged.update(data)
                row.data_json = json.dumps(merged)
            await db.commit()

    async def delete(self, path: str) -> bool:
        async with self._session_factory() as db:
            row = await db.get(Document, path)
            if row is None:
                return False
            await db.delete(row)
            await db.commit()
            return True
