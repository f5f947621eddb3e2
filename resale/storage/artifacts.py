"""Ticket artifact (uploaded ticket document) storage.

Artifacts are addressed by object key, e.g. ``tickets/<event>/<ticket>.pdf``.
Each upload carries string metadata (event_id, seller_id, price, ...) which
the storage service echoes back in its upload-completion notification.
"""

import logging
from pathlib import Path
from typing import Optional, Protocol

logger = logging.getLogger(__name__)


class ArtifactStore(Protocol):
    def put(self, key: str, content: bytes, metadata: dict[str, str] | None = None) -> dict: ...

    def get(self, key: str) -> bytes | None: ...


class LocalArtifactStore:
    """Filesystem artifact storage rooted at ``root_dir``.

    Metadata is not persisted; it only travels in the returned notification.
    """

    def __init__(self, root_dir: str):
        self.root = Path(root_dir)
        self.root.mkdir(parents=True, exist_ok=True)

    def put(self, key: str, content: bytes, metadata: dict[str, str] | None = None) -> dict:
        """Store content under ``key`` and return the upload-completion notification."""
        path = self._safe_path(key)
        if path is None:
            raise ValueError(f"Invalid artifact key: {key!r}")
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content)
        return {"name": key, "size": len(content), "metadata": dict(metadata or {})}

    def get(self, key: str) -> bytes | None:
        """Retrieve content by key. Returns None if not found."""
        path = self._safe_path(key)
        if path is not None and path.is_file():
            return path.read_bytes()
        return None

    def _safe_path(self, key: str) -> Path | None:
        """Resolve a key and ensure it stays under the store root."""
        if not key or key.startswith("/"):
            return None
        candidate = self.root / key
        try:
            root_resolved = self.root.resolve()
            resolved = candidate.resolve()
        except OSError:
            return None
        if root_resolved in resolved.parents:
            return resolved
        return None


class AzureArtifactStore:
    """Azure Blob Storage backend for ticket artifacts.

    Requires: AZURE_STORAGE_CONNECTION_STRING (and optionally AZURE_STORAGE_CONTAINER).
    """

    def __init__(self, connection_string: str, container_name: str = "ticket-artifacts"):
        if not connection_string:
            raise ValueError(
                "Azure Blob Storage requires AZURE_STORAGE_CONNECTION_STRING. "
                "Set the connection string via environment variable."
            )
        self._connection_string = connection_string
        self._container_name = container_name
        self._client = None

    def _get_client(self):
        """Lazy-initialize the BlobServiceClient."""
        if self._client is None:
            try:
                from azure.storage.blob import BlobServiceClient
            except ImportError:
                raise ImportError(
                    "azure-storage-blob is required. Install with: "
                    "pip install 'ticket-resale[azure]'"
                )
            self._client = BlobServiceClient.from_connection_string(self._connection_string)
            container_client = self._client.get_container_client(self._container_name)
            if not container_client.exists():
                self._client.create_container(self._container_name)
                logger.info("Created blob container: %s", self._container_name)
        return self._client

    def _blob_client(self, key: str):
        return self._get_client().get_blob_client(container=self._container_name, blob=key)

    def put(self, key: str, content: bytes, metadata: dict[str, str] | None = None) -> dict:
        meta = dict(metadata or {})
        blob_client = self._blob_client(key)
        try:
            blob_client.upload_blob(content, overwrite=True, metadata=meta)
            logger.debug("Uploaded artifact: %s (%d bytes)", key, len(content))
        except Exception:
            logger.exception("Failed to upload artifact: %s", key)
            raise
        return {"name": key, "size": len(content), "metadata": meta}

    def get(self, key: str) -> Optional[bytes]:
        from azure.core.exceptions import ResourceNotFoundError

        try:
            return self._blob_client(key).download_blob().readall()
        except ResourceNotFoundError:
            return None


def get_artifact_store(cfg) -> ArtifactStore:
    """Azure Blob Storage when a connection string is configured, local files otherwise."""
    if cfg.azure_storage_connection_string:
        return AzureArtifactStore(
            connection_string=cfg.azure_storage_connection_string,
            container_name=cfg.azure_storage_container,
        )
    return LocalArtifactStore(root_dir=cfg.artifact_store_path)
