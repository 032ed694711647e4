"""
Artifact storage strategies.

Rendered PDFs are offered to an ordered list of durable strategies; the first
one that succeeds provides the locator stored on the quote:

1. RemoteObjectStorage  - HTTP PUT to an object store (when configured)
2. LocalFilesystemStorage - write under LOCAL_STORAGE_DIR (not in serverless)

An inline data URI is always produced as well, for immediate preview, and
becomes the locator when no durable strategy succeeded. Failures are logged
and reported as StorageDegradedWarning values; nothing here is retried.
"""

import asyncio
import base64
import logging
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Sequence

import httpx

from quoteflow.schemas.quote import StorageDegradedWarning

logger = logging.getLogger(__name__)

PDF_MIME_TYPE = "application/pdf"


class StorageError(Exception):
    """A storage strategy could not persist or remove an artifact."""


@dataclass
class StoredArtifact:
    strategy: str
    locator: str
    storage_id: Optional[str] = None


@dataclass
class StorageOutcome:
    """What the chain produced for one artifact."""

    locator: str
    strategy: str
    inline_payload: str
    storage_id: Optional[str] = None
    warnings: list[StorageDegradedWarning] = field(default_factory=list)

    @property
    def degraded(self) -> bool:
        return bool(self.warnings)


class StorageStrategy(ABC):
    """One candidate mechanism for persisting an artifact."""

    name: str = "abstract"

    def is_available(self) -> bool:
        return True

    @abstractmethod
    async def attempt(self, data: bytes, key: str) -> StoredArtifact:
        """Persist ``data`` under ``key`` or raise."""

    async def delete(self, storage_id: str) -> None:
        raise StorageError(f"{self.name} storage does not support deletion")


class RemoteObjectStorage(StorageStrategy):
    """Object storage reached over HTTP (PUT to upload, DELETE to remove)."""

    name = "remote"

    def __init__(
        self,
        base_url: Optional[str],
        token: Optional[str] = None,
        folder: str = "quotes",
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/") if base_url else None
        self.token = token
        self.folder = folder.strip("/")
        self.timeout = timeout
        self.transport = transport

    def is_available(self) -> bool:
        return bool(self.base_url)

    def _headers(self, content_type: Optional[str] = None) -> dict:
        headers = {}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        if content_type:
            headers["Content-Type"] = content_type
        return headers

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self.transport)

    async def attempt(self, data: bytes, key: str) -> StoredArtifact:
        object_path = f"{self.folder}/{key}" if self.folder else key
        url = f"{self.base_url}/{object_path}"

        async with self._client() as client:
            resp = await client.put(url, content=data, headers=self._headers(PDF_MIME_TYPE))
            resp.raise_for_status()

        body = {}
        if resp.headers.get("content-type", "").startswith("application/json"):
            body = resp.json()

        locator = body.get("url") or url
        storage_id = body.get("id") or object_path
        logger.info("Uploaded %s (%d bytes) to object storage", object_path, len(data))
        return StoredArtifact(strategy=self.name, locator=locator, storage_id=storage_id)

    async def delete(self, storage_id: str) -> None:
        if not self.is_available():
            raise StorageError("Object storage is not configured")
        async with self._client() as client:
            resp = await client.delete(f"{self.base_url}/{storage_id}", headers=self._headers())
            if resp.status_code != 404:
                resp.raise_for_status()
        logger.info("Deleted %s from object storage", storage_id)


class LocalFilesystemStorage(StorageStrategy):
    """Files written under a local directory."""

    name = "local"

    def __init__(self, directory: str, serverless: bool = False):
        self.directory = Path(directory)
        self.serverless = serverless

    def is_available(self) -> bool:
        if self.serverless:
            return False
        # Nearest existing ancestor decides whether the directory can be created
        candidate = self.directory.resolve()
        while not candidate.exists():
            if candidate.parent == candidate:
                return False
            candidate = candidate.parent
        return os.access(candidate, os.W_OK)

    def _write(self, path: Path, data: bytes) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)

    async def attempt(self, data: bytes, key: str) -> StoredArtifact:
        path = self.directory / key
        await asyncio.to_thread(self._write, path, data)
        logger.info("Wrote %s (%d bytes)", path, len(data))
        return StoredArtifact(strategy=self.name, locator=path.as_posix())


class InlinePayloadStorage(StorageStrategy):
    """Base64 data URI; always succeeds."""

    name = "inline"

    def __init__(self, mime_type: str = PDF_MIME_TYPE):
        self.mime_type = mime_type

    def encode(self, data: bytes) -> str:
        return f"data:{self.mime_type};base64,{base64.b64encode(data).decode('ascii')}"

    async def attempt(self, data: bytes, key: str) -> StoredArtifact:
        return StoredArtifact(strategy=self.name, locator=self.encode(data))


class StorageStrategyChain:
    """First durable success wins; the inline payload is always produced."""

    def __init__(
        self,
        strategies: Sequence[StorageStrategy],
        inline: Optional[InlinePayloadStorage] = None,
    ):
        self.strategies = list(strategies)
        self.inline = inline or InlinePayloadStorage()

    @classmethod
    def from_settings(cls, settings, transport: Optional[httpx.AsyncBaseTransport] = None) -> "StorageStrategyChain":
        return cls([
            RemoteObjectStorage(
                settings.OBJECT_STORAGE_URL,
                token=settings.OBJECT_STORAGE_TOKEN,
                folder=settings.OBJECT_STORAGE_FOLDER,
                transport=transport,
            ),
            LocalFilesystemStorage(settings.LOCAL_STORAGE_DIR, serverless=settings.SERVERLESS),
        ])

    def get(self, name: str) -> Optional[StorageStrategy]:
        for strategy in self.strategies:
            if strategy.name == name:
                return strategy
        return None

    async def store(self, data: bytes, key: str, quote_id: Optional[str] = None) -> StorageOutcome:
        warnings: list[StorageDegradedWarning] = []
        stored: Optional[StoredArtifact] = None

        for strategy in self.strategies:
            if not strategy.is_available():
                logger.debug("Skipping %s storage for quote %s: not available", strategy.name, quote_id)
                continue
            try:
                stored = await strategy.attempt(data, key)
                break
            except (httpx.HTTPError, OSError, StorageError, ValueError) as e:
                logger.warning(
                    "Storage strategy %s failed for quote %s: %s",
                    strategy.name,
                    quote_id,
                    e,
                    extra={"quote_id": quote_id, "strategy": strategy.name},
                )
                warnings.append(StorageDegradedWarning(strategy=strategy.name, message=str(e)))

        inline = await self.inline.attempt(data, key)
        if stored is None:
            stored = inline

        return StorageOutcome(
            locator=stored.locator,
            strategy=stored.strategy,
            storage_id=stored.storage_id,
            inline_payload=inline.locator,
            warnings=warnings,
        )

    async def delete(self, strategy_name: str, storage_id: str) -> None:
        strategy = self.get(strategy_name)
        if strategy is None:
            raise StorageError(f"No {strategy_name} storage configured")
        await strategy.delete(storage_id)
