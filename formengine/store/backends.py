"""Blob and record stores the form workflow persists through.

The portal's managed backend provides both in production; the in-memory and
directory-backed implementations here serve local use and tests.
"""

from __future__ import annotations

from copy import deepcopy
from pathlib import Path
import threading
from typing import Any, Mapping, Protocol
import uuid
from urllib.parse import urlparse
from urllib.request import url2pathname


class StoreError(RuntimeError):
    """Raised when a blob or record cannot be found or stored."""


class BlobStore(Protocol):
    def put(self, name: str, data: bytes) -> str: ...

    def get(self, url: str) -> bytes: ...


class RecordStore(Protocol):
    def insert(self, collection: str, row: Mapping[str, Any]) -> str: ...

    def update(self, collection: str, row_id: str, row: Mapping[str, Any]) -> None: ...

    def get(self, collection: str, row_id: str) -> dict[str, Any]: ...

    def query(self, collection: str, **filters: Any) -> list[dict[str, Any]]: ...


class MemoryBlobStore:
    def __init__(self, base_url: str = "memory://forms/") -> None:
        self.base_url = base_url
        self._blobs: dict[str, bytes] = {}
        self._lock = threading.Lock()

    def put(self, name: str, data: bytes) -> str:
        url = f"{self.base_url}{name}"
        with self._lock:
            if url in self._blobs:
                raise StoreError(f"Blob already exists: {name}")
            self._blobs[url] = bytes(data)
        return url

    def get(self, url: str) -> bytes:
        with self._lock:
            try:
                return self._blobs[url]
            except KeyError:
                raise StoreError(f"Blob not found: {url}") from None


class DirectoryBlobStore:
    """Stores blobs as files under ``base_dir``; URLs are ``file://`` URIs."""

    def __init__(self, base_dir: str | Path) -> None:
        self.base_dir = Path(base_dir)
        self.base_dir.mkdir(parents=True, exist_ok=True)

    def put(self, name: str, data: bytes) -> str:
        path = (self.base_dir / name).resolve()
        if self.base_dir.resolve() not in path.parents:
            raise StoreError(f"Blob name escapes the store: {name}")
        if path.exists():
            raise StoreError(f"Blob already exists: {name}")
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
        return path.as_uri()

    def get(self, url: str) -> bytes:
        path = Path(url2pathname(urlparse(url).path)) if url.startswith("file:") else Path(url)
        try:
            return path.read_bytes()
        except OSError as exc:
            raise StoreError(f"Blob not found: {url}") from exc


class MemoryRecordStore:
    def __init__(self) -> None:
        self._collections: dict[str, dict[str, dict[str, Any]]] = {}
        self._lock = threading.Lock()

    def insert(self, collection: str, row: Mapping[str, Any]) -> str:
        row_id = uuid.uuid4().hex
        with self._lock:
            rows = self._collections.setdefault(collection, {})
            rows[row_id] = {**deepcopy(dict(row)), "id": row_id}
        return row_id

    def update(self, collection: str, row_id: str, row: Mapping[str, Any]) -> None:
        with self._lock:
            rows = self._collections.get(collection, {})
            if row_id not in rows:
                raise StoreError(f"No {collection} row with id {row_id}")
            rows[row_id] = {**rows[row_id], **deepcopy(dict(row)), "id": row_id}

    def get(self, collection: str, row_id: str) -> dict[str, Any]:
        with self._lock:
            try:
                return deepcopy(self._collections[collection][row_id])
            except KeyError:
                raise StoreError(f"No {collection} row with id {row_id}") from None

    def query(self, collection: str, **filters: Any) -> list[dict[str, Any]]:
        with self._lock:
            rows = list(self._collections.get(collection, {}).values())
        return [
            deepcopy(row)
            for row in rows
            if all(row.get(key) == value for key, value in filters.items())
        ]
