"""Persistent store of previously used destination pages.

The store keeps a mapping of page URL to :class:`Destination` and writes
the whole mapping back through a backend each time new pages are merged.
Two backends are provided: a JSON file on the local filesystem (default)
and a single Redis key. Select one with the environment variables below.

Environment variables:
    DESTINATION_STORE_BACKEND: 'file' (default) or 'redis'.
    DESTINATION_STORE_PATH: JSON file used by the file backend (default
        '<DATA_DIR>/saved_pages.json').
    DESTINATION_STORE_KEY: Redis key used by the redis backend (default
        'savedFacebookPages').
    REDIS_HOST, REDIS_PORT, REDIS_DB: Redis connection settings.
"""

from __future__ import annotations

import json
import logging
import os
import threading
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Protocol

from publishing.models import Destination

logger = logging.getLogger(__name__)

DEFAULT_STORE_KEY = "savedFacebookPages"


class DestinationBackend(Protocol):
    def load(self) -> Dict[str, Destination]: ...

    def save(self, pages: Dict[str, Destination]) -> None: ...


def _decode(raw: Any) -> Dict[str, Destination]:
    if not isinstance(raw, list):
        raise ValueError("saved pages must be a JSON list")
    pages: Dict[str, Destination] = {}
    for item in raw:
        if not isinstance(item, dict):
            continue
        dest = Destination.model_validate(item)
        if dest.is_valid():
            url = dest.url.strip()
            pages[url] = Destination(url=url, contact_info=dest.contact_info)
    return pages


def _encode(pages: Dict[str, Destination]) -> str:
    return json.dumps([dest.model_dump(by_alias=True) for dest in pages.values()])


class JsonFileBackend:
    """Keeps saved pages in a JSON file as a list of ``{url, contactInfo}``."""

    def __init__(self, path: str | os.PathLike) -> None:
        self.path = Path(path)

    def load(self) -> Dict[str, Destination]:
        if not self.path.exists():
            return {}
        return _decode(json.loads(self.path.read_text(encoding="utf-8")))

    def save(self, pages: Dict[str, Destination]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp_path.write_text(_encode(pages), encoding="utf-8")
        os.replace(tmp_path, self.path)


class RedisBackend:
    """Keeps saved pages as one JSON document under a single Redis key."""

    def __init__(self, client: Any, key: str = DEFAULT_STORE_KEY) -> None:
        self.client = client
        self.key = key

    def load(self) -> Dict[str, Destination]:
        raw = self.client.get(self.key)
        if raw is None:
            return {}
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8")
        return _decode(json.loads(raw))

    def save(self, pages: Dict[str, Destination]) -> None:
        self.client.set(self.key, _encode(pages))


class DestinationStore:
    """Mapping of page URL to destination with last-write-wins merges.

    The backend is read once when the store is created. Read and write
    failures are logged and otherwise ignored; an unreadable backend starts
    the store empty.
    """

    def __init__(self, backend: DestinationBackend) -> None:
        self._backend = backend
        self._lock = threading.Lock()
        self._pages: Dict[str, Destination] = self._load()

    def _load(self) -> Dict[str, Destination]:
        try:
            return self._backend.load()
        except Exception as exc:
            logger.warning("Failed to load saved pages, starting empty: %s", exc)
            return {}

    def all(self) -> List[Destination]:
        return list(self._pages.values())

    def urls(self) -> List[str]:
        return list(self._pages.keys())

    def get(self, url: str) -> Optional[Destination]:
        return self._pages.get(url.strip())

    def merge(self, destinations: Iterable[Destination]) -> List[Destination]:
        """Add or overwrite pages and persist the full mapping.

        Only destinations with an absolute URL are kept. The new mapping is
        written with a single backend call and then swapped in as a whole.

        Args:
            destinations: Pages entered by the user, in order. Later entries
                win over earlier ones and over stored values.

        Returns:
            All saved pages after the merge.
        """
        valid = [
            Destination(url=dest.url.strip(), contact_info=dest.contact_info)
            for dest in destinations
            if dest.is_valid()
        ]
        if not valid:
            return self.all()

        with self._lock:
            merged = dict(self._pages)
            for dest in valid:
                merged[dest.url] = dest
            try:
                self._backend.save(merged)
            except Exception as exc:
                logger.warning("Failed to save pages: %s", exc)
            self._pages = merged
        return self.all()


def build_destination_store(data_dir: str = "./data") -> DestinationStore:
    """Create the store configured by environment variables."""
    backend_name = os.getenv("DESTINATION_STORE_BACKEND", "file").lower()
    if backend_name == "redis":
        from redis import Redis

        client = Redis(
            host=os.getenv("REDIS_HOST", "localhost"),
            port=int(os.getenv("REDIS_PORT", "6379")),
            db=int(os.getenv("REDIS_DB", "0")),
        )
        backend: DestinationBackend = RedisBackend(client, os.getenv("DESTINATION_STORE_KEY", DEFAULT_STORE_KEY))
    else:
        path = os.getenv("DESTINATION_STORE_PATH") or os.path.join(data_dir, "saved_pages.json")
        backend = JsonFileBackend(path)
    logger.info("Destination store using %s backend", backend_name)
    return DestinationStore(backend)
