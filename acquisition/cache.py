"""
Local Result Cache

Key-value cache of JSON records `{payload, timestamp, ttl}`.

GUARANTEES:
===========
1. Writes replace a whole entry; readers never see a partial record
2. Stale entries are kept; freshness is decided by the reader
3. Malformed records read as a miss, never as an error
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Optional
import hashlib
import json
import logging
import os
import re
import tempfile
import threading
import time

logger = logging.getLogger(__name__)

Clock = Callable[[], float]


def cache_key(lottery_id: str, kind: str) -> str:
    """Namespaced key per lottery variant and data kind."""
    return f"animalito:{lottery_id}:{kind}"


@dataclass(frozen=True)
class CacheEntry:
    payload: Any
    timestamp: float  # epoch seconds
    ttl: float        # seconds

    def is_fresh(self, now: float) -> bool:
        return now - self.timestamp < self.ttl

    def age(self, now: float) -> float:
        return now - self.timestamp

    def to_json(self) -> str:
        return json.dumps({
            'payload': self.payload,
            'timestamp': self.timestamp,
            'ttl': self.ttl,
        }, ensure_ascii=False)

    @classmethod
    def from_json(cls, raw: str) -> Optional['CacheEntry']:
        """Parse a stored record; None when malformed."""
        try:
            data = json.loads(raw)
            return cls(
                payload=data['payload'],
                timestamp=float(data['timestamp']),
                ttl=float(data['ttl']),
            )
        except (ValueError, TypeError, KeyError) as e:
            logger.warning("Discarding malformed cache record: %s", e)
            return None


class CacheService(ABC):
    """
    Injected cache interface.

    `get` returns the entry regardless of freshness; use `get_fresh` for
    the primary read path.
    """

    def __init__(self, clock: Clock = time.time):
        self._clock = clock

    def now(self) -> float:
        return self._clock()

    @abstractmethod
    def _read(self, key: str) -> Optional[str]:
        pass

    @abstractmethod
    def _write(self, key: str, raw: str) -> None:
        pass

    @abstractmethod
    def delete(self, key: str) -> None:
        pass

    def get(self, key: str) -> Optional[CacheEntry]:
        raw = self._read(key)
        if raw is None:
            return None
        return CacheEntry.from_json(raw)

    def get_fresh(self, key: str) -> Optional[CacheEntry]:
        entry = self.get(key)
        if entry is None or not entry.is_fresh(self.now()):
            return None
        return entry

    def set(self, key: str, payload: Any, ttl: float) -> CacheEntry:
        entry = CacheEntry(payload=payload, timestamp=self.now(), ttl=float(ttl))
        self._write(key, entry.to_json())
        return entry


class InMemoryCache(CacheService):
    """Process-local cache. Stores serialized records like the file cache does."""

    def __init__(self, clock: Clock = time.time):
        super().__init__(clock)
        self._store: Dict[str, str] = {}
        self._lock = threading.Lock()

    def _read(self, key: str) -> Optional[str]:
        with self._lock:
            return self._store.get(key)

    def _write(self, key: str, raw: str) -> None:
        with self._lock:
            self._store[key] = raw

    def put_raw(self, key: str, raw: str) -> None:
        """Store an arbitrary string (used to simulate corrupted records)."""
        self._write(key, raw)

    def delete(self, key: str) -> None:
        with self._lock:
            self._store.pop(key, None)

    def __len__(self) -> int:
        return len(self._store)


class JsonFileCache(CacheService):
    """
    One JSON file per key under `base_path`.

    Writes go to a temp file in the same directory and are moved into
    place with os.replace.
    """

    _SAFE = re.compile(r'[^A-Za-z0-9_.-]')

    def __init__(self, base_path: Path, clock: Clock = time.time):
        super().__init__(clock)
        self._base_path = Path(base_path)
        self._base_path.mkdir(parents=True, exist_ok=True)

    def _path(self, key: str) -> Path:
        safe = self._SAFE.sub('_', key)
        digest = hashlib.sha256(key.encode('utf-8')).hexdigest()[:8]
        return self._base_path / f"{safe}_{digest}.json"

    def _read(self, key: str) -> Optional[str]:
        path = self._path(key)
        try:
            return path.read_text(encoding='utf-8')
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as e:
            logger.warning("Cache read failed for %s: %s", key, e)
            return None

    def _write(self, key: str, raw: str) -> None:
        path = self._path(key)
        tmp_path = None
        try:
            fd, tmp_path = tempfile.mkstemp(dir=self._base_path, suffix='.tmp')
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                f.write(raw)
            os.replace(tmp_path, path)
        except OSError as e:
            logger.warning("Cache write failed for %s: %s", key, e)
            if tmp_path is not None and os.path.exists(tmp_path):
                os.unlink(tmp_path)

    def delete(self, key: str) -> None:
        try:
            self._path(key).unlink()
        except FileNotFoundError:
            pass
