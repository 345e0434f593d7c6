# pyOpenDTU Module - Cache Store
# -*- coding: utf-8 -*-
"""
 Persists the last successful OpenDTU (and power meter) response

 Cache file format:
    {"timestamp": <epoch ms>, "data": {"dtu": <payload>, "powerDraw": <payload or null>}}

 The file lives in a local, non-synced directory. Every write replaces the
 whole file (temp file + os.replace) so readers never see a partial entry.
 Read and write errors are logged and never raised.
"""
import json
import logging
import os
import tempfile
import time
from typing import Any, Optional

log = logging.getLogger(__name__)

CACHEFILE = "opendtu-cache.json"


def default_cache_dir() -> str:
    return os.getenv("DTU_CACHE_PATH") or os.path.join(os.path.expanduser("~"), ".cache", "pyopendtu")


def now_ms(clock=time.time) -> int:
    return int(clock() * 1000)


def atomic_write(path: str, text: str):
    """Write text to path in one step (raises OSError on failure)"""
    directory = os.path.dirname(os.path.abspath(path))
    os.makedirs(directory, exist_ok=True)
    fd, tmp = tempfile.mkstemp(prefix=".tmp-", dir=directory)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(text)
        os.replace(tmp, path)
    except BaseException:
        if os.path.exists(tmp):
            os.unlink(tmp)
        raise


class StorageResult:
    """Outcome of a storage write - ok or an error message"""

    def __init__(self, ok: bool, error: Optional[str] = None):
        self.ok = ok
        self.error = error

    @classmethod
    def success(cls):
        return cls(True)

    @classmethod
    def failure(cls, error: str):
        return cls(False, error)

    def __bool__(self):
        return self.ok

    def __repr__(self):
        return "StorageResult(ok)" if self.ok else f"StorageResult(error={self.error!r})"


class CacheEntry:
    def __init__(self, timestamp: int, dtu: Any, power_draw: Any = None):
        self.timestamp = timestamp  # epoch ms
        self.dtu = dtu
        self.power_draw = power_draw

    def age_ms(self, now: int) -> int:
        return now - self.timestamp

    def to_dict(self) -> dict:
        return {"timestamp": self.timestamp, "data": {"dtu": self.dtu, "powerDraw": self.power_draw}}

    @classmethod
    def from_dict(cls, doc: dict) -> "CacheEntry":
        data = doc["data"]
        timestamp = doc["timestamp"]
        if not isinstance(timestamp, (int, float)) or isinstance(timestamp, bool):
            raise ValueError(f"invalid timestamp {timestamp!r}")
        if data.get("dtu") is None:
            raise ValueError("no dtu payload")
        return cls(int(timestamp), data["dtu"], data.get("powerDraw"))

    def __repr__(self):
        return f"CacheEntry(timestamp={self.timestamp})"


class CacheStore:
    def __init__(self, path: Optional[str] = None, clock=time.time):
        self.path = path or os.path.join(default_cache_dir(), CACHEFILE)
        self.clock = clock

    def save(self, dtu: Any, power_draw: Any = None) -> StorageResult:
        entry = CacheEntry(now_ms(self.clock), dtu, power_draw)
        try:
            atomic_write(self.path, json.dumps(entry.to_dict()))
        except (OSError, TypeError, ValueError) as exc:
            log.error(f"Unable to write cache file {self.path}: {exc}")
            return StorageResult.failure(str(exc))
        log.debug(f"Saved cache entry to {self.path}")
        return StorageResult.success()

    def load(self) -> Optional[CacheEntry]:
        if not os.path.exists(self.path):
            log.debug(f"No cache file at {self.path}")
            return None
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                entry = CacheEntry.from_dict(json.load(f))
        except (OSError, ValueError, KeyError, TypeError, AttributeError) as exc:
            log.error(f"Unable to read cache file {self.path}: {exc}")
            return None
        log.debug(f"Loaded cache entry from {self.path} ({entry.timestamp})")
        return entry
