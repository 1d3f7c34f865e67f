"""Content-addressed diff cache."""

from __future__ import annotations

import hashlib
import threading
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

CacheKey = Tuple[str, str]


def fingerprint(content: str) -> str:
    """Stable hash of *content* bytes. Independent of any path."""
    return hashlib.sha256(content.encode("utf-8", errors="surrogatepass")).hexdigest()


@dataclass(frozen=True)
class DiffCacheEntry:
    file_path: str
    fingerprint: str
    diff: str

    @property
    def key(self) -> CacheKey:
        return (self.file_path, self.fingerprint)


class DiffCache:
    """Maps ``(file_path, fingerprint(current_content))`` to diff text.

    Entries are immutable and never invalidated; identical keys are
    last-write-wins, which is harmless since the values are identical.
    """

    def __init__(self) -> None:
        self._entries: Dict[CacheKey, DiffCacheEntry] = {}
        self._lock = threading.Lock()

    def get(self, file_path: str, content: str) -> Optional[str]:
        with self._lock:
            entry = self._entries.get((file_path, fingerprint(content)))
        return entry.diff if entry else None

    def put(self, file_path: str, content: str, diff: str) -> DiffCacheEntry:
        entry = DiffCacheEntry(file_path, fingerprint(content), diff)
        with self._lock:
            self._entries[entry.key] = entry
        return entry

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
