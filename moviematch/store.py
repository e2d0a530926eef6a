"""Profile stores: key-value persistence for serialised user profiles."""

from __future__ import annotations

import logging
import sqlite3
import threading
import time
from abc import ABC, abstractmethod
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from moviematch import config
from moviematch.errors import PersistenceError

logger = logging.getLogger(__name__)


class ProfileStore(ABC):
    """Key-value store mapping a profile id to its serialised JSON payload.

    The engine only flushes at invalidation time, so implementations see
    batched writes rather than one write per interaction.
    """

    @abstractmethod
    def load(self, profile_id: str) -> str | None:
        """Return the stored payload for *profile_id*, or ``None`` if absent.

        Raises:
            PersistenceError: If the backend cannot be read.
        """

    @abstractmethod
    def save(self, profile_id: str, payload: str) -> None:
        """Store *payload* under *profile_id*, replacing any previous value.

        Raises:
            PersistenceError: If the backend cannot be written.
        """


class InMemoryProfileStore(ProfileStore):
    """Dictionary-backed store for tests and single-process hosts."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._payloads: dict[str, str] = {}

    def load(self, profile_id: str) -> str | None:
        with self._lock:
            return self._payloads.get(profile_id)

    def save(self, profile_id: str, payload: str) -> None:
        with self._lock:
            self._payloads[profile_id] = payload

    def profile_ids(self) -> list[str]:
        with self._lock:
            return sorted(self._payloads)


class SqliteProfileStore(ProfileStore):
    """SQLite-backed store with one row per profile.

    A connection is opened per call, so the store can be shared across
    threads.

    Args:
        db_path: Database file; created with its table on first use.
    """

    _SCHEMA = """
        CREATE TABLE IF NOT EXISTS profiles (
            profile_id TEXT PRIMARY KEY,
            payload TEXT NOT NULL,
            updated_at REAL NOT NULL
        )
    """

    def __init__(self, db_path: str | Path = config.DB_PATH) -> None:
        self._db_path = str(db_path)
        with self._connect() as conn:
            conn.execute(self._SCHEMA)

    def load(self, profile_id: str) -> str | None:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT payload FROM profiles WHERE profile_id = ?", (profile_id,)
            ).fetchone()
        return row[0] if row else None

    def save(self, profile_id: str, payload: str) -> None:
        with self._connect() as conn:
            conn.execute(
                "INSERT OR REPLACE INTO profiles (profile_id, payload, updated_at) "
                "VALUES (?, ?, ?)",
                (profile_id, payload, time.time()),
            )
        logger.debug("Saved profile %r (%d bytes).", profile_id, len(payload))

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        try:
            conn = sqlite3.connect(self._db_path)
        except sqlite3.Error as exc:
            raise PersistenceError(f"Cannot open profile store {self._db_path!r}: {exc}") from exc
        try:
            with conn:
                yield conn
        except sqlite3.Error as exc:
            raise PersistenceError(f"Profile store {self._db_path!r} failed: {exc}") from exc
        finally:
            conn.close()
