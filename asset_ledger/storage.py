"""
World State Module

Provides the abstract ordered key-value store consumed by the asset ledger,
with an in-memory implementation (testing, demo) and a SQLite implementation
(persistence). Keys are strings, values are raw bytes, and range scans
return pairs in ascending key order.
"""

from abc import ABC, abstractmethod
from typing import Dict, Iterator, List, Optional, Tuple, Union
import sqlite3
import threading
import logging
from pathlib import Path
from contextlib import contextmanager

from .errors import StoreFailureError, InvalidArgumentError


logger = logging.getLogger("asset_ledger.storage")

KeyValue = Tuple[str, bytes]


class WorldStateInterface(ABC):
    """Abstract interface for world state backends"""

    @abstractmethod
    def get(self, key: str) -> Optional[bytes]:
        """Return the value stored under key, or None when absent"""
        pass

    @abstractmethod
    def put(self, key: str, value: bytes) -> None:
        """Store value under key, replacing any previous value"""
        pass

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove key (no-op when absent)"""
        pass

    @abstractmethod
    def range_scan(self, start: str, end: str) -> Iterator[KeyValue]:
        """
        Iterate (key, value) pairs with start <= key < end in key order.

        An empty end means the range is unbounded above, so
        ``range_scan("", "")`` visits the whole key space.
        """
        pass

    @abstractmethod
    def close(self) -> None:
        """Close the backend"""
        pass

    def begin_transaction(self) -> None:
        """Start a unit of work (default no-op)"""
        pass

    def commit(self) -> None:
        """Commit current unit of work (default no-op)"""
        pass

    def rollback(self) -> None:
        """Rollback current unit of work (default no-op)"""
        pass

    @contextmanager
    def atomic(self):
        """Context manager making every write inside it succeed or fail together"""
        self.begin_transaction()
        try:
            yield self
            self.commit()
        except Exception:
            self.rollback()
            raise

    def exists(self, key: str) -> bool:
        """Check if a key is present"""
        return self.get(key) is not None


def _in_range(key: str, start: str, end: str) -> bool:
    return key >= start and (end == "" or key < end)


class InMemoryWorldState(WorldStateInterface):
    """
    In-memory world state backed by a dict.

    A unit of work holds the store lock for its whole duration and keeps an
    undo journal of the first prior value of every touched key, so rollback
    restores the state as it was at begin. Nested units of work join the
    outermost one.
    """

    def __init__(self):
        self._data: Dict[str, bytes] = {}
        self._lock = threading.RLock()
        self._journal: Optional[Dict[str, Optional[bytes]]] = None
        self._depth = 0

    def _remember(self, key: str) -> None:
        if self._journal is not None and key not in self._journal:
            self._journal[key] = self._data.get(key)

    def get(self, key: str) -> Optional[bytes]:
        with self._lock:
            return self._data.get(key)

    def put(self, key: str, value: bytes) -> None:
        with self._lock:
            self._remember(key)
            self._data[key] = bytes(value)

    def delete(self, key: str) -> None:
        with self._lock:
            if key in self._data:
                self._remember(key)
                del self._data[key]

    def range_scan(self, start: str, end: str) -> Iterator[KeyValue]:
        with self._lock:
            keys = sorted(k for k in self._data if _in_range(k, start, end))
            items = [(k, self._data[k]) for k in keys]
        return iter(items)

    def begin_transaction(self) -> None:
        self._lock.acquire()
        self._depth += 1
        if self._depth == 1:
            self._journal = {}

    def commit(self) -> None:
        if self._depth == 0:
            return
        try:
            if self._depth == 1:
                self._journal = None
        finally:
            self._depth -= 1
            self._lock.release()

    def rollback(self) -> None:
        if self._depth == 0:
            return
        try:
            if self._depth == 1 and self._journal is not None:
                for key, previous in self._journal.items():
                    if previous is None:
                        self._data.pop(key, None)
                    else:
                        self._data[key] = previous
                self._journal = None
        finally:
            self._depth -= 1
            self._lock.release()

    def close(self) -> None:
        """Close storage (no-op for in-memory)"""
        pass

    def snapshot(self) -> Dict[str, bytes]:
        """Get a copy of all data for debugging/inspection"""
        with self._lock:
            return dict(self._data)


class SQLiteWorldState(WorldStateInterface):
    """SQLite world state for persistence"""

    TABLE = "world_state"

    def __init__(self, db_path: Union[str, Path] = ":memory:"):
        self.db_path = str(db_path)
        self._lock = threading.RLock()
        self._in_transaction = False
        self._nested = 0
        with self._guard("open"):
            # DEFERRED isolation lets us control commit boundaries manually
            self._connection = sqlite3.connect(
                self.db_path, check_same_thread=False, isolation_level='DEFERRED'
            )
            if self.db_path != ":memory:":
                self._connection.execute("PRAGMA journal_mode = WAL")
                self._connection.execute("PRAGMA synchronous = NORMAL")
            self._connection.execute(f"""
                CREATE TABLE IF NOT EXISTS {self.TABLE} (
                    key TEXT PRIMARY KEY,
                    value BLOB NOT NULL
                )
            """)
            self._connection.commit()

    @contextmanager
    def _guard(self, operation: str):
        try:
            yield
        except sqlite3.Error as e:
            logger.error(f"World state {operation} failed: {e}")
            raise StoreFailureError(f"failed to {operation} world state: {e}") from e

    def _autocommit(self) -> None:
        if not self._in_transaction:
            self._connection.commit()

    def get(self, key: str) -> Optional[bytes]:
        with self._lock, self._guard("read from"):
            row = self._connection.execute(
                f"SELECT value FROM {self.TABLE} WHERE key = ?", (key,)
            ).fetchone()
            return bytes(row[0]) if row else None

    def put(self, key: str, value: bytes) -> None:
        with self._lock, self._guard("write to"):
            self._connection.execute(
                f"INSERT OR REPLACE INTO {self.TABLE} (key, value) VALUES (?, ?)",
                (key, sqlite3.Binary(bytes(value)))
            )
            self._autocommit()

    def delete(self, key: str) -> None:
        with self._lock, self._guard("delete from"):
            self._connection.execute(f"DELETE FROM {self.TABLE} WHERE key = ?", (key,))
            self._autocommit()

    def range_scan(self, start: str, end: str) -> Iterator[KeyValue]:
        with self._lock, self._guard("scan"):
            if end == "":
                cursor = self._connection.execute(
                    f"SELECT key, value FROM {self.TABLE} WHERE key >= ? ORDER BY key",
                    (start,)
                )
            else:
                cursor = self._connection.execute(
                    f"SELECT key, value FROM {self.TABLE} WHERE key >= ? AND key < ? ORDER BY key",
                    (start, end)
                )
            rows: List[KeyValue] = [(row[0], bytes(row[1])) for row in cursor.fetchall()]
        return iter(rows)

    def begin_transaction(self) -> None:
        self._lock.acquire()
        if self._in_transaction:
            # Joined an outer unit of work; keep the acquire balanced
            self._nested += 1
            return
        self._in_transaction = True

    def commit(self) -> None:
        if not self._in_transaction:
            return
        try:
            if self._nested:
                self._nested -= 1
                return
            self._in_transaction = False
            try:
                with self._guard("commit to"):
                    self._connection.commit()
            except StoreFailureError:
                # Discard the half-applied unit of work; the commit error is what surfaces
                try:
                    self._connection.rollback()
                except sqlite3.Error as e:
                    logger.error(f"World state roll back after failed commit failed: {e}")
                raise
        finally:
            self._lock.release()

    def rollback(self) -> None:
        if not self._in_transaction:
            return
        try:
            if self._nested:
                self._nested -= 1
                return
            self._in_transaction = False
            with self._guard("roll back"):
                self._connection.rollback()
        finally:
            self._lock.release()

    def close(self) -> None:
        """Close SQLite connection"""
        with self._lock:
            if self._connection:
                self._connection.close()
                self._connection = None


def create_world_state(backend: str = "memory", sqlite_path: Union[str, Path] = ":memory:") -> WorldStateInterface:
    """Build a world state backend by name ("memory" or "sqlite")"""
    if backend == "memory":
        return InMemoryWorldState()
    if backend == "sqlite":
        return SQLiteWorldState(sqlite_path)
    raise InvalidArgumentError(f"unknown storage backend: {backend}")
