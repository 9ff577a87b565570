"""sqlite access for codecoach

Projects, challenges, chat turns and GitHub links share one database file
(codecoach/data/codecoach.db unless CODECOACH_DB_PATH says otherwise).
Repositories only touch it through get_db_connection() and db_transaction().
"""

from __future__ import annotations

import atexit
import os
import random
import sqlite3
import time
from collections.abc import Callable, Generator
from contextlib import contextmanager
from functools import wraps
from pathlib import Path
from queue import Empty, Full, Queue
from threading import Lock
from typing import Any, TypeVar

from codecoach.config import (
    DB_CONNECT_TIMEOUT,
    DB_POOL_SIZE,
    DB_POOL_TIMEOUT,
    DB_RETRY_BASE_DELAY,
    DB_RETRY_JITTER,
    DB_RETRY_MAX,
    DB_RETRY_MAX_DELAY,
)
from codecoach.observability.logging import get_logger
from codecoach.observability.telemetry import counter, log_event

F = TypeVar("F", bound=Callable[..., Any])

DEFAULT_DB_PATH = Path(__file__).parent.parent / "data" / "codecoach.db"

logger = get_logger(__name__)


def _is_lock_error(error: sqlite3.OperationalError) -> bool:
    message = str(error).lower()
    return "locked" in message or "busy" in message


def retry_on_db_lock(
    max_retries: int = DB_RETRY_MAX,
    base_delay: float = DB_RETRY_BASE_DELAY,
    max_delay: float = DB_RETRY_MAX_DELAY,
) -> Callable[[F], F]:
    """
    Retry a repository write while sqlite reports the database as locked.

    Concurrent chat turns and challenge completions can collide on the same
    file. Other OperationalErrors are raised on the first attempt.
    """

    def decorator(func: F) -> F:
        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            attempt = 0
            while True:
                try:
                    return func(*args, **kwargs)
                except sqlite3.OperationalError as e:
                    if not _is_lock_error(e) or attempt >= max_retries:
                        raise
                    delay = min(base_delay * 2**attempt, max_delay)
                    delay += random.uniform(0, delay * DB_RETRY_JITTER)
                    attempt += 1
                    counter("database.lock_retry")
                    logger.warning(
                        "%s hit a locked database (retry %d/%d in %.2fs)",
                        func.__qualname__,
                        attempt,
                        max_retries,
                        delay,
                    )
                    time.sleep(delay)

        return wrapper  # type: ignore[return-value]

    return decorator


class DatabaseConnectionPool:
    """
    Fixed-size queue of sqlite connections shared across request threads.

    When every pooled connection is checked out past DB_POOL_TIMEOUT an
    overflow connection is opened; it is closed instead of pooled on return.
    """

    def __init__(self, db_path: Path, pool_size: int = DB_POOL_SIZE):
        self.db_path = db_path
        self.pool_size = pool_size
        self.pool: Queue[sqlite3.Connection] = Queue(maxsize=pool_size)
        self.closed = False
        self._lock = Lock()
        self._overflow: set[int] = set()

        for _ in range(pool_size):
            self.pool.put(self._connect())
        atexit.register(self.close_all)

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self.db_path), timeout=DB_CONNECT_TIMEOUT, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode=WAL")
        conn.execute("PRAGMA synchronous=NORMAL")
        conn.execute("PRAGMA foreign_keys=ON")
        return conn

    @property
    def overflow_count(self) -> int:
        with self._lock:
            return len(self._overflow)

    def get_connection(self) -> sqlite3.Connection:
        if self.closed:
            raise RuntimeError("Connection pool has been closed")
        try:
            return self.pool.get(timeout=DB_POOL_TIMEOUT)
        except Empty:
            conn = self._connect()
            with self._lock:
                self._overflow.add(id(conn))
                overflow = len(self._overflow)
            counter("database.pool_overflow")
            log_event("database.pool_exhausted", pool_size=self.pool_size, overflow=overflow)
            return conn

    def return_connection(self, conn: sqlite3.Connection) -> None:
        with self._lock:
            overflow = id(conn) in self._overflow
            self._overflow.discard(id(conn))

        if overflow or self.closed:
            conn.close()
            return
        try:
            self.pool.put_nowait(conn)
        except Full:
            conn.close()

    def close_all(self) -> None:
        self.closed = True
        while True:
            try:
                self.pool.get_nowait().close()
            except Empty:
                break


def get_db_path() -> Path:
    env_path = os.getenv("CODECOACH_DB_PATH")
    return Path(env_path) if env_path else DEFAULT_DB_PATH


# Keyed by path so tests can point CODECOACH_DB_PATH at a temp file
_POOLS: dict[str, DatabaseConnectionPool] = {}
_POOLS_LOCK = Lock()


def get_pool() -> DatabaseConnectionPool:
    key = str(get_db_path())
    with _POOLS_LOCK:
        pool = _POOLS.get(key)
        if pool is None or pool.closed:
            pool = _POOLS[key] = DatabaseConnectionPool(Path(key))
        return pool


def close_pools() -> None:
    with _POOLS_LOCK:
        for pool in _POOLS.values():
            pool.close_all()
        _POOLS.clear()


@contextmanager
def get_db_connection() -> Generator[sqlite3.Connection, None, None]:
    """
    Borrow a pooled connection.

    Raises:
        FileNotFoundError: If init_database() has not created the file yet
    """
    db_path = get_db_path()
    if not db_path.exists():
        raise FileNotFoundError(f"Database not found: {db_path} (run init_database() first)")

    pool = get_pool()
    conn = pool.get_connection()
    try:
        yield conn
    finally:
        pool.return_connection(conn)


@contextmanager
def db_transaction() -> Generator[sqlite3.Connection, None, None]:
    """Borrow a connection and commit on success, roll back on error."""
    with get_db_connection() as conn:
        try:
            yield conn
        except Exception:
            conn.rollback()
            raise
        conn.commit()


def init_database() -> None:
    """Create the data directory and tables if they are missing."""
    from codecoach.infrastructure.database_schema import init_database as create_schema

    create_schema(get_db_path())


def validate_schema() -> bool:
    """
    Raises:
        ValueError: If a table or column is missing
    """
    from codecoach.infrastructure.database_schema import validate_schema as check_schema

    with get_db_connection() as conn:
        return check_schema(conn)


def get_pool_stats() -> dict[str, Any]:
    """Pool usage for /health/db."""
    pool = get_pool()
    available = pool.pool.qsize()
    in_use = pool.pool_size - available
    return {
        "pool_size": pool.pool_size,
        "available": available,
        "in_use": in_use,
        "overflow": pool.overflow_count,
        "usage_percent": round(in_use / pool.pool_size * 100, 1) if pool.pool_size else 0.0,
        "closed": pool.closed,
    }
