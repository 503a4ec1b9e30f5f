"""
Nyx - Viewing Key Stores

Injectable persistence for viewing keys. One record per issued key
(key_id); several keys for the same (owner, account) coexist, and a
revocation only overwrites the record of the key it revokes.

Backends:
- MemoryViewingKeyStore: dict under a lock (tests, ephemeral use)
- SQLiteViewingKeyStore: sqlite3 with WAL and per-thread connections
"""

import sqlite3
import logging
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Protocol

from nyx.config import StoreConfig
from nyx.core.types import ViewingKey
from nyx.errors import ErrorKind, ViewingKeyError

logger = logging.getLogger("nyx.store")


class ViewingKeyStore(Protocol):
    """Keyed storage of viewing keys."""

    def put(self, key: ViewingKey) -> None:
        ...

    def get(self, key_id: str) -> Optional[ViewingKey]:
        ...

    def list_keys(self, owner_public_key: bytes, account: Optional[bytes] = None) -> List[ViewingKey]:
        ...

    def delete(self, key_id: str) -> bool:
        ...


def _require_key_id(key: ViewingKey) -> str:
    if not key.key_id:
        raise ViewingKeyError("Viewing key has no key_id", ErrorKind.MALFORMED_VIEWING_KEY)
    return key.key_id


class MemoryViewingKeyStore:
    """In-process store."""

    def __init__(self):
        self._keys: Dict[str, ViewingKey] = {}
        self._lock = threading.Lock()

    def put(self, key: ViewingKey) -> None:
        with self._lock:
            self._keys[_require_key_id(key)] = key

    def get(self, key_id: str) -> Optional[ViewingKey]:
        with self._lock:
            return self._keys.get(key_id)

    def list_keys(self, owner_public_key: bytes, account: Optional[bytes] = None) -> List[ViewingKey]:
        with self._lock:
            keys = [
                k for k in self._keys.values()
                if k.owner_public_key == owner_public_key
                and (account is None or k.account == account)
            ]
        return sorted(keys, key=lambda k: k.created_at)

    def delete(self, key_id: str) -> bool:
        with self._lock:
            return self._keys.pop(key_id, None) is not None

    def __len__(self) -> int:
        with self._lock:
            return len(self._keys)


# ============================================================================
# SQLITE
# ============================================================================

SCHEMA_VERSION = 1

SCHEMA = """
-- Schema version tracking
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER PRIMARY KEY
);

-- Viewing keys (one row per issued key)
CREATE TABLE IF NOT EXISTS viewing_keys (
    key_id TEXT PRIMARY KEY,
    public_key BLOB NOT NULL,
    owner_public_key BLOB NOT NULL,
    account BLOB NOT NULL,
    derivation_path TEXT NOT NULL,
    expires_at REAL,
    created_at REAL NOT NULL,
    key_json TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_vk_owner ON viewing_keys(owner_public_key);
CREATE INDEX IF NOT EXISTS idx_vk_owner_account ON viewing_keys(owner_public_key, account);
"""


class SQLiteViewingKeyStore:
    """
    SQLite-backed store.

    Connections are per thread; writes go through transaction().
    """

    def __init__(self, config: Optional[StoreConfig] = None, db_path: Optional[str] = None):
        self.config = config or StoreConfig(backend="sqlite")
        self.db_path = db_path or self.config.db_path

        if self.db_path != ":memory:":
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)

        self._local = threading.local()
        self._connections: List[sqlite3.Connection] = []
        self._conn_lock = threading.Lock()
        self._init_schema()

    def _get_connection(self) -> sqlite3.Connection:
        """Get connection for current thread."""
        conn = getattr(self._local, 'conn', None)
        if conn is None:
            conn = sqlite3.connect(self.db_path, check_same_thread=False, isolation_level='DEFERRED')
            conn.row_factory = sqlite3.Row
            conn.execute("PRAGMA journal_mode=WAL")
            conn.execute("PRAGMA synchronous=NORMAL")
            self._local.conn = conn
            with self._conn_lock:
                self._connections.append(conn)
        return conn

    def _init_schema(self) -> None:
        """Initialize database schema."""
        conn = self._get_connection()
        cursor = conn.cursor()
        cursor.execute("""
            SELECT name FROM sqlite_master
            WHERE type='table' AND name='schema_version'
        """)

        if cursor.fetchone() is None:
            cursor.executescript(SCHEMA)
            cursor.execute("INSERT INTO schema_version VALUES (?)", (SCHEMA_VERSION,))
            conn.commit()
            logger.info(f"Viewing key store initialized with schema version {SCHEMA_VERSION}")
        else:
            cursor.execute("SELECT version FROM schema_version")
            version = cursor.fetchone()[0]
            if version > SCHEMA_VERSION:
                raise ViewingKeyError(
                    "Viewing key store schema is newer than this library",
                    ErrorKind.STORE_FAILURE,
                    {"schema_version": version},
                )

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """Context manager for database transactions."""
        conn = self._get_connection()
        try:
            yield conn
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            raise ViewingKeyError(f"Store transaction failed: {e}", ErrorKind.STORE_FAILURE) from e

    def put(self, key: ViewingKey) -> None:
        key_id = _require_key_id(key)
        with self.transaction() as conn:
            conn.execute("""
                INSERT OR REPLACE INTO viewing_keys
                (key_id, public_key, owner_public_key, account, derivation_path,
                 expires_at, created_at, key_json)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """, (
                key_id,
                key.public_key.data,
                key.owner_public_key,
                key.account,
                key.derivation_path,
                key.expires_at,
                key.created_at,
                key.to_json(),
            ))

    def get(self, key_id: str) -> Optional[ViewingKey]:
        row = self._get_connection().execute(
            "SELECT key_json FROM viewing_keys WHERE key_id = ?", (key_id,)
        ).fetchone()
        return ViewingKey.from_json(row["key_json"]) if row else None

    def list_keys(self, owner_public_key: bytes, account: Optional[bytes] = None) -> List[ViewingKey]:
        conn = self._get_connection()
        if account is None:
            rows = conn.execute(
                "SELECT key_json FROM viewing_keys WHERE owner_public_key = ? ORDER BY created_at",
                (owner_public_key,),
            ).fetchall()
        else:
            rows = conn.execute(
                "SELECT key_json FROM viewing_keys WHERE owner_public_key = ? AND account = ? "
                "ORDER BY created_at",
                (owner_public_key, account),
            ).fetchall()
        return [ViewingKey.from_json(row["key_json"]) for row in rows]

    def delete(self, key_id: str) -> bool:
        with self.transaction() as conn:
            cursor = conn.execute("DELETE FROM viewing_keys WHERE key_id = ?", (key_id,))
            return cursor.rowcount > 0

    def close(self) -> None:
        """Close all connections."""
        with self._conn_lock:
            for conn in self._connections:
                conn.close()
            self._connections.clear()
        self._local = threading.local()


def create_store(config: Optional[StoreConfig] = None) -> ViewingKeyStore:
    """Build the store named by config.backend."""
    config = config or StoreConfig()
    if config.backend == "memory":
        return MemoryViewingKeyStore()
    if config.backend == "sqlite":
        return SQLiteViewingKeyStore(config)
    raise ViewingKeyError(f"Unknown store backend: {config.backend}", ErrorKind.INVALID_CONFIG)
