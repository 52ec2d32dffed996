"""Database Module - SQLite Encrypted Blob Store

Durable implementation of the controller's key-value blob store.

Tables:
- blobs: key -> JSON text (gallery, last capture, audit log)

Every set() is its own transaction: either the new blob is committed or the
previous one stays. sqlite errors are re-raised as StorageError.

"""

from __future__ import annotations

from sqlcipher3 import dbapi2 as sqlite
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

from fpgallery.blobstore import BlobStore
from fpgallery.errors import StorageError

from .config import DB_PATH, get_db_key
from .logger import get_logger


logger = get_logger("database")


# ============================================================================
# DATABASE CLASS
# ============================================================================

class BlobDatabase(BlobStore):
    """SQLite blob store with encryption support."""

    def __init__(self, db_path: Path = None, encryption_key: str = None):
        """Initialize database connection.

        Args:
            db_path: Path to database file (":memory:" for a throwaway store)
            encryption_key: Encryption key for SQLCipher (read/generated from .db_key if None)
        """
        self.db_path = str(db_path or DB_PATH)
        self.encryption_key = encryption_key or get_db_key()
        self.conn = None
        self.encrypted = False

        try:
            self._connect()
            self._create_tables()
        except sqlite.Error as e:
            raise StorageError(f"Cannot open database {self.db_path}: {e}") from e

    def _connect(self):
        """Connect to database with encryption if available."""
        if self.db_path != ":memory:":
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)

        try:
            self.conn = sqlite.connect(self.db_path, check_same_thread=False)
            self.conn.execute(f"PRAGMA key = '{self.encryption_key}'")
            # Test if encryption works
            self.conn.execute("SELECT count(*) FROM sqlite_master")
            self.encrypted = True
            logger.info("✓ Using encrypted database (SQLCipher)")
        except sqlite.DatabaseError as e:
            # Fallback to an unkeyed connection (e.g. a plain SQLite file)
            logger.warning(f"⚠ SQLCipher key rejected, using unencrypted database: {e}")
            if self.conn:
                self.conn.close()
            self.conn = sqlite.connect(self.db_path, check_same_thread=False)
            self.encrypted = False

        # Row factory for dict-like access
        self.conn.row_factory = sqlite.Row

    def _create_tables(self):
        """Create database tables if they don't exist."""
        cursor = self.conn.cursor()

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS blobs (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL,
                updated_at TIMESTAMP NOT NULL
            )
        """)

        self.conn.commit()

    # ========================================================================
    # BLOB STORE
    # ========================================================================

    def get(self, key: str) -> Optional[str]:
        try:
            cursor = self.conn.cursor()
            cursor.execute("SELECT value FROM blobs WHERE key = ?", (key,))
            row = cursor.fetchone()
        except sqlite.Error as e:
            raise StorageError(f"Read failed for '{key}': {e}") from e

        return row["value"] if row else None

    def set(self, key: str, value: str) -> None:
        try:
            with self.conn:
                self.conn.execute(
                    """INSERT INTO blobs (key, value, updated_at) VALUES (?, ?, ?)
                       ON CONFLICT(key) DO UPDATE SET value = excluded.value,
                                                      updated_at = excluded.updated_at""",
                    (key, value, datetime.now(timezone.utc).isoformat())
                )
        except sqlite.Error as e:
            logger.error(f"Write failed for '{key}': {e}")
            raise StorageError(f"Write failed for '{key}': {e}") from e

    def remove(self, key: str) -> None:
        try:
            with self.conn:
                self.conn.execute("DELETE FROM blobs WHERE key = ?", (key,))
        except sqlite.Error as e:
            raise StorageError(f"Delete failed for '{key}': {e}") from e

    # ========================================================================
    # STATISTICS
    # ========================================================================

    def get_stats(self) -> Dict[str, Any]:
        """Get storage statistics.

        Returns:
            Dict with number of blobs, total size and encryption flag

        Raises:
            StorageError: If the query fails
        """
        try:
            cursor = self.conn.cursor()
            cursor.execute("SELECT COUNT(*) AS count, COALESCE(SUM(LENGTH(value)), 0) AS size FROM blobs")
            row = cursor.fetchone()
        except sqlite.Error as e:
            raise StorageError(f"Statistics query failed: {e}") from e

        return {
            "num_blobs": row["count"],
            "total_bytes": row["size"],
            "encrypted": self.encrypted
        }

    # ========================================================================
    # UTILITIES
    # ========================================================================

    def close(self):
        """Close database connection."""
        if self.conn:
            self.conn.close()
            self.conn = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
