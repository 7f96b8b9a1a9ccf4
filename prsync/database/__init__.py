"""Local ledger database.

``Database`` opens connections to the SQLite file holding the ledger and
brings its schema up to date through Alembic. It carries no ledger logic;
the models in ``prsync.models`` persist themselves through its connections.
"""

import logging
import os
import re
from contextlib import contextmanager
from pathlib import Path

from alembic import command
from alembic.config import Config
from alembic.util.exc import CommandError
from sqlalchemy import create_engine, pool
from sqlalchemy.exc import SQLAlchemyError

try:
    from pysqlcipher3 import dbapi2 as sqlite3

    SQLCIPHER_AVAILABLE = True
except ImportError:
    import sqlite3

    SQLCIPHER_AVAILABLE = False

# Bound once so tests that replace the driver module can still catch it
SQLiteError = sqlite3.Error

logger = logging.getLogger(__name__)

DEFAULT_DB_PATH = "data/ledger.db"
ALEMBIC_INI = Path(__file__).resolve().parents[2] / "alembic.ini"

_KEY_PATTERN = re.compile(r"^[a-zA-Z0-9_-]+$")


class DatabaseError(Exception):
    """Base exception for ledger database errors."""

    pass


class DatabaseConnectionError(DatabaseError):
    """Raised when the ledger database cannot be opened."""

    pass


def _sanitize_encryption_key(key: str) -> str:
    """Check that a SQLCipher key can be inlined into ``PRAGMA key``.

    Raises:
        ValueError: If key contains characters other than [a-zA-Z0-9_-]
    """
    if not _KEY_PATTERN.match(key):
        raise ValueError(
            "Encryption key contains invalid characters. "
            "Only alphanumeric, underscore, and hyphen allowed."
        )
    return key


class Database:
    """Handle on the ledger's SQLite file.

    Every ``connection()`` is a fresh autocommit connection with WAL
    journaling and foreign keys on. When ``pysqlcipher3`` is installed and a
    key is given, the file is encrypted.
    """

    def __init__(self, db_path: str, encryption_key: str | None = None):
        """
        Args:
            db_path: Path to the ledger file, or ":memory:"
            encryption_key: SQLCipher key; ignored without pysqlcipher3

        Raises:
            DatabaseConnectionError: If the data directory cannot be created
        """
        self.db_path = db_path
        self.encryption_key = encryption_key
        self.encryption_enabled = encryption_key is not None and SQLCIPHER_AVAILABLE

        if db_path == ":memory:":
            return
        try:
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.error(f"Failed to create database directory for {db_path}: {e}")
            raise DatabaseConnectionError(
                f"Cannot create database directory: {e}"
            ) from e

    @classmethod
    def from_env(cls) -> "Database":
        """Open the ledger named by DB_PATH, keyed by DB_ENCRYPTION_KEY."""
        db_key = os.getenv("DB_ENCRYPTION_KEY") or None
        if db_key is not None and not SQLCIPHER_AVAILABLE:
            logger.warning("DB_ENCRYPTION_KEY set but pysqlcipher3 is not installed")
        return cls(db_path=os.getenv("DB_PATH", DEFAULT_DB_PATH), encryption_key=db_key)

    def migrate(self) -> None:
        """Upgrade the ledger schema to the latest Alembic revision.

        Alembic runs over a connection from ``_connect``, so an encrypted
        ledger is keyed before the migration reads or creates it.

        Raises:
            DatabaseError: If the migration fails
        """
        alembic_config = Config(str(ALEMBIC_INI))
        alembic_config.set_main_option(
            "sqlalchemy.url", f"sqlite:///{os.path.abspath(self.db_path)}"
        )
        alembic_config.attributes["configure_logger"] = False
        engine = create_engine(
            "sqlite://", creator=self._connect, poolclass=pool.NullPool
        )

        logger.debug(f"Migrating ledger schema in {self.db_path}")
        try:
            with engine.begin() as connection:
                alembic_config.attributes["connection"] = connection
                command.upgrade(alembic_config, "head")
        except (SQLAlchemyError, CommandError) as e:
            logger.error(f"Schema migration failed for {self.db_path}: {e}")
            raise DatabaseError(f"Schema migration failed: {e}") from e
        finally:
            engine.dispose()

    def schema_revision(self) -> str | None:
        """Current Alembic revision of the ledger, or None before migration."""
        with self.connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                "SELECT name FROM sqlite_master "
                "WHERE type = 'table' AND name = 'alembic_version'"
            )
            if cursor.fetchone() is None:
                return None
            cursor.execute("SELECT version_num FROM alembic_version")
            row = cursor.fetchone()
        return row[0] if row else None

    @contextmanager
    def connection(self):
        """Yield a configured connection; commit on success, roll back on error.

        Usage:
            with db.connection() as conn:
                conn.execute("SELECT * FROM transactions")

        Raises:
            DatabaseConnectionError: If the file cannot be opened or keyed
        """
        try:
            conn = self._connect()
        except SQLiteError as e:
            logger.error(f"Failed to connect to database: {e}", exc_info=True)
            raise DatabaseConnectionError(f"Database connection failed: {e}") from e

        try:
            yield conn
            conn.commit()
        except Exception as e:
            conn.rollback()
            logger.error(f"Database transaction rolled back: {e}")
            raise
        finally:
            conn.close()

    def _connect(self):
        """Open a connection and apply the key and PRAGMAs.

        Raises:
            sqlite3.Error: If opening or a PRAGMA fails
            ValueError: If the encryption key is malformed
        """
        pragmas = ["PRAGMA journal_mode=WAL", "PRAGMA foreign_keys=ON"]
        if self.encryption_enabled:
            # Must run before anything reads the encrypted file
            key = _sanitize_encryption_key(self.encryption_key)
            pragmas.insert(0, f"PRAGMA key = '{key}'")

        conn = sqlite3.connect(
            self.db_path,
            check_same_thread=False,
            isolation_level=None,  # Autocommit mode - each statement is a transaction
        )
        try:
            for pragma in pragmas:
                conn.execute(pragma)
        except SQLiteError as e:
            conn.close()
            logger.error(f"Failed to configure database PRAGMAs: {e}")
            raise

        return conn
