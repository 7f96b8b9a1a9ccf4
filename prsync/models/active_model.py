"""ActiveRecord-style base class for ledger rows.

Each subclass maps one ledger table. Rows are keyed by a text primary key
(a uuid, or a property name) that the ledger assigns before the first save,
so ``save`` is an upsert: it inserts unknown keys and updates known ones.
Queries return rows in the order the ledger recorded them.
"""

from datetime import datetime, timezone
from typing import Any, Optional

from prsync.database import Database


class ActiveModelError(Exception):
    """Raised when a ledger row fails validation."""

    pass


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class ActiveModel:
    """Base class for ledger row models.

    Subclasses set ``table_name``, ``primary_key`` and ``_allowed_fields``
    and may override ``_before_save`` to validate.
    """

    table_name: str
    primary_key: str
    _allowed_fields: set[str] = set()

    def __init__(self, database: Database, **kwargs):
        """
        Args:
            database: Ledger database the row lives in
            **kwargs: Column values

        Raises:
            ValueError: If a keyword is not a column of the model
        """
        unknown = set(kwargs) - self._allowed_fields
        if unknown:
            raise ValueError(f"Invalid fields: {unknown}")

        self._database = database
        self.__dict__.update(kwargs)

        stamp = _now()
        self.created_at = kwargs.get("created_at") or stamp
        self.updated_at = kwargs.get("updated_at") or stamp

    def __repr__(self):
        return f"{self.__class__.__name__}({self.primary_key}={self._key()})"

    def _key(self) -> Any:
        return getattr(self, self.primary_key, None)

    def _columns(self) -> dict[str, Any]:
        """Column values of this row; private attributes are skipped."""
        return {k: v for k, v in vars(self).items() if not k.startswith("_")}

    def _before_save(self) -> None:
        """Validation hook run by ``save``.

        Raises:
            ActiveModelError: If the row is invalid
        """
        pass

    def save(self) -> bool:
        """Insert the row, or update it when its key is already stored.

        ``created_at`` of a stored row is never overwritten.

        Raises:
            ActiveModelError: If validation fails
            ValueError: If the primary key is not set
            SQLiteError: If the statement fails
        """
        self._before_save()

        key = self._key()
        if key is None:
            raise ValueError(
                f"{self.primary_key} is required for {self.__class__.__name__} record"
            )

        exists = self.find_by_id(self._database, key) is not None
        self.updated_at = _now()
        if exists:
            self._update(key)
        else:
            self._insert()
        return True

    def _insert(self) -> None:
        columns = self._columns()
        names = ", ".join(columns)
        placeholders = ", ".join("?" for _ in columns)
        with self._database.connection() as conn:
            conn.execute(
                f"INSERT INTO {self.table_name} ({names}) VALUES ({placeholders})",
                list(columns.values()),
            )

    def _update(self, key: Any) -> None:
        columns = {
            name: value
            for name, value in self._columns().items()
            if name not in (self.primary_key, "created_at")
        }
        assignments = ", ".join(f"{name} = ?" for name in columns)
        with self._database.connection() as conn:
            conn.execute(
                f"UPDATE {self.table_name} SET {assignments} "
                f"WHERE {self.primary_key} = ?",
                [*columns.values(), key],
            )

    def delete(self) -> bool:
        """Delete the row.

        Raises:
            ValueError: If the primary key is not set
            SQLiteError: If the statement fails
        """
        key = self._key()
        if key is None:
            raise ValueError(
                f"Cannot delete {self.__class__.__name__} without {self.primary_key}"
            )

        with self._database.connection() as conn:
            conn.execute(
                f"DELETE FROM {self.table_name} WHERE {self.primary_key} = ?", (key,)
            )
        return True

    @classmethod
    def find_by_id(cls, database: Database, key: Any) -> Optional["ActiveModel"]:
        """Row with the given primary key, or None."""
        return cls.find_by(database, **{cls.primary_key: key})

    @classmethod
    def find_by(cls, database: Database, **criteria) -> Optional["ActiveModel"]:
        """First row matching all criteria, or None."""
        rows = cls.where(database, _limit=1, **criteria)
        return rows[0] if rows else None

    @classmethod
    def where(cls, database: Database, _limit: int | None = None, **criteria) -> list:
        """Rows whose columns equal the given values, in insertion order.

        Args:
            database: Ledger database
            _limit: Maximum number of rows to return
            **criteria: Column name and value pairs to match
        """
        query = f"SELECT * FROM {cls.table_name}{cls._where_clause(criteria)}"
        # rowid keeps the order in which the ledger recorded the rows
        query += " ORDER BY rowid"
        if _limit:
            query += f" LIMIT {int(_limit)}"

        with database.connection() as conn:
            cursor = conn.execute(query, list(criteria.values()))
            names = [desc[0] for desc in cursor.description]
            rows = cursor.fetchall()

        return [cls(database, **dict(zip(names, row))) for row in rows]

    @classmethod
    def count(cls, database: Database, **criteria) -> int:
        """Number of rows matching the criteria."""
        query = f"SELECT COUNT(*) FROM {cls.table_name}{cls._where_clause(criteria)}"
        with database.connection() as conn:
            return conn.execute(query, list(criteria.values())).fetchone()[0]

    @classmethod
    def all(cls, database: Database) -> list:
        """Every row of the table."""
        return cls.where(database)

    @staticmethod
    def _where_clause(criteria: dict[str, Any]) -> str:
        if not criteria:
            return ""
        return " WHERE " + " AND ".join(f"{name} = ?" for name in criteria)
