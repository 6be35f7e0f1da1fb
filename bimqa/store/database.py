"""ElementStore — SQLite-backed element table, partitioned by model urn.

Uses stdlib sqlite3 only.  Column names that end up in SQL text come
from :class:`~bimqa.models.element.Attribute` or the fixed category
column, never from caller-supplied strings.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable

from bimqa.config import CATEGORY_COLUMN
from bimqa.errors import QueryConstructionError
from bimqa.models.element import Attribute, ElementRow, PropertyMap

logger = logging.getLogger(__name__)

_SCHEMA_SQL = """\
CREATE TABLE IF NOT EXISTS elements (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    urn TEXT NOT NULL,
    guid TEXT,
    dbId INTEGER NOT NULL,
    name TEXT,
    component_id INTEGER,
    component_type TEXT NOT NULL,
    type_name TEXT,
    family_name TEXT,
    is_asset TEXT,
    level_number TEXT,
    room_type TEXT,
    room_name TEXT,
    system_type TEXT,
    system_name TEXT,
    manufacturer TEXT,
    model_name TEXT,
    specification TEXT,
    omniclass_title TEXT,
    omniclass_number TEXT,
    props_flat TEXT,
    embedding TEXT,
    embedding_model TEXT,
    created_at TEXT DEFAULT CURRENT_TIMESTAMP
);

CREATE INDEX IF NOT EXISTS idx_urn ON elements(urn);
CREATE INDEX IF NOT EXISTS idx_urn_component_type ON elements(urn, component_type);
CREATE INDEX IF NOT EXISTS idx_urn_omniclass ON elements(urn, omniclass_title);
CREATE INDEX IF NOT EXISTS idx_urn_level ON elements(urn, level_number);
CREATE INDEX IF NOT EXISTS idx_dbid ON elements(dbId);
"""

_FTS_COLUMNS = (
    "name", "component_type", "type_name", "family_name",
    "level_number", "room_name", "omniclass_title",
)

_FTS_SQL = f"""\
CREATE VIRTUAL TABLE IF NOT EXISTS elements_fts USING fts5(
    {", ".join(_FTS_COLUMNS)}, content=elements, content_rowid=id
);
"""

_new_cols = ", ".join(f"new.{c}" for c in _FTS_COLUMNS)
_old_cols = ", ".join(f"old.{c}" for c in _FTS_COLUMNS)

_FTS_TRIGGER_SQL = f"""\
CREATE TRIGGER IF NOT EXISTS elements_ai AFTER INSERT ON elements BEGIN
    INSERT INTO elements_fts(rowid, {", ".join(_FTS_COLUMNS)})
    VALUES (new.id, {_new_cols});
END;

CREATE TRIGGER IF NOT EXISTS elements_ad AFTER DELETE ON elements BEGIN
    INSERT INTO elements_fts(elements_fts, rowid, {", ".join(_FTS_COLUMNS)})
    VALUES ('delete', old.id, {_old_cols});
END;

CREATE TRIGGER IF NOT EXISTS elements_au AFTER UPDATE ON elements BEGIN
    INSERT INTO elements_fts(elements_fts, rowid, {", ".join(_FTS_COLUMNS)})
    VALUES ('delete', old.id, {_old_cols});
    INSERT INTO elements_fts(rowid, {", ".join(_FTS_COLUMNS)})
    VALUES (new.id, {_new_cols});
END;
"""

_INSERT_COLUMNS = (
    "urn", "guid", "dbId", "name",
    "component_id", "component_type", "type_name", "family_name", "is_asset",
    "level_number", "room_type", "room_name",
    "system_type", "system_name",
    "manufacturer", "model_name", "specification",
    "omniclass_title", "omniclass_number",
    "props_flat", "embedding", "embedding_model",
)

_INSERT_SQL = (
    f"INSERT INTO elements ({', '.join(_INSERT_COLUMNS)}) "
    f"VALUES ({', '.join('?' for _ in _INSERT_COLUMNS)})"
)


def column_for(attr: Attribute | str) -> str:
    """Return the SQL column for *attr*.

    Only :class:`Attribute` members and the category column are accepted.
    """
    if isinstance(attr, Attribute):
        return attr.value
    if attr == CATEGORY_COLUMN:
        return CATEGORY_COLUMN
    raise QueryConstructionError(f"Attribute {attr!r} is not queryable")


@dataclass
class RowFilter:
    """Conjunctive row filter: partition AND ids AND category AND attribute."""

    urn: str
    ids: list[int] | None = None
    category: str | None = None
    attr: Attribute | None = None
    value: str | None = None

    def to_sql(self) -> tuple[str, list[Any]]:
        clauses = ["urn = ?"]
        params: list[Any] = [self.urn]

        if self.ids:
            clauses.append(f"id IN ({', '.join('?' for _ in self.ids)})")
            params.extend(int(i) for i in self.ids)

        if self.category:
            clauses.append(f"{CATEGORY_COLUMN} = ?")
            params.append(self.category)

        if self.attr is not None and self.value is not None and str(self.value).strip():
            clauses.append(f"{column_for(self.attr)} = ?")
            params.append(self.value)

        return " AND ".join(clauses), params


def _clean(value: Any) -> str | None:
    if value is None:
        return None
    s = str(value).strip()
    return s or None


class ElementStore:
    """SQLite element table with partition replace and filtered reads.

    Parameters
    ----------
    db_path:
        Path to the SQLite database file.  Use ``':memory:'`` for
        in-memory databases (useful for testing).
    """

    def __init__(self, db_path: str | Path = ":memory:") -> None:
        self._db_path = str(db_path)
        self._conn: sqlite3.Connection | None = None
        self.fts_enabled = False

    @property
    def conn(self) -> sqlite3.Connection:
        """Lazy-initialise and return the database connection."""
        if self._conn is None:
            if self._db_path != ":memory:":
                Path(self._db_path).parent.mkdir(parents=True, exist_ok=True)
            self._conn = sqlite3.connect(self._db_path)
            self._conn.row_factory = sqlite3.Row
            self._conn.execute("PRAGMA journal_mode=WAL")
            self._conn.execute("PRAGMA foreign_keys=ON")
            self._init_schema()
        return self._conn

    def _init_schema(self) -> None:
        """Create tables and indexes if they don't exist."""
        self.conn.executescript(_SCHEMA_SQL)
        try:
            self.conn.executescript(_FTS_SQL)
            self.conn.executescript(_FTS_TRIGGER_SQL)
            self.fts_enabled = True
        except sqlite3.OperationalError:
            # FTS5 may not be available on all builds
            logger.debug("FTS5 not available; full-text search disabled.")
        self.conn.commit()

    def close(self) -> None:
        """Close the database connection."""
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    # -- Writes --------------------------------------------------------------

    def replace_partition(self, urn: str, rows: Iterable[ElementRow]) -> int:
        """Delete every row of *urn* and insert *rows* in one transaction.

        Returns the number of inserted rows.  On failure the transaction
        is rolled back and the previous rows stay in place.
        """
        params = [self._row_params(r) for r in rows]
        with self.conn:
            self.conn.execute("DELETE FROM elements WHERE urn = ?", (urn,))
            self.conn.executemany(_INSERT_SQL, params)
        logger.info("Replaced partition %s with %d rows", urn, len(params))
        return len(params)

    def delete_partition(self, urn: str) -> int:
        """Delete all rows of *urn*.  Returns the number of deleted rows."""
        with self.conn:
            cur = self.conn.execute("DELETE FROM elements WHERE urn = ?", (urn,))
        return cur.rowcount

    def insert_rows(self, rows: Iterable[ElementRow]) -> int:
        """Append *rows* in a single transaction."""
        params = [self._row_params(r) for r in rows]
        if not params:
            return 0
        with self.conn:
            self.conn.executemany(_INSERT_SQL, params)
        return len(params)

    # -- Partition-level reads ----------------------------------------------

    def count(self, urn: str) -> int:
        """Return the number of rows in *urn*."""
        cur = self.conn.execute("SELECT COUNT(*) FROM elements WHERE urn = ?", (urn,))
        return cur.fetchone()[0]

    def categories(self, urn: str, *, mode: str = "type") -> list[str]:
        """Distinct non-empty categories of *urn*.

        ``mode='omniclass'`` lists OmniClass titles instead of the
        normalized category.
        """
        column = Attribute.OMNICLASS_TITLE.value if mode in ("omniclass", "omni") else CATEGORY_COLUMN
        cur = self.conn.execute(
            f"SELECT DISTINCT {column} AS v FROM elements "
            f"WHERE urn = ? AND {column} IS NOT NULL AND TRIM({column}) != '' "
            f"ORDER BY {column}",
            (urn,),
        )
        return [v for v in (_clean(r["v"]) for r in cur.fetchall()) if v]

    def distinct_values(
        self,
        urn: str,
        attr: Attribute | str,
        *,
        category: str | None = None,
        contains: str | None = None,
        limit: int = 50,
    ) -> list[str]:
        """Distinct non-empty values of *attr* within *urn*."""
        column = column_for(attr)
        sql = (
            f"SELECT DISTINCT {column} AS v FROM elements "
            f"WHERE urn = ? AND {column} IS NOT NULL AND TRIM({column}) != ''"
        )
        params: list[Any] = [urn]
        if category:
            sql += f" AND {CATEGORY_COLUMN} = ?"
            params.append(category)
        if contains:
            sql += f" AND {column} LIKE ?"
            params.append(f"%{contains}%")
        sql += " LIMIT ?"
        params.append(int(limit))
        cur = self.conn.execute(sql, params)
        values: list[str] = []
        for row in cur.fetchall():
            v = _clean(row["v"])
            if v and v not in values:
                values.append(v)
        return values

    def property_maps(self, urn: str, *, limit: int) -> list[PropertyMap]:
        """Flattened property maps of the first *limit* rows of *urn*."""
        cur = self.conn.execute(
            "SELECT props_flat FROM elements WHERE urn = ? ORDER BY id LIMIT ?",
            (urn, int(limit)),
        )
        return [PropertyMap.from_json(r["props_flat"]) for r in cur.fetchall()]

    def embeddings(self, urn: str) -> list[tuple[int, list[float]]]:
        """``(id, vector)`` for every row of *urn* that has a stored vector."""
        cur = self.conn.execute(
            "SELECT id, embedding FROM elements WHERE urn = ? AND embedding IS NOT NULL ORDER BY id",
            (urn,),
        )
        out: list[tuple[int, list[float]]] = []
        for row in cur.fetchall():
            try:
                vec = json.loads(row["embedding"])
            except (json.JSONDecodeError, TypeError):
                logger.debug("Skipping unreadable embedding for row %s", row["id"])
                continue
            if isinstance(vec, list) and vec:
                out.append((row["id"], [float(x) for x in vec]))
        return out

    def get_rows(self, urn: str) -> list[ElementRow]:
        """All rows of *urn* in insertion order."""
        cur = self.conn.execute("SELECT * FROM elements WHERE urn = ? ORDER BY id", (urn,))
        return [self._row_to_element(r) for r in cur.fetchall()]

    def search_text(self, urn: str, text: str, *, limit: int = 20) -> list[ElementRow]:
        """Full-text search over names, categories, types and locations.

        Falls back to LIKE search if FTS5 is unavailable.
        """
        conn = self.conn
        if self.fts_enabled:
            try:
                cur = conn.execute(
                    """\
                    SELECT elements.* FROM elements_fts
                    JOIN elements ON elements_fts.rowid = elements.id
                    WHERE elements_fts MATCH ? AND elements.urn = ?
                    LIMIT ?
                    """,
                    (text, urn, int(limit)),
                )
                return [self._row_to_element(r) for r in cur.fetchall()]
            except sqlite3.OperationalError:
                logger.debug("FTS query failed for %r; using LIKE", text, exc_info=True)
        like = f"%{text}%"
        cur = self.conn.execute(
            "SELECT * FROM elements WHERE urn = ? AND "
            "(name LIKE ? OR component_type LIKE ? OR type_name LIKE ? OR family_name LIKE ?) "
            "LIMIT ?",
            (urn, like, like, like, like, int(limit)),
        )
        return [self._row_to_element(r) for r in cur.fetchall()]

    # -- Filtered reads ------------------------------------------------------

    def count_where(self, flt: RowFilter) -> int:
        where, params = flt.to_sql()
        cur = self.conn.execute(f"SELECT COUNT(*) FROM elements WHERE {where}", params)
        return cur.fetchone()[0]

    def distinct_where(self, flt: RowFilter, attr: Attribute, *, limit: int) -> list[str]:
        column = column_for(attr)
        where, params = flt.to_sql()
        cur = self.conn.execute(
            f"SELECT DISTINCT {column} AS v FROM elements "
            f"WHERE {where} AND {column} IS NOT NULL AND TRIM({column}) != '' LIMIT ?",
            [*params, int(limit)],
        )
        return [v for v in (_clean(r["v"]) for r in cur.fetchall()) if v]

    def group_count_where(self, flt: RowFilter, attr: Attribute, *, limit: int) -> list[tuple[str, int]]:
        column = column_for(attr)
        where, params = flt.to_sql()
        cur = self.conn.execute(
            f"SELECT {column} AS v, COUNT(*) AS cnt FROM elements "
            f"WHERE {where} AND {column} IS NOT NULL AND TRIM({column}) != '' "
            f"GROUP BY {column} ORDER BY cnt DESC, {column} LIMIT ?",
            [*params, int(limit)],
        )
        return [(str(r["v"]).strip(), r["cnt"]) for r in cur.fetchall()]

    def property_values_where(self, flt: RowFilter, key: str) -> list[Any]:
        """Value stored under *key* in each filtered row's property map.

        Rows without the key yield *None*.
        """
        where, params = flt.to_sql()
        if '"' not in key:
            path = f'$."{key}"'
            cur = self.conn.execute(
                "SELECT json_extract(props_flat, ?) AS v, json_type(props_flat, ?) AS t "
                f"FROM elements WHERE {where} ORDER BY id",
                [path, path, *params],
            )
            # json_extract turns JSON booleans into 0/1
            return [
                r["t"] == "true" if r["t"] in ("true", "false") else r["v"]
                for r in cur.fetchall()
            ]
        cur = self.conn.execute(
            f"SELECT props_flat FROM elements WHERE {where} ORDER BY id", params,
        )
        return [PropertyMap.from_json(r["props_flat"]).get(key) for r in cur.fetchall()]

    def rows_where(self, flt: RowFilter, *, limit: int) -> list[ElementRow]:
        where, params = flt.to_sql()
        cur = self.conn.execute(
            f"SELECT * FROM elements WHERE {where} ORDER BY id LIMIT ?",
            [*params, int(limit)],
        )
        return [self._row_to_element(r) for r in cur.fetchall()]

    # -- Internal ------------------------------------------------------------

    @staticmethod
    def _row_params(row: ElementRow) -> tuple[Any, ...]:
        return (
            row.urn, row.guid, row.db_id, row.name,
            row.component_id, row.component_type, row.type_name, row.family_name, row.is_asset,
            row.level_number, row.room_type, row.room_name,
            row.system_type, row.system_name,
            row.manufacturer, row.model_name, row.specification,
            row.omniclass_title, row.omniclass_number,
            row.props_flat.to_json(),
            json.dumps(row.embedding) if row.embedding else None,
            row.embedding_model if row.embedding else None,
        )

    @staticmethod
    def _row_to_element(row: sqlite3.Row) -> ElementRow:
        """Convert a database row to an ElementRow model."""
        embedding = None
        if row["embedding"]:
            try:
                embedding = [float(x) for x in json.loads(row["embedding"])]
            except (json.JSONDecodeError, TypeError, ValueError):
                embedding = None
        return ElementRow(
            id=row["id"],
            urn=row["urn"],
            guid=row["guid"],
            db_id=row["dbId"],
            name=row["name"],
            component_id=row["component_id"],
            component_type=row["component_type"],
            type_name=row["type_name"],
            family_name=row["family_name"],
            is_asset=row["is_asset"],
            level_number=row["level_number"],
            room_type=row["room_type"],
            room_name=row["room_name"],
            system_type=row["system_type"],
            system_name=row["system_name"],
            manufacturer=row["manufacturer"],
            model_name=row["model_name"],
            specification=row["specification"],
            omniclass_title=row["omniclass_title"],
            omniclass_number=row["omniclass_number"],
            props_flat=PropertyMap.from_json(row["props_flat"]),
            embedding=embedding,
            embedding_model=row["embedding_model"],
        )
