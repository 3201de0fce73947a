"""Row-level access to the Word Pointe tables.

Routes talk to the database through :class:`Gateway` rather than writing SQL
for simple select/insert/update work. Filters are equality matches unless a
value is given as an ``(operator, value)`` tuple, e.g.
``{"recorded_at": (">=", since)}``. Mutating calls never commit; the caller
owns the transaction.
"""
from __future__ import annotations

import sqlite3
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Tuple

from .schema import READ_ONLY_TABLES, TABLE_COLUMNS

BOOLEAN_COLUMNS = {"is_leader", "undone", "active", "display_accommodation_note"}
OPERATORS = {"=", "!=", ">", ">=", "<", "<=", "like"}


def sql_now() -> str:
    """Current UTC time in the format SQLite's datetime('now') produces."""
    return datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")


def _row_to_dict(row: sqlite3.Row) -> Dict[str, Any]:
    data = dict(row)
    for key in BOOLEAN_COLUMNS.intersection(data):
        if data[key] is not None:
            data[key] = bool(data[key])
    return data


class Gateway:
    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn

    def _columns(self, table: str) -> Tuple[str, ...]:
        try:
            return TABLE_COLUMNS[table]
        except KeyError:
            raise ValueError(f"Unknown table: {table}") from None

    def _check_columns(self, table: str, names: Iterable[str]) -> None:
        allowed = self._columns(table)
        for name in names:
            if name not in allowed:
                raise ValueError(f"Unknown column {name!r} for table {table}")

    def _where(self, table: str, where: Optional[Dict[str, Any]]) -> Tuple[str, List[Any]]:
        if not where:
            return "", []
        self._check_columns(table, where)
        clauses = []
        params: List[Any] = []
        for column, value in where.items():
            op = "="
            if isinstance(value, tuple):
                op, value = value
                if op not in OPERATORS:
                    raise ValueError(f"Unsupported operator: {op}")
            if value is None and op == "=":
                clauses.append(f"{column} IS NULL")
                continue
            clauses.append(f"{column} {op.upper()} ?")
            params.append(value)
        return " WHERE " + " AND ".join(clauses), params

    def select(
        self,
        table: str,
        where: Optional[Dict[str, Any]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        self._columns(table)
        where_sql, params = self._where(table, where)
        sql = f"SELECT * FROM {table}{where_sql}"
        if order_by:
            self._check_columns(table, [order_by])
            direction = "DESC" if descending else "ASC"
            sql += f" ORDER BY {order_by} {direction}"
            # Rows written in the same second keep insertion order
            if order_by != "id" and "id" in self._columns(table):
                sql += f", id {direction}"
        if limit is not None:
            sql += " LIMIT ?"
            params.append(int(limit))
            if offset:
                sql += " OFFSET ?"
                params.append(int(offset))
        cursor = self.conn.execute(sql, params)
        return [_row_to_dict(row) for row in cursor.fetchall()]

    def single(
        self,
        table: str,
        where: Optional[Dict[str, Any]] = None,
        order_by: Optional[str] = None,
    ) -> Optional[Dict[str, Any]]:
        """First matching row, or None."""
        rows = self.select(table, where=where, order_by=order_by, limit=1)
        return rows[0] if rows else None

    def count(self, table: str, where: Optional[Dict[str, Any]] = None) -> int:
        self._columns(table)
        where_sql, params = self._where(table, where)
        row = self.conn.execute(f"SELECT COUNT(*) FROM {table}{where_sql}", params).fetchone()
        return int(row[0] or 0)

    def insert(self, table: str, values: Dict[str, Any]) -> Dict[str, Any]:
        if table in READ_ONLY_TABLES:
            raise ValueError(f"{table} is read-only")
        self._check_columns(table, values)
        columns = ", ".join(values)
        placeholders = ", ".join("?" for _ in values)
        cursor = self.conn.execute(
            f"INSERT INTO {table} ({columns}) VALUES ({placeholders}) RETURNING *",
            list(values.values()),
        )
        return _row_to_dict(cursor.fetchone())

    def update(
        self,
        table: str,
        values: Dict[str, Any],
        where: Dict[str, Any],
    ) -> List[Dict[str, Any]]:
        if table in READ_ONLY_TABLES:
            raise ValueError(f"{table} is read-only")
        if not where:
            raise ValueError("update requires a filter")
        self._check_columns(table, values)
        assignments = ", ".join(f"{column} = ?" for column in values)
        where_sql, params = self._where(table, where)
        cursor = self.conn.execute(
            f"UPDATE {table} SET {assignments}{where_sql} RETURNING *",
            list(values.values()) + params,
        )
        return [_row_to_dict(row) for row in cursor.fetchall()]

    def delete(self, table: str, where: Dict[str, Any]) -> int:
        if table in READ_ONLY_TABLES:
            raise ValueError(f"{table} is read-only")
        if not where:
            raise ValueError("delete requires a filter")
        where_sql, params = self._where(table, where)
        cursor = self.conn.execute(f"DELETE FROM {table}{where_sql}", params)
        return cursor.rowcount
