"""RemoteBackend 的 SQLite 实现

本地文件充当远端库，用于开发与测试。表名与列名在拼接 SQL 前按实际 schema 校验。
每次写入立即提交。
"""

import json
from pathlib import Path
from typing import Any

import aiosqlite
import structlog

from ..exceptions import SyncError
from .sqlite_init import JSON_COLUMNS, init_db, table_columns

log = structlog.get_logger()


class SqliteBackend:
    """RemoteBackend 的 SQLite 实现"""

    def __init__(self, conn: aiosqlite.Connection, schema: dict[str, set[str]]) -> None:
        self._conn = conn
        self._schema = schema

    @classmethod
    async def open(cls, db_path: str) -> "SqliteBackend":
        """打开（必要时创建）数据库文件并初始化 schema

        Args:
            db_path: SQLite 数据库文件路径

        Returns:
            SqliteBackend 实例
        """
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        conn = await aiosqlite.connect(db_path)
        conn.row_factory = aiosqlite.Row
        await init_db(conn)
        schema = await table_columns(conn)
        log.info("sqlite_backend_opened", db_path=db_path)
        return cls(conn, schema)

    @property
    def conn(self) -> aiosqlite.Connection:
        return self._conn

    async def insert(self, table: str, row: dict[str, Any]) -> None:
        columns = self._check(table, row)
        placeholders = ", ".join("?" for _ in columns)
        await self._write(
            f"INSERT INTO {table} ({', '.join(columns)}) VALUES ({placeholders})",
            [self._encode(table, c, row[c]) for c in columns],
        )

    async def update(self, table: str, row_id: str, values: dict[str, Any]) -> None:
        columns = self._check(table, values)
        if not columns:
            return
        assignments = ", ".join(f"{c} = ?" for c in columns)
        await self._write(
            f"UPDATE {table} SET {assignments} WHERE id = ?",
            [*(self._encode(table, c, values[c]) for c in columns), row_id],
        )

    async def delete(self, table: str, row_id: str) -> None:
        self._check(table, {})
        await self._write(f"DELETE FROM {table} WHERE id = ?", [row_id])

    async def select(
        self,
        table: str,
        *,
        eq: dict[str, Any] | None = None,
        any_eq: dict[str, Any] | None = None,
    ) -> list[dict[str, Any]]:
        eq = eq or {}
        any_eq = any_eq or {}
        self._check(table, {**eq, **any_eq})

        clauses: list[str] = []
        params: list[Any] = []
        for column, value in eq.items():
            clauses.append(f"{column} = ?")
            params.append(value)
        if any_eq:
            clauses.append("(" + " OR ".join(f"{c} = ?" for c in any_eq) + ")")
            params.extend(any_eq.values())

        sql = f"SELECT * FROM {table}"
        if clauses:
            sql += " WHERE " + " AND ".join(clauses)
        sql += " ORDER BY rowid ASC"

        try:
            cursor = await self._conn.execute(sql, params)
            rows = await cursor.fetchall()
        except aiosqlite.Error as e:
            raise self._wrap(e) from e
        return [self._decode(table, dict(row)) for row in rows]

    async def health_check(self) -> bool:
        try:
            cursor = await self._conn.execute("SELECT 1")
            await cursor.fetchone()
            return True
        except Exception as e:
            log.warning("sqlite_health_check_failed", error=str(e))
            return False

    async def close(self) -> None:
        await self._conn.close()

    # ============================================================
    # 内部
    # ============================================================

    def _check(self, table: str, values: dict[str, Any]) -> list[str]:
        known = self._schema.get(table)
        if known is None:
            raise SyncError(f"未知表: {table}", code="unknown_table", recoverable=False)
        unknown = [c for c in values if c not in known]
        if unknown:
            raise SyncError(
                f"未知列: {table}.{', '.join(unknown)}",
                code="unknown_column",
                recoverable=False,
            )
        return list(values)

    @staticmethod
    def _encode(table: str, column: str, value: Any) -> Any:
        if column in JSON_COLUMNS.get(table, set()) or isinstance(value, (list, dict)):
            return json.dumps(value if value is not None else [], ensure_ascii=False)
        return value

    @staticmethod
    def _decode(table: str, row: dict[str, Any]) -> dict[str, Any]:
        for column in JSON_COLUMNS.get(table, set()):
            if isinstance(row.get(column), str):
                row[column] = json.loads(row[column])
        return row

    async def _write(self, sql: str, params: list[Any]) -> None:
        try:
            await self._conn.execute(sql, params)
            await self._conn.commit()
        except aiosqlite.Error as e:
            raise self._wrap(e) from e

    @staticmethod
    def _wrap(e: Exception) -> SyncError:
        if isinstance(e, aiosqlite.IntegrityError):
            return SyncError(
                "远端约束冲突",
                code="integrity_error",
                detail=str(e),
                recoverable=False,
            )
        return SyncError("SQLite 写入失败", code="sqlite_error", detail=str(e))
