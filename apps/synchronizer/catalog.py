"""
SQL Server catalog access for the synchronizer.

Wraps a SQLAlchemy connection with the two primitives a sync run needs:
listing user-defined objects of a kind, and executing a single statement.
"""

import logging
from typing import Protocol

from sqlalchemy import text
from sqlalchemy.engine import Connection

from utils.db import ensure_supported_backend
from utils.schemas import DatabaseObject, ObjectKind

logger = logging.getLogger(__name__)

CATALOG_QUERIES = {
    ObjectKind.PROCEDURE: """
        SELECT SCHEMA_NAME(schema_id) AS schema_name, name
        FROM sys.procedures
        WHERE type = 'P' AND is_ms_shipped = 0
        ORDER BY SCHEMA_NAME(schema_id), name
    """,
    ObjectKind.FUNCTION: """
        SELECT SCHEMA_NAME(schema_id) AS schema_name, name
        FROM sys.objects
        WHERE type IN ('FN', 'IF', 'TF') AND is_ms_shipped = 0
        ORDER BY SCHEMA_NAME(schema_id), name
    """,
    ObjectKind.VIEW: """
        SELECT SCHEMA_NAME(schema_id) AS schema_name, name
        FROM sys.views
        WHERE is_ms_shipped = 0
        ORDER BY SCHEMA_NAME(schema_id), name
    """,
}

DROP_STATEMENTS = {
    ObjectKind.PROCEDURE: "DROP PROCEDURE IF EXISTS {name}",
    ObjectKind.FUNCTION: "DROP FUNCTION IF EXISTS {name}",
    ObjectKind.VIEW: "DROP VIEW IF EXISTS {name}",
}


class ObjectCatalog(Protocol):
    """What a sync run needs from the database."""

    def list_objects(self, kind: ObjectKind) -> list[DatabaseObject]: ...

    def execute(self, sql: str) -> int: ...

    def drop(self, obj: DatabaseObject) -> None: ...


def quote_identifier(*parts: str) -> str:
    """Bracket-quote each identifier part: ('dbo', 'A]B') -> [dbo].[A]]B]."""
    return ".".join("[" + part.replace("]", "]]") + "]" for part in parts)


def drop_statement(obj: DatabaseObject) -> str:
    return DROP_STATEMENTS[obj.kind].format(name=quote_identifier(obj.schema_name, obj.name))


class SqlServerCatalog:
    """ObjectCatalog over an open SQLAlchemy connection to SQL Server."""

    def __init__(self, conn: Connection) -> None:
        ensure_supported_backend(conn)
        self.conn = conn

    def list_objects(self, kind: ObjectKind) -> list[DatabaseObject]:
        owned = not self.conn.in_transaction()
        rows = self.conn.execute(text(CATALOG_QUERIES[kind])).all()
        if owned:
            self.conn.commit()
        return [DatabaseObject(schema_name=row[0], name=row[1], kind=kind) for row in rows]

    def execute(self, sql: str) -> int:
        """
        Execute one statement and commit it.

        Driver-level execution keeps ':' and '%' in DDL bodies away from
        SQLAlchemy's parameter parsing. A transaction the caller already began
        is left to the caller: the statement joins it and nothing is committed
        or rolled back here.

        Returns:
            Rows affected as reported by the driver (-1 for most DDL)
        """
        owned = not self.conn.in_transaction()
        try:
            result = self.conn.exec_driver_sql(sql)
        except Exception:
            if owned:
                self.conn.rollback()
            raise

        if owned:
            self.conn.commit()
        return result.rowcount

    def drop(self, obj: DatabaseObject) -> None:
        self.execute(drop_statement(obj))
