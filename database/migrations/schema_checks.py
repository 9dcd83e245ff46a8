"""
Consultas de introspecção usadas pelas migrations para escrever
passos defensivos ("adicionar coluna se não existir", etc.).
Nenhuma sonda lança erro quando o objeto consultado não existe.
"""
import re
from typing import List

from database.adapters import DialectAdapter
from database.database import DialectKind

IDENTIFIER_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def validate_identifier(name: str) -> str:
    if not name or not IDENTIFIER_PATTERN.match(name):
        raise ValueError(f"Identificador SQL inválido: {name!r}")
    return name


class SchemaIntrospector:
    def __init__(self, adapter: DialectAdapter, dialect: DialectKind):
        self.adapter = adapter
        self.dialect = dialect

    async def table_exists(self, table: str) -> bool:
        if self.dialect is DialectKind.MYSQL:
            rows = await self.adapter.query(
                """
                SELECT TABLE_NAME AS name
                FROM INFORMATION_SCHEMA.TABLES
                WHERE TABLE_SCHEMA = DATABASE() AND TABLE_NAME = :table
                LIMIT 1
                """,
                {"table": table},
            )
            return len(rows) > 0

        rows = await self.adapter.query(
            "SELECT name FROM sqlite_master WHERE type = 'table' AND name = :table LIMIT 1",
            {"table": table},
        )
        return len(rows) > 0

    async def column_exists(self, table: str, column: str) -> bool:
        if self.dialect is DialectKind.MYSQL:
            rows = await self.adapter.query(
                """
                SELECT COLUMN_NAME AS name
                FROM INFORMATION_SCHEMA.COLUMNS
                WHERE TABLE_SCHEMA = DATABASE() AND TABLE_NAME = :table AND COLUMN_NAME = :column
                LIMIT 1
                """,
                {"table": table, "column": column},
            )
            return len(rows) > 0

        # PRAGMA não aceita parâmetros; tabela inexistente devolve zero linhas
        rows = await self.adapter.query(f"PRAGMA table_xinfo({validate_identifier(table)})")
        return any(row.get("name") == column for row in rows)

    async def index_exists(self, index: str, table: str = None) -> bool:
        if self.dialect is DialectKind.MYSQL:
            sql = """
                SELECT INDEX_NAME AS name
                FROM INFORMATION_SCHEMA.STATISTICS
                WHERE TABLE_SCHEMA = DATABASE() AND INDEX_NAME = :index
            """
            params = {"index": index}
            if table is not None:
                sql += " AND TABLE_NAME = :table"
                params["table"] = table
            rows = await self.adapter.query(sql + " LIMIT 1", params)
            return len(rows) > 0

        rows = await self.adapter.query(
            "SELECT name FROM sqlite_master WHERE type = 'index' AND name = :index LIMIT 1",
            {"index": index},
        )
        return len(rows) > 0

    async def primary_key_columns(self, table: str) -> List[str]:
        """Colunas da chave primária, na ordem da chave. Tabela inexistente devolve []."""
        if self.dialect is DialectKind.MYSQL:
            rows = await self.adapter.query(
                """
                SELECT COLUMN_NAME AS name
                FROM INFORMATION_SCHEMA.KEY_COLUMN_USAGE
                WHERE TABLE_SCHEMA = DATABASE() AND TABLE_NAME = :table AND CONSTRAINT_NAME = 'PRIMARY'
                ORDER BY ORDINAL_POSITION
                """,
                {"table": table},
            )
            return [row["name"] for row in rows]

        rows = await self.adapter.query(f"PRAGMA table_info({validate_identifier(table)})")
        keyed = sorted((row for row in rows if row.get("pk")), key=lambda row: row["pk"])
        return [row["name"] for row in keyed]
