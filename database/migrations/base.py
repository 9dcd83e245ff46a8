"""
Base do sistema de migrations.
Define a classe Migration, o handle SchemaOps entregue a cada migration,
os resultados por passo (StepOutcome) e a tabela de controle `migrations`.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Dict, List, Mapping, Optional, Sequence, Union

from pydantic import field_validator
from sqlalchemy.exc import DBAPIError
from sqlmodel import SQLModel

from database.adapters import DialectAdapter
from database.database import DialectKind
from .schema_checks import SchemaIntrospector, validate_identifier

logger = logging.getLogger(__name__)

MIGRATIONS_TABLE = "migrations"

SQLVariants = Mapping[DialectKind, Optional[str]]
SQL = Union[str, SQLVariants]


class MigrationError(RuntimeError):
    """Erro base do sistema de migrations."""


class CatalogError(MigrationError):
    """Catálogo de migrations inconsistente (ids duplicados, fora de ordem...)."""


class MigrationNotFoundError(MigrationError):
    pass


class MigrationNotAppliedError(MigrationError):
    pass


class MigrationIrreversibleError(MigrationError):
    pass


class MigrationLockError(MigrationError):
    pass


class StepOutcome(str, Enum):
    APPLIED = "applied"
    # O estado desejado já existia (coluna presente, índice ausente num drop...)
    SKIPPED_ALREADY_PRESENT = "skipped_already_present"
    SKIPPED_UNSUPPORTED = "skipped_unsupported"


class DownPolicy(str, Enum):
    REVERSIBLE = "reversible"
    BEST_EFFORT = "best_effort"
    UNSUPPORTED = "unsupported"


@dataclass
class StepResult:
    description: str
    outcome: StepOutcome
    detail: Optional[str] = None


class MigrationRecord(SQLModel):
    """Linha da tabela `migrations`."""

    id: str
    name: str
    applied_at: Optional[datetime] = None

    @field_validator("applied_at", mode="before")
    def parse_applied_at(cls, value):
        # SQLite devolve o timestamp como texto "YYYY-MM-DD HH:MM:SS.fff"
        if isinstance(value, str):
            return datetime.fromisoformat(value)
        return value


def quote(name: str) -> str:
    return f"`{validate_identifier(name)}`"


def _summarize(sql: str) -> str:
    return " ".join(sql.split())[:80]


class SchemaOps:
    """
    Handle entregue a upgrade()/downgrade().

    Cada helper devolve um StepOutcome e registra o passo em `steps`.
    Erros de `execute` são fatais para a migration; `optional` registra
    a falha do engine como SKIPPED_UNSUPPORTED e segue em frente.
    """

    def __init__(self, adapter: DialectAdapter, dialect: DialectKind):
        self.adapter = adapter
        self.dialect = dialect
        self.schema = SchemaIntrospector(adapter, dialect)
        self.steps: List[StepResult] = []

    def pick(self, variants: SQLVariants) -> Optional[str]:
        if self.dialect not in variants:
            raise CatalogError(f"SQL sem variante para o dialeto {self.dialect.value}")
        return variants[self.dialect]

    def _resolve(self, sql: SQL) -> Optional[str]:
        if isinstance(sql, str):
            return sql
        return self.pick(sql)

    def _record(self, description: str, outcome: StepOutcome, detail: Optional[str] = None) -> StepOutcome:
        self.steps.append(StepResult(description, outcome, detail))
        logger.debug("   %s: %s", outcome.value, description)
        return outcome

    def unsupported(self, description: str, reason: str) -> StepOutcome:
        """Passo documentado como não aplicável neste dialeto."""
        logger.info("   ℹ️ %s ignorado em %s: %s", description, self.dialect.value, reason)
        return self._record(description, StepOutcome.SKIPPED_UNSUPPORTED, reason)

    async def execute(self, sql: SQL, params: Optional[dict] = None, description: Optional[str] = None) -> StepOutcome:
        statement = self._resolve(sql)
        if statement is None:
            return self.unsupported(description or "sql", f"sem equivalente em {self.dialect.value}")
        await self.adapter.execute(statement, params)
        return self._record(description or _summarize(statement), StepOutcome.APPLIED)

    async def optional(self, sql: SQL, params: Optional[dict] = None, description: Optional[str] = None) -> StepOutcome:
        """Instrução não essencial: falha do engine é registrada e ignorada."""
        statement = self._resolve(sql)
        if statement is None:
            return self.unsupported(description or "sql", f"sem equivalente em {self.dialect.value}")
        description = description or _summarize(statement)
        try:
            await self.adapter.execute(statement, params)
        except DBAPIError as exc:
            logger.warning("   ⚠️ Passo opcional falhou (%s): %s", description, exc.orig)
            return self._record(description, StepOutcome.SKIPPED_UNSUPPORTED, str(exc.orig))
        return self._record(description, StepOutcome.APPLIED)

    async def create_table(self, table: str, ddl: SQL) -> StepOutcome:
        description = f"create table {table}"
        if await self.schema.table_exists(table):
            return self._record(description, StepOutcome.SKIPPED_ALREADY_PRESENT)
        return await self.execute(ddl, description=description)

    async def drop_table(self, table: str) -> StepOutcome:
        description = f"drop table {table}"
        if not await self.schema.table_exists(table):
            return self._record(description, StepOutcome.SKIPPED_ALREADY_PRESENT)
        return await self.execute(f"DROP TABLE {quote(table)}", description=description)

    async def add_column(self, table: str, column: str, definition: SQL) -> StepOutcome:
        description = f"add column {table}.{column}"
        if await self.schema.column_exists(table, column):
            return self._record(description, StepOutcome.SKIPPED_ALREADY_PRESENT)
        resolved = self._resolve(definition)
        if resolved is None:
            return self.unsupported(description, f"sem equivalente em {self.dialect.value}")
        return await self.execute(
            f"ALTER TABLE {quote(table)} ADD COLUMN {quote(column)} {resolved}",
            description=description,
        )

    async def drop_column(self, table: str, column: str) -> StepOutcome:
        description = f"drop column {table}.{column}"
        if not await self.schema.column_exists(table, column):
            return self._record(description, StepOutcome.SKIPPED_ALREADY_PRESENT)
        if self.dialect is DialectKind.SQLITE:
            return self.unsupported(description, "SQLite exige reconstruir a tabela para remover colunas")
        return await self.execute(
            f"ALTER TABLE {quote(table)} DROP COLUMN {quote(column)}",
            description=description,
        )

    async def modify_column(self, table: str, column: str, definition: str) -> StepOutcome:
        description = f"modify column {table}.{column}"
        if self.dialect is DialectKind.SQLITE:
            return self.unsupported(description, "SQLite não altera definição de colunas existentes")
        if not await self.schema.column_exists(table, column):
            return self.unsupported(description, "coluna inexistente")
        return await self.execute(
            f"ALTER TABLE {quote(table)} MODIFY COLUMN {quote(column)} {definition}",
            description=description,
        )

    async def create_index(self, name: str, table: str, columns: Sequence[str], unique: bool = False) -> StepOutcome:
        description = f"create index {name}"
        if await self.schema.index_exists(name, table):
            return self._record(description, StepOutcome.SKIPPED_ALREADY_PRESENT)
        column_list = ", ".join(quote(column) for column in columns)
        kind = "UNIQUE INDEX" if unique else "INDEX"
        return await self.execute(
            f"CREATE {kind} {quote(name)} ON {quote(table)} ({column_list})",
            description=description,
        )

    async def drop_index(self, name: str, table: str) -> StepOutcome:
        description = f"drop index {name}"
        if not await self.schema.index_exists(name, table):
            return self._record(description, StepOutcome.SKIPPED_ALREADY_PRESENT)
        return await self.execute(
            {
                DialectKind.SQLITE: f"DROP INDEX {quote(name)}",
                DialectKind.MYSQL: f"DROP INDEX {quote(name)} ON {quote(table)}",
            },
            description=description,
        )

    def summary(self) -> Dict[str, int]:
        counts: Dict[str, int] = {}
        for step in self.steps:
            counts[step.outcome.value] = counts.get(step.outcome.value, 0) + 1
        return counts


class Migration:
    """Classe base para migrations"""

    id: str  # Ex: "001", "002"
    name: str  # Ex: "add_role_to_users"
    description: str = ""
    # Um DownPolicy ou um dict por dialeto
    down_policy: Union[DownPolicy, Mapping[DialectKind, DownPolicy]] = DownPolicy.REVERSIBLE

    def rollback_policy(self, dialect: DialectKind) -> DownPolicy:
        if isinstance(self.down_policy, DownPolicy):
            return self.down_policy
        return self.down_policy[dialect]

    async def upgrade(self, ops: SchemaOps) -> None:
        """Aplica a migration."""
        raise NotImplementedError("Subclasses devem implementar upgrade()")

    async def downgrade(self, ops: SchemaOps) -> None:
        """
        Reverte a migration.
        Migrations com DownPolicy.UNSUPPORTED nunca têm downgrade() chamado.
        """
        raise NotImplementedError("Subclasses devem implementar downgrade()")

    async def is_applied(self, adapter: DialectAdapter) -> bool:
        """Verifica se a migration já foi aplicada"""
        rows = await adapter.query(
            f"SELECT COUNT(*) AS total FROM {MIGRATIONS_TABLE} WHERE id = :id",
            {"id": self.id},
        )
        return rows[0]["total"] > 0

    async def mark_applied(self, adapter: DialectAdapter) -> None:
        """Registra a migration como aplicada (applied_at fica com o default do banco)"""
        await adapter.execute(
            f"INSERT INTO {MIGRATIONS_TABLE} (id, name) VALUES (:id, :name)",
            {"id": self.id, "name": self.name},
        )

    async def mark_unapplied(self, adapter: DialectAdapter) -> None:
        """Remove o registro da migration (para rollback)"""
        await adapter.execute(
            f"DELETE FROM {MIGRATIONS_TABLE} WHERE id = :id",
            {"id": self.id},
        )

    def __repr__(self) -> str:
        return f"<Migration {self.id} {self.name}>"


CREATE_MIGRATIONS_TABLE: SQLVariants = {
    DialectKind.SQLITE: f"""
        CREATE TABLE IF NOT EXISTS {MIGRATIONS_TABLE} (
            id VARCHAR(255) PRIMARY KEY,
            name VARCHAR(255) NOT NULL,
            applied_at TEXT NOT NULL DEFAULT (strftime('%Y-%m-%d %H:%M:%f', 'now'))
        )
    """,
    DialectKind.MYSQL: f"""
        CREATE TABLE IF NOT EXISTS {MIGRATIONS_TABLE} (
            id VARCHAR(255) PRIMARY KEY,
            name VARCHAR(255) NOT NULL,
            applied_at TIMESTAMP(3) NOT NULL DEFAULT CURRENT_TIMESTAMP(3)
        ) ENGINE=InnoDB
    """,
}


async def ensure_migrations_table(adapter: DialectAdapter, dialect: DialectKind) -> None:
    """Garante que a tabela migrations existe"""
    await adapter.execute(CREATE_MIGRATIONS_TABLE[dialect])


async def get_applied_migrations(adapter: DialectAdapter) -> Dict[str, MigrationRecord]:
    """Retorna os registros de migrations aplicadas, indexados por id"""
    rows = await adapter.query(f"SELECT id, name, applied_at FROM {MIGRATIONS_TABLE} ORDER BY id")
    return {row["id"]: MigrationRecord.model_validate(row) for row in rows}
