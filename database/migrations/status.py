"""
Status das migrations: junta o catálogo com a tabela `migrations`.
Somente leitura; não cria a tabela de controle se ela não existir.
"""
import logging
from datetime import datetime
from typing import List, Optional, Sequence, Type

from sqlmodel import SQLModel

from database.adapters import DialectAdapter
from .base import MIGRATIONS_TABLE, Migration, get_applied_migrations
from .registry import get_all_migrations
from .schema_checks import SchemaIntrospector

logger = logging.getLogger(__name__)


class MigrationStatus(SQLModel):
    id: str
    name: str
    applied: bool
    applied_at: Optional[datetime] = None


class StatusReporter:
    def __init__(self, adapter: DialectAdapter, migrations: Optional[Sequence[Type[Migration]]] = None):
        self.adapter = adapter
        self.migrations = list(migrations) if migrations is not None else get_all_migrations()

    async def get_status(self) -> List[MigrationStatus]:
        introspector = SchemaIntrospector(self.adapter, self.adapter.dialect)
        if await introspector.table_exists(MIGRATIONS_TABLE):
            applied = await get_applied_migrations(self.adapter)
        else:
            applied = {}

        known = {migration.id for migration in self.migrations}
        for unknown in sorted(set(applied) - known):
            logger.warning("⚠️ Registro de migration %s não existe no catálogo", unknown)

        statuses = []
        for migration in self.migrations:
            record = applied.get(migration.id)
            statuses.append(
                MigrationStatus(
                    id=migration.id,
                    name=migration.name,
                    applied=record is not None,
                    applied_at=record.applied_at if record else None,
                )
            )
        return statuses
