"""
Migration 017: Remove a coluna obsoleta site_locations.name.
A aplicação não lê nem grava mais esse campo.
"""
from database.database import DialectKind
from .base import DownPolicy, Migration, SchemaOps, StepOutcome


class Migration017_DropSiteLocationName(Migration):
    id = "017"
    name = "drop_site_location_name"
    description = "Remove site_locations.name"
    # SQLite: a coluna nunca saiu. MySQL: a coluna volta, mas vazia.
    down_policy = {
        DialectKind.SQLITE: DownPolicy.REVERSIBLE,
        DialectKind.MYSQL: DownPolicy.BEST_EFFORT,
    }

    async def upgrade(self, ops: SchemaOps) -> None:
        await ops.drop_column("site_locations", "name")

    async def downgrade(self, ops: SchemaOps) -> None:
        restored = await ops.add_column("site_locations", "name", "VARCHAR(255) NULL")
        if restored is StepOutcome.APPLIED:
            ops.unsupported("restaurar valores de site_locations.name", "valores removidos pela migration")
