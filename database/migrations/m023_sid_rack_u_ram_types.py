"""
Migration 023: Posições de rack alfanuméricas ("12a") e RAM fracionária (0.5 GB).

Instalações antigas criaram sids.rack_u e sids.ram_gb como INT. No SQLite
a afinidade de tipo já aceita os novos valores, então nada muda lá.
Não há downgrade: voltar para INT descartaria esses valores.
"""
from .base import DownPolicy, Migration, SchemaOps

COLUMN_TYPES = {
    "rack_u": "VARCHAR(16) NULL",
    "ram_gb": "DECIMAL(10,3) NULL",
}


class Migration023_SidRackURamTypes(Migration):
    id = "023"
    name = "sid_racku_string_ram_decimal"
    description = "sids.rack_u VARCHAR e sids.ram_gb DECIMAL"
    down_policy = DownPolicy.UNSUPPORTED

    async def upgrade(self, ops: SchemaOps) -> None:
        for column, definition in COLUMN_TYPES.items():
            await ops.modify_column("sids", column, definition)
