"""
Migration 020: Índice por posição no rack (sids.rack_u).
"""
from .base import Migration, SchemaOps


class Migration020_SidRackU(Migration):
    id = "020"
    name = "sid_rack_u"

    async def upgrade(self, ops: SchemaOps) -> None:
        await ops.create_index("idx_sids_rack_u", "sids", ["rack_u"])

    async def downgrade(self, ops: SchemaOps) -> None:
        await ops.drop_index("idx_sids_rack_u", "sids")
