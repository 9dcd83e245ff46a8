"""
Migration 013: Contador de SIDs por site, a partir dos SIDs numéricos existentes.
"""
from database.database import DialectKind
from .base import DownPolicy, Migration, SchemaOps

NEXT_SID_COLUMN = {
    DialectKind.SQLITE: "INTEGER NOT NULL DEFAULT 1",
    DialectKind.MYSQL: "INT NOT NULL DEFAULT 1",
}

# Sites criados depois da 003 ainda não têm contador
SEED_MISSING_COUNTERS = {
    DialectKind.SQLITE: "INSERT OR IGNORE INTO site_counters (site_id, next_ref) SELECT id, 1 FROM sites",
    DialectKind.MYSQL: "INSERT IGNORE INTO site_counters (site_id, next_ref) SELECT id, 1 FROM sites",
}

# Só sid_number puramente numérico conta; SQLite não tem REGEXP nativo
BACKFILL_NEXT_SID = {
    DialectKind.SQLITE: """
        UPDATE site_counters
        SET next_sid = (
            SELECT COALESCE(MAX(CAST(s.sid_number AS INTEGER)), 0) + 1
            FROM sids s
            WHERE s.site_id = site_counters.site_id
              AND s.sid_number <> ''
              AND s.sid_number NOT GLOB '*[^0-9]*'
        )
    """,
    DialectKind.MYSQL: """
        UPDATE site_counters sc
        SET sc.next_sid = (
            SELECT COALESCE(MAX(CAST(s.sid_number AS UNSIGNED)), 0) + 1
            FROM sids s
            WHERE s.site_id = sc.site_id
              AND s.sid_number REGEXP '^[0-9]+$'
        )
    """,
}


class Migration013_SiteCountersNextSid(Migration):
    id = "013"
    name = "site_counters_next_sid"
    description = "Adiciona site_counters.next_sid"
    down_policy = {
        DialectKind.SQLITE: DownPolicy.BEST_EFFORT,
        DialectKind.MYSQL: DownPolicy.REVERSIBLE,
    }

    async def upgrade(self, ops: SchemaOps) -> None:
        await ops.add_column("site_counters", "next_sid", NEXT_SID_COLUMN)
        await ops.execute(SEED_MISSING_COUNTERS, description="contadores de sites novos")
        await ops.execute(BACKFILL_NEXT_SID, description="backfill site_counters.next_sid")

    async def downgrade(self, ops: SchemaOps) -> None:
        await ops.drop_column("site_counters", "next_sid")
