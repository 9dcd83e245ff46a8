"""
Migration 015: Localizações sem label passam a usar o código do site,
então o "label efetivo" de uma localização nunca fica em branco.
"""
from database.database import DialectKind
from .base import DownPolicy, Migration, SchemaOps

BACKFILL_LOCATION_LABELS = {
    DialectKind.SQLITE: """
        UPDATE site_locations
        SET label = (SELECT s.code FROM sites s WHERE s.id = site_locations.site_id)
        WHERE label IS NULL OR TRIM(label) = ''
    """,
    DialectKind.MYSQL: """
        UPDATE site_locations sl
        JOIN sites s ON s.id = sl.site_id
        SET sl.label = s.code
        WHERE sl.label IS NULL OR TRIM(sl.label) = ''
    """,
}


class Migration015_NormalizeSiteLocationLabels(Migration):
    id = "015"
    name = "normalize_site_location_labels"
    description = "Preenche site_locations.label vazio com sites.code"
    down_policy = DownPolicy.BEST_EFFORT

    async def upgrade(self, ops: SchemaOps) -> None:
        await ops.execute(BACKFILL_LOCATION_LABELS, description="backfill site_locations.label")

    async def downgrade(self, ops: SchemaOps) -> None:
        ops.unsupported(
            "limpar labels preenchidos",
            "labels preenchidos pela migration não se distinguem dos informados pelo usuário",
        )
