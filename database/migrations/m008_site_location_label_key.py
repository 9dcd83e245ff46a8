"""
Migration 008: Permite várias localizações com as mesmas coordenadas desde
que o label seja diferente. label_key normaliza NULL/branco para um valor
fixo, então só existe uma localização "sem label" por coordenada.
"""
from database.database import DialectKind
from .base import DownPolicy, Migration, SchemaOps

LABEL_KEY_EXPRESSION = "IFNULL(NULLIF(TRIM(label), ''), '__UNLABELED__')"

# SQLite só aceita colunas geradas VIRTUAL em ALTER TABLE
LABEL_KEY_COLUMN = {
    DialectKind.SQLITE: f"VARCHAR(255) GENERATED ALWAYS AS ({LABEL_KEY_EXPRESSION}) VIRTUAL",
    DialectKind.MYSQL: f"VARCHAR(255) GENERATED ALWAYS AS ({LABEL_KEY_EXPRESSION}) STORED",
}

COORDINATES = ["site_id", "floor", "suite", "row", "rack"]

RESTORE_COORDS_INDEX = (
    "CREATE UNIQUE INDEX idx_site_locations_unique_coords "
    "ON site_locations (site_id, floor, suite, `row`, rack)"
)


class Migration008_SiteLocationLabelKey(Migration):
    id = "008"
    name = "site_location_label_key"
    description = "Unicidade de localização por coordenadas + label_key"
    down_policy = {
        DialectKind.SQLITE: DownPolicy.BEST_EFFORT,
        DialectKind.MYSQL: DownPolicy.REVERSIBLE,
    }

    async def upgrade(self, ops: SchemaOps) -> None:
        await ops.drop_index("idx_site_locations_unique_coords", "site_locations")
        await ops.add_column("site_locations", "label_key", LABEL_KEY_COLUMN)
        await ops.create_index(
            "idx_site_locations_unique_coords_label",
            "site_locations",
            COORDINATES + ["label_key"],
            unique=True,
        )

    async def downgrade(self, ops: SchemaOps) -> None:
        await ops.drop_index("idx_site_locations_unique_coords_label", "site_locations")
        await ops.drop_column("site_locations", "label_key")
        # Pode falhar se já existirem coordenadas repetidas com labels diferentes
        if not await ops.schema.index_exists("idx_site_locations_unique_coords", "site_locations"):
            await ops.optional(RESTORE_COORDS_INDEX, description="restaura idx_site_locations_unique_coords")
