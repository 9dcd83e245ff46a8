"""
Migration 016: Modelos de localização.

- DATACENTRE: andar + sala + fileira + rack, sem área
- DOMESTIC: andar + área, sem sala/fileira/rack

A unicidade passa a considerar o modelo e chaves normalizadas
(NULL/branco viram '__NONE__'), porque NULL não colide em índices UNIQUE.
No SQLite as colunas suite/row/rack continuam NOT NULL: o engine não
altera a definição de colunas existentes.
"""
from database.database import DialectKind
from .base import DownPolicy, Migration, SchemaOps

TEMPLATE_TYPES = ("DATACENTRE", "DOMESTIC")

_TEMPLATE_LIST = ", ".join(f"'{template}'" for template in TEMPLATE_TYPES)

TEMPLATE_TYPE_COLUMN = {
    DialectKind.SQLITE: f"VARCHAR(16) NOT NULL DEFAULT 'DATACENTRE' CHECK (template_type IN ({_TEMPLATE_LIST}))",
    DialectKind.MYSQL: f"ENUM({_TEMPLATE_LIST}) NOT NULL DEFAULT 'DATACENTRE'",
}

# coluna gerada -> (coluna de origem, tamanho)
KEY_COLUMNS = {
    "suite_key": ("suite", 50),
    "row_key": ("row", 50),
    "rack_key": ("rack", 50),
    "area_key": ("area", 64),
}

RELAXED_COLUMNS = ("suite", "row", "rack")

IDENTITY_COLUMNS = [
    "site_id", "template_type", "floor", "suite_key", "row_key", "rack_key", "area_key", "label_key",
]

PREVIOUS_UNIQUE_INDEX = "idx_site_locations_unique_coords_label"

RESTORE_PREVIOUS_INDEX = (
    f"CREATE UNIQUE INDEX {PREVIOUS_UNIQUE_INDEX} "
    "ON site_locations (site_id, floor, suite, `row`, rack, label_key)"
)


def key_column(source: str, size: int):
    expression = f"IFNULL(NULLIF(TRIM(`{source}`), ''), '__NONE__')"
    # SQLite só aceita colunas geradas VIRTUAL em ALTER TABLE
    return {
        DialectKind.SQLITE: f"VARCHAR({size}) GENERATED ALWAYS AS ({expression}) VIRTUAL",
        DialectKind.MYSQL: f"VARCHAR({size}) GENERATED ALWAYS AS ({expression}) STORED",
    }


class Migration016_SiteLocationTemplates(Migration):
    id = "016"
    name = "site_location_templates"
    description = "site_locations.template_type, área e unicidade por modelo"
    # suite/row/rack nunca voltam a NOT NULL: localizações DOMESTIC não teriam valor
    down_policy = DownPolicy.BEST_EFFORT

    async def upgrade(self, ops: SchemaOps) -> None:
        await ops.add_column("site_locations", "template_type", TEMPLATE_TYPE_COLUMN)
        await ops.add_column("site_locations", "area", "VARCHAR(64) NULL")
        await ops.add_column("site_locations", "name", "VARCHAR(255) NULL")

        for column in RELAXED_COLUMNS:
            await ops.modify_column("site_locations", column, "VARCHAR(50) NULL")

        await ops.execute(
            "UPDATE site_locations SET template_type = 'DATACENTRE' WHERE template_type IS NULL",
            description="backfill site_locations.template_type",
        )

        await ops.drop_index(PREVIOUS_UNIQUE_INDEX, "site_locations")
        for key, (source, size) in KEY_COLUMNS.items():
            await ops.add_column("site_locations", key, key_column(source, size))
        await ops.create_index(
            "idx_site_locations_unique_identity",
            "site_locations",
            IDENTITY_COLUMNS,
            unique=True,
        )

    async def downgrade(self, ops: SchemaOps) -> None:
        await ops.drop_index("idx_site_locations_unique_identity", "site_locations")
        for key in reversed(list(KEY_COLUMNS)):
            await ops.drop_column("site_locations", key)
        await ops.drop_column("site_locations", "name")
        await ops.drop_column("site_locations", "area")
        await ops.drop_column("site_locations", "template_type")

        if not await ops.schema.index_exists(PREVIOUS_UNIQUE_INDEX, "site_locations"):
            await ops.optional(RESTORE_PREVIOUS_INDEX, description=f"restaura {PREVIOUS_UNIQUE_INDEX}")
        ops.unsupported("restaurar NOT NULL em suite/row/rack", "localizações DOMESTIC não têm esses valores")
