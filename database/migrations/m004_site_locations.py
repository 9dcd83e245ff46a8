"""
Migration 004: Localizações estruturadas (andar/sala/fileira/rack) por site
e referências de origem/destino nas etiquetas.
"""
from database.database import DialectKind
from .base import DownPolicy, Migration, SchemaOps

CREATE_SITE_LOCATIONS = {
    DialectKind.SQLITE: """
        CREATE TABLE site_locations (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            site_id INTEGER NOT NULL,
            floor VARCHAR(50) NOT NULL,
            suite VARCHAR(50) NOT NULL,
            `row` VARCHAR(50) NOT NULL,
            rack VARCHAR(50) NOT NULL,
            label VARCHAR(255) NULL,
            created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
            updated_at DATETIME DEFAULT CURRENT_TIMESTAMP,
            FOREIGN KEY (site_id) REFERENCES sites(id) ON DELETE CASCADE
        )
    """,
    DialectKind.MYSQL: """
        CREATE TABLE site_locations (
            id INT AUTO_INCREMENT PRIMARY KEY,
            site_id INT NOT NULL,
            floor VARCHAR(50) NOT NULL,
            suite VARCHAR(50) NOT NULL,
            `row` VARCHAR(50) NOT NULL,
            rack VARCHAR(50) NOT NULL,
            label VARCHAR(255) NULL,
            created_at TIMESTAMP(3) NOT NULL DEFAULT CURRENT_TIMESTAMP(3),
            updated_at TIMESTAMP(3) NOT NULL DEFAULT CURRENT_TIMESTAMP(3) ON UPDATE CURRENT_TIMESTAMP(3),
            CONSTRAINT fk_site_locations_site_id FOREIGN KEY (site_id) REFERENCES sites(id) ON DELETE CASCADE
        ) ENGINE=InnoDB
    """,
}

LOCATION_COLUMN = {
    DialectKind.SQLITE: "INTEGER NULL",
    DialectKind.MYSQL: "INT NULL",
}

# SQLite não adiciona FK via ALTER TABLE
LOCATION_FOREIGN_KEYS = {
    "fk_labels_source_location": {
        DialectKind.SQLITE: None,
        DialectKind.MYSQL: """
            ALTER TABLE labels ADD CONSTRAINT fk_labels_source_location
            FOREIGN KEY (source_location_id) REFERENCES site_locations(id) ON DELETE SET NULL
        """,
    },
    "fk_labels_destination_location": {
        DialectKind.SQLITE: None,
        DialectKind.MYSQL: """
            ALTER TABLE labels ADD CONSTRAINT fk_labels_destination_location
            FOREIGN KEY (destination_location_id) REFERENCES site_locations(id) ON DELETE SET NULL
        """,
    },
}


def _drop_foreign_key(name: str):
    return {
        DialectKind.SQLITE: None,
        DialectKind.MYSQL: f"ALTER TABLE labels DROP FOREIGN KEY {name}",
    }


class Migration004_SiteLocations(Migration):
    id = "004"
    name = "site_locations"
    description = "Tabela site_locations e colunas de localização nas etiquetas"
    down_policy = {
        DialectKind.SQLITE: DownPolicy.BEST_EFFORT,
        DialectKind.MYSQL: DownPolicy.REVERSIBLE,
    }

    async def upgrade(self, ops: SchemaOps) -> None:
        await ops.create_table("site_locations", CREATE_SITE_LOCATIONS)
        await ops.create_index("idx_site_locations_site_id", "site_locations", ["site_id"])
        await ops.create_index(
            "idx_site_locations_unique_coords",
            "site_locations",
            ["site_id", "floor", "suite", "row", "rack"],
            unique=True,
        )

        await ops.add_column("labels", "source_location_id", LOCATION_COLUMN)
        await ops.add_column("labels", "destination_location_id", LOCATION_COLUMN)
        await ops.create_index("idx_labels_source_location_id", "labels", ["source_location_id"])
        await ops.create_index("idx_labels_destination_location_id", "labels", ["destination_location_id"])

        for name, sql in LOCATION_FOREIGN_KEYS.items():
            await ops.optional(sql, description=f"foreign key {name}")

    async def downgrade(self, ops: SchemaOps) -> None:
        for name in LOCATION_FOREIGN_KEYS:
            await ops.optional(_drop_foreign_key(name), description=f"drop foreign key {name}")

        await ops.drop_index("idx_labels_source_location_id", "labels")
        await ops.drop_index("idx_labels_destination_location_id", "labels")
        await ops.drop_column("labels", "source_location_id")
        await ops.drop_column("labels", "destination_location_id")
        await ops.drop_table("site_locations")
