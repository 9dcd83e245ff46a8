"""
Migration 005: Tipos de cabo por site.
"""
from database.database import DialectKind
from .base import DownPolicy, Migration, SchemaOps

CREATE_CABLE_TYPES = {
    DialectKind.SQLITE: """
        CREATE TABLE cable_types (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            site_id INTEGER NOT NULL,
            name VARCHAR(255) NOT NULL,
            description TEXT NULL,
            created_at DATETIME NOT NULL DEFAULT CURRENT_TIMESTAMP,
            updated_at DATETIME NOT NULL DEFAULT CURRENT_TIMESTAMP,
            FOREIGN KEY (site_id) REFERENCES sites(id) ON DELETE CASCADE,
            UNIQUE (site_id, name)
        )
    """,
    DialectKind.MYSQL: """
        CREATE TABLE cable_types (
            id INT AUTO_INCREMENT PRIMARY KEY,
            site_id INT NOT NULL,
            name VARCHAR(255) NOT NULL,
            description TEXT NULL,
            created_at TIMESTAMP(3) NOT NULL DEFAULT CURRENT_TIMESTAMP(3),
            updated_at TIMESTAMP(3) NOT NULL DEFAULT CURRENT_TIMESTAMP(3) ON UPDATE CURRENT_TIMESTAMP(3),
            CONSTRAINT fk_cable_types_site_id FOREIGN KEY (site_id) REFERENCES sites(id) ON DELETE CASCADE,
            UNIQUE KEY unique_site_cable_type_name (site_id, name)
        ) ENGINE=InnoDB
    """,
}

CABLE_TYPE_COLUMN = {
    DialectKind.SQLITE: "INTEGER NULL",
    DialectKind.MYSQL: "INT NULL",
}

ADD_CABLE_TYPE_FK = {
    DialectKind.SQLITE: None,
    DialectKind.MYSQL: """
        ALTER TABLE labels ADD CONSTRAINT fk_labels_cable_type
        FOREIGN KEY (cable_type_id) REFERENCES cable_types(id) ON DELETE SET NULL
    """,
}

DROP_CABLE_TYPE_FK = {
    DialectKind.SQLITE: None,
    DialectKind.MYSQL: "ALTER TABLE labels DROP FOREIGN KEY fk_labels_cable_type",
}


class Migration005_CableTypes(Migration):
    id = "005"
    name = "cable_types"
    description = "Tabela cable_types e labels.cable_type_id"
    down_policy = {
        DialectKind.SQLITE: DownPolicy.BEST_EFFORT,
        DialectKind.MYSQL: DownPolicy.REVERSIBLE,
    }

    async def upgrade(self, ops: SchemaOps) -> None:
        await ops.create_table("cable_types", CREATE_CABLE_TYPES)
        await ops.create_index("idx_cable_types_site_id", "cable_types", ["site_id"])
        await ops.add_column("labels", "cable_type_id", CABLE_TYPE_COLUMN)
        await ops.create_index("idx_labels_cable_type_id", "labels", ["cable_type_id"])
        await ops.optional(ADD_CABLE_TYPE_FK, description="foreign key fk_labels_cable_type")

    async def downgrade(self, ops: SchemaOps) -> None:
        await ops.optional(DROP_CABLE_TYPE_FK, description="drop foreign key fk_labels_cable_type")
        await ops.drop_index("idx_labels_cable_type_id", "labels")
        await ops.drop_column("labels", "cable_type_id")
        await ops.drop_table("cable_types")
