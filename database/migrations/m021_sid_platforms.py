"""
Migration 021: Plataformas por site e sids.platform_id.
"""
from database.database import DialectKind
from .base import DownPolicy, Migration, SchemaOps

CREATE_SID_PLATFORMS = {
    DialectKind.SQLITE: """
        CREATE TABLE sid_platforms (
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
        CREATE TABLE sid_platforms (
            id INT AUTO_INCREMENT PRIMARY KEY,
            site_id INT NOT NULL,
            name VARCHAR(255) NOT NULL,
            description TEXT NULL,
            created_at TIMESTAMP(3) NOT NULL DEFAULT CURRENT_TIMESTAMP(3),
            updated_at TIMESTAMP(3) NOT NULL DEFAULT CURRENT_TIMESTAMP(3) ON UPDATE CURRENT_TIMESTAMP(3),
            CONSTRAINT fk_sid_platforms_site_id FOREIGN KEY (site_id) REFERENCES sites(id) ON DELETE CASCADE,
            UNIQUE KEY unique_site_platform_name (site_id, name)
        ) ENGINE=InnoDB
    """,
}

PLATFORM_COLUMN = {
    DialectKind.SQLITE: "INTEGER NULL",
    DialectKind.MYSQL: "INT NULL",
}

ADD_PLATFORM_FK = {
    DialectKind.SQLITE: None,
    DialectKind.MYSQL: """
        ALTER TABLE sids ADD CONSTRAINT fk_sids_platform_id
        FOREIGN KEY (platform_id) REFERENCES sid_platforms(id) ON DELETE SET NULL
    """,
}

DROP_PLATFORM_FK = {
    DialectKind.SQLITE: None,
    DialectKind.MYSQL: "ALTER TABLE sids DROP FOREIGN KEY fk_sids_platform_id",
}


class Migration021_SidPlatforms(Migration):
    id = "021"
    name = "sid_platforms"
    description = "Tabela sid_platforms e sids.platform_id"
    down_policy = {
        DialectKind.SQLITE: DownPolicy.BEST_EFFORT,
        DialectKind.MYSQL: DownPolicy.REVERSIBLE,
    }

    async def upgrade(self, ops: SchemaOps) -> None:
        await ops.create_table("sid_platforms", CREATE_SID_PLATFORMS)
        await ops.add_column("sids", "platform_id", PLATFORM_COLUMN)
        await ops.create_index("idx_sids_platform_id", "sids", ["platform_id"])
        await ops.optional(ADD_PLATFORM_FK, description="foreign key fk_sids_platform_id")

    async def downgrade(self, ops: SchemaOps) -> None:
        await ops.optional(DROP_PLATFORM_FK, description="drop foreign key fk_sids_platform_id")
        await ops.drop_index("idx_sids_platform_id", "sids")
        await ops.drop_column("sids", "platform_id")
        await ops.drop_table("sid_platforms")
