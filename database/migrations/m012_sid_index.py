"""
Migration 012: Índice de equipamentos (SIDs) por site, com tipos e notas.
"""
from database.database import DialectKind
from .base import Migration, SchemaOps

CREATE_SID_TYPES = {
    DialectKind.SQLITE: """
        CREATE TABLE sid_types (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            site_id INTEGER NOT NULL,
            name VARCHAR(255) NOT NULL,
            description TEXT NULL,
            created_at DATETIME NOT NULL DEFAULT CURRENT_TIMESTAMP,
            FOREIGN KEY (site_id) REFERENCES sites(id) ON DELETE CASCADE,
            UNIQUE (site_id, name)
        )
    """,
    DialectKind.MYSQL: """
        CREATE TABLE sid_types (
            id INT AUTO_INCREMENT PRIMARY KEY,
            site_id INT NOT NULL,
            name VARCHAR(255) NOT NULL,
            description TEXT NULL,
            created_at TIMESTAMP(3) NOT NULL DEFAULT CURRENT_TIMESTAMP(3),
            CONSTRAINT fk_sid_types_site_id FOREIGN KEY (site_id) REFERENCES sites(id) ON DELETE CASCADE,
            UNIQUE KEY unique_site_sid_type_name (site_id, name)
        ) ENGINE=InnoDB
    """,
}

CREATE_SIDS = {
    DialectKind.SQLITE: """
        CREATE TABLE sids (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            site_id INTEGER NOT NULL,
            sid_number VARCHAR(64) NOT NULL,
            sid_type_id INTEGER NULL,
            hostname VARCHAR(255) NULL,
            serial_number VARCHAR(255) NULL,
            status VARCHAR(64) NULL,
            location_id INTEGER NULL,
            rack_u VARCHAR(16) NULL,
            ram_gb DECIMAL(10,3) NULL,
            created_at DATETIME NOT NULL DEFAULT CURRENT_TIMESTAMP,
            updated_at DATETIME NOT NULL DEFAULT CURRENT_TIMESTAMP,
            FOREIGN KEY (site_id) REFERENCES sites(id) ON DELETE CASCADE,
            FOREIGN KEY (sid_type_id) REFERENCES sid_types(id) ON DELETE SET NULL,
            FOREIGN KEY (location_id) REFERENCES site_locations(id) ON DELETE SET NULL,
            UNIQUE (site_id, sid_number)
        )
    """,
    DialectKind.MYSQL: """
        CREATE TABLE sids (
            id INT AUTO_INCREMENT PRIMARY KEY,
            site_id INT NOT NULL,
            sid_number VARCHAR(64) NOT NULL,
            sid_type_id INT NULL,
            hostname VARCHAR(255) NULL,
            serial_number VARCHAR(255) NULL,
            status VARCHAR(64) NULL,
            location_id INT NULL,
            rack_u VARCHAR(16) NULL,
            ram_gb DECIMAL(10,3) NULL,
            created_at TIMESTAMP(3) NOT NULL DEFAULT CURRENT_TIMESTAMP(3),
            updated_at TIMESTAMP(3) NOT NULL DEFAULT CURRENT_TIMESTAMP(3) ON UPDATE CURRENT_TIMESTAMP(3),
            CONSTRAINT fk_sids_site_id FOREIGN KEY (site_id) REFERENCES sites(id) ON DELETE CASCADE,
            CONSTRAINT fk_sids_sid_type_id FOREIGN KEY (sid_type_id) REFERENCES sid_types(id) ON DELETE SET NULL,
            CONSTRAINT fk_sids_location_id FOREIGN KEY (location_id) REFERENCES site_locations(id) ON DELETE SET NULL,
            UNIQUE KEY unique_site_sid_number (site_id, sid_number)
        ) ENGINE=InnoDB
    """,
}

CREATE_SID_NOTES = {
    DialectKind.SQLITE: """
        CREATE TABLE sid_notes (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            sid_id INTEGER NOT NULL,
            created_by INTEGER NULL,
            note_text TEXT NOT NULL,
            pinned BOOLEAN NOT NULL DEFAULT 0,
            created_at DATETIME NOT NULL DEFAULT CURRENT_TIMESTAMP,
            FOREIGN KEY (sid_id) REFERENCES sids(id) ON DELETE CASCADE,
            FOREIGN KEY (created_by) REFERENCES users(id) ON DELETE SET NULL
        )
    """,
    DialectKind.MYSQL: """
        CREATE TABLE sid_notes (
            id INT AUTO_INCREMENT PRIMARY KEY,
            sid_id INT NOT NULL,
            created_by INT NULL,
            note_text TEXT NOT NULL,
            pinned TINYINT(1) NOT NULL DEFAULT 0,
            created_at TIMESTAMP(3) NOT NULL DEFAULT CURRENT_TIMESTAMP(3),
            CONSTRAINT fk_sid_notes_sid_id FOREIGN KEY (sid_id) REFERENCES sids(id) ON DELETE CASCADE,
            CONSTRAINT fk_sid_notes_created_by FOREIGN KEY (created_by) REFERENCES users(id) ON DELETE SET NULL
        ) ENGINE=InnoDB
    """,
}


class Migration012_SidIndex(Migration):
    id = "012"
    name = "sid_index"
    description = "Tabelas sid_types, sids e sid_notes"

    async def upgrade(self, ops: SchemaOps) -> None:
        await ops.create_table("sid_types", CREATE_SID_TYPES)
        await ops.create_table("sids", CREATE_SIDS)
        await ops.create_index("idx_sids_site_id", "sids", ["site_id"])
        await ops.create_index("idx_sids_hostname", "sids", ["hostname"])
        await ops.create_index("idx_sids_status", "sids", ["status"])
        await ops.create_table("sid_notes", CREATE_SID_NOTES)
        await ops.create_index("idx_sid_notes_sid_pinned", "sid_notes", ["sid_id", "pinned", "created_at"])

    async def downgrade(self, ops: SchemaOps) -> None:
        await ops.drop_table("sid_notes")
        await ops.drop_table("sids")
        await ops.drop_table("sid_types")
