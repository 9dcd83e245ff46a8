"""
Migration 025: Lista de status de SID por site.
Os status já usados em sids continuam selecionáveis.
"""
from database.database import DialectKind
from .base import Migration, SchemaOps

CREATE_SID_STATUSES = {
    DialectKind.SQLITE: """
        CREATE TABLE sid_statuses (
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
        CREATE TABLE sid_statuses (
            id INT AUTO_INCREMENT PRIMARY KEY,
            site_id INT NOT NULL,
            name VARCHAR(255) NOT NULL,
            description TEXT NULL,
            created_at TIMESTAMP(3) NOT NULL DEFAULT CURRENT_TIMESTAMP(3),
            updated_at TIMESTAMP(3) NOT NULL DEFAULT CURRENT_TIMESTAMP(3) ON UPDATE CURRENT_TIMESTAMP(3),
            CONSTRAINT fk_sid_statuses_site_id FOREIGN KEY (site_id) REFERENCES sites(id) ON DELETE CASCADE,
            UNIQUE KEY unique_site_sid_status_name (site_id, name)
        ) ENGINE=InnoDB
    """,
}

_SEED_FROM_SIDS = """
    INTO sid_statuses (site_id, name, description)
    SELECT DISTINCT s.site_id, TRIM(s.status), NULL
    FROM sids s
    WHERE s.status IS NOT NULL AND TRIM(s.status) <> ''
"""

SEED_SID_STATUSES = {
    DialectKind.SQLITE: "INSERT OR IGNORE" + _SEED_FROM_SIDS,
    DialectKind.MYSQL: "INSERT IGNORE" + _SEED_FROM_SIDS,
}


class Migration025_SidStatusPicklist(Migration):
    id = "025"
    name = "sid_status_picklist"
    description = "Tabela sid_statuses semeada com os status existentes"

    async def upgrade(self, ops: SchemaOps) -> None:
        await ops.create_table("sid_statuses", CREATE_SID_STATUSES)
        await ops.execute(SEED_SID_STATUSES, description="seed sid_statuses")

    async def downgrade(self, ops: SchemaOps) -> None:
        await ops.drop_table("sid_statuses")
