"""
Migration 003: RBAC por site, convites e numeração de etiquetas por site.

Bancos de desenvolvimento podem já ter parte deste schema, então cada
passo é protegido por introspecção. Não há downgrade: as colunas legadas
já foram migradas para o novo modelo.
"""
from database.database import DialectKind
from .base import DownPolicy, Migration, SchemaOps

INT_COLUMN = {
    DialectKind.SQLITE: "INTEGER NULL",
    DialectKind.MYSQL: "INT NULL",
}

CREATE_SITE_MEMBERSHIPS = {
    DialectKind.SQLITE: """
        CREATE TABLE site_memberships (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            site_id INTEGER NOT NULL,
            user_id INTEGER NOT NULL,
            site_role VARCHAR(50) NOT NULL,
            FOREIGN KEY (site_id) REFERENCES sites(id) ON DELETE CASCADE,
            FOREIGN KEY (user_id) REFERENCES users(id) ON DELETE CASCADE,
            UNIQUE (site_id, user_id)
        )
    """,
    DialectKind.MYSQL: """
        CREATE TABLE site_memberships (
            id INT AUTO_INCREMENT PRIMARY KEY,
            site_id INT NOT NULL,
            user_id INT NOT NULL,
            site_role VARCHAR(50) NOT NULL,
            CONSTRAINT fk_site_memberships_site_id FOREIGN KEY (site_id) REFERENCES sites(id) ON DELETE CASCADE,
            CONSTRAINT fk_site_memberships_user_id FOREIGN KEY (user_id) REFERENCES users(id) ON DELETE CASCADE,
            UNIQUE KEY unique_site_user (site_id, user_id)
        ) ENGINE=InnoDB
    """,
}

CREATE_INVITATIONS = {
    DialectKind.SQLITE: """
        CREATE TABLE invitations (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            token_hash VARCHAR(255) NOT NULL UNIQUE,
            email VARCHAR(255) NOT NULL,
            invited_by INTEGER NOT NULL,
            expires_at DATETIME NOT NULL,
            used_at DATETIME NULL,
            created_at DATETIME NOT NULL DEFAULT CURRENT_TIMESTAMP,
            FOREIGN KEY (invited_by) REFERENCES users(id) ON DELETE CASCADE
        )
    """,
    DialectKind.MYSQL: """
        CREATE TABLE invitations (
            id INT AUTO_INCREMENT PRIMARY KEY,
            token_hash VARCHAR(255) NOT NULL UNIQUE,
            email VARCHAR(255) NOT NULL,
            invited_by INT NOT NULL,
            expires_at TIMESTAMP(3) NOT NULL,
            used_at TIMESTAMP(3) NULL,
            created_at TIMESTAMP(3) NOT NULL DEFAULT CURRENT_TIMESTAMP(3),
            CONSTRAINT fk_invitations_invited_by FOREIGN KEY (invited_by) REFERENCES users(id) ON DELETE CASCADE
        ) ENGINE=InnoDB
    """,
}

CREATE_INVITATION_SITES = {
    DialectKind.SQLITE: """
        CREATE TABLE invitation_sites (
            invitation_id INTEGER NOT NULL,
            site_id INTEGER NOT NULL,
            site_role VARCHAR(50) NOT NULL,
            FOREIGN KEY (invitation_id) REFERENCES invitations(id) ON DELETE CASCADE,
            FOREIGN KEY (site_id) REFERENCES sites(id) ON DELETE CASCADE
        )
    """,
    DialectKind.MYSQL: """
        CREATE TABLE invitation_sites (
            invitation_id INT NOT NULL,
            site_id INT NOT NULL,
            site_role VARCHAR(50) NOT NULL,
            CONSTRAINT fk_invitation_sites_invitation_id FOREIGN KEY (invitation_id) REFERENCES invitations(id) ON DELETE CASCADE,
            CONSTRAINT fk_invitation_sites_site_id FOREIGN KEY (site_id) REFERENCES sites(id) ON DELETE CASCADE
        ) ENGINE=InnoDB
    """,
}

CREATE_SITE_COUNTERS = {
    DialectKind.SQLITE: """
        CREATE TABLE site_counters (
            site_id INTEGER PRIMARY KEY,
            next_ref INTEGER NOT NULL,
            FOREIGN KEY (site_id) REFERENCES sites(id) ON DELETE CASCADE
        )
    """,
    DialectKind.MYSQL: """
        CREATE TABLE site_counters (
            site_id INT PRIMARY KEY,
            next_ref INT NOT NULL,
            CONSTRAINT fk_site_counters_site_id FOREIGN KEY (site_id) REFERENCES sites(id) ON DELETE CASCADE
        ) ENGINE=InnoDB
    """,
}

SEED_SITE_COUNTERS = {
    DialectKind.SQLITE: "INSERT OR IGNORE INTO site_counters (site_id, next_ref) SELECT id, 1 FROM sites",
    DialectKind.MYSQL: "INSERT IGNORE INTO site_counters (site_id, next_ref) SELECT id, 1 FROM sites",
}

BACKFILL_CREATOR_MEMBERSHIPS = """
    INSERT INTO site_memberships (site_id, user_id, site_role)
    SELECT s.id, s.created_by, 'ADMIN'
    FROM sites s
    WHERE s.created_by IS NOT NULL
      AND NOT EXISTS (
          SELECT 1 FROM site_memberships sm
          WHERE sm.site_id = s.id AND sm.user_id = s.created_by
      )
"""

# "SITE-12" -> 12; referências fora do padrão caem no fallback abaixo
PARSE_REF_NUMBER = {
    DialectKind.SQLITE: """
        UPDATE labels
        SET ref_number = CAST(SUBSTR(ref_string, INSTR(ref_string, '-') + 1) AS INTEGER)
        WHERE ref_number IS NULL AND ref_string IS NOT NULL AND INSTR(ref_string, '-') > 0
    """,
    DialectKind.MYSQL: """
        UPDATE labels
        SET ref_number = CAST(SUBSTRING(ref_string, LOCATE('-', ref_string) + 1) AS UNSIGNED)
        WHERE ref_number IS NULL AND ref_string IS NOT NULL AND LOCATE('-', ref_string) > 0
    """,
}

SYNC_NEXT_REF = """
    UPDATE site_counters
    SET next_ref = (
        SELECT COALESCE(MAX(l.ref_number), 0) + 1
        FROM labels l
        WHERE l.site_id = site_counters.site_id
    )
"""


class Migration003_RbacSiteScoping(Migration):
    id = "003"
    name = "rbac_site_scoping"
    description = "Memberships por site, convites, contadores e referências de etiquetas"
    down_policy = DownPolicy.UNSUPPORTED

    async def upgrade(self, ops: SchemaOps) -> None:
        await self._scope_sites(ops)
        await self._create_memberships(ops)
        await ops.create_table("invitations", CREATE_INVITATIONS)
        await ops.create_table("invitation_sites", CREATE_INVITATION_SITES)
        await self._scope_labels(ops)
        await ops.create_table("site_counters", CREATE_SITE_COUNTERS)
        await ops.execute(SEED_SITE_COUNTERS, description="seed site_counters")
        await ops.execute(SYNC_NEXT_REF, description="sincroniza site_counters.next_ref")

    async def _scope_sites(self, ops: SchemaOps) -> None:
        await ops.add_column("sites", "code", "VARCHAR(255) NULL")
        await ops.add_column("sites", "created_by", INT_COLUMN)

        if await ops.schema.column_exists("sites", "user_id"):
            await ops.execute(
                "UPDATE sites SET created_by = user_id WHERE created_by IS NULL",
                description="backfill sites.created_by",
            )
        await ops.execute(
            "UPDATE sites SET code = name WHERE code IS NULL",
            description="backfill sites.code",
        )
        await ops.create_index("idx_sites_code_unique", "sites", ["code"], unique=True)

    async def _create_memberships(self, ops: SchemaOps) -> None:
        await ops.create_table("site_memberships", CREATE_SITE_MEMBERSHIPS)
        await ops.create_index("idx_site_memberships_site_id", "site_memberships", ["site_id"])
        await ops.create_index("idx_site_memberships_user_id", "site_memberships", ["user_id"])
        await ops.optional(BACKFILL_CREATOR_MEMBERSHIPS, description="memberships dos criadores de sites")

    async def _scope_labels(self, ops: SchemaOps) -> None:
        await ops.add_column("labels", "ref_number", INT_COLUMN)
        await ops.add_column("labels", "ref_string", "VARCHAR(255) NULL")
        await ops.add_column("labels", "type", "VARCHAR(100) NULL")
        await ops.add_column("labels", "payload_json", "TEXT NULL")
        await ops.add_column("labels", "created_by", INT_COLUMN)

        if await ops.schema.column_exists("labels", "user_id"):
            await ops.execute(
                "UPDATE labels SET created_by = user_id WHERE created_by IS NULL",
                description="backfill labels.created_by",
            )
        await ops.execute("UPDATE labels SET type = 'cable' WHERE type IS NULL", description="backfill labels.type")
        if await ops.schema.column_exists("labels", "reference_number"):
            await ops.execute(
                "UPDATE labels SET ref_string = reference_number WHERE ref_string IS NULL",
                description="backfill labels.ref_string",
            )
        await ops.optional(PARSE_REF_NUMBER, description="extrai labels.ref_number de ref_string")
        await ops.execute(
            "UPDATE labels SET ref_number = 1 WHERE ref_number IS NULL",
            description="fallback labels.ref_number",
        )

        await ops.create_index("idx_labels_ref_string", "labels", ["ref_string"])
        await ops.create_index("idx_labels_created_by", "labels", ["created_by"])
