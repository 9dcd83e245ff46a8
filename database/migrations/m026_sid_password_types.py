"""
Migration 026: Tipos de senha por site (SO, iDRAC, iLO...) e várias
credenciais por SID.

A chave de sid_passwords passa de (sid_id) para (sid_id, password_type_id).
Senhas existentes ficam com o tipo padrão 'OS Credentials'. O SQLite não
altera chave primária, então lá a tabela é reconstruída dentro da mesma
transação.
"""
from database.database import DialectKind
from .base import DownPolicy, Migration, SchemaOps

DEFAULT_PASSWORD_TYPE = "OS Credentials"

COMPOSITE_KEY = ["sid_id", "password_type_id"]

CREATE_SID_PASSWORD_TYPES = {
    DialectKind.SQLITE: """
        CREATE TABLE sid_password_types (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            site_id INTEGER NOT NULL,
            name VARCHAR(255) NOT NULL,
            description VARCHAR(5000) NULL,
            created_at DATETIME NOT NULL DEFAULT CURRENT_TIMESTAMP,
            updated_at DATETIME NOT NULL DEFAULT CURRENT_TIMESTAMP,
            FOREIGN KEY (site_id) REFERENCES sites(id) ON DELETE CASCADE,
            UNIQUE (site_id, name)
        )
    """,
    DialectKind.MYSQL: """
        CREATE TABLE sid_password_types (
            id INT AUTO_INCREMENT PRIMARY KEY,
            site_id INT NOT NULL,
            name VARCHAR(255) NOT NULL,
            description VARCHAR(5000) NULL,
            created_at TIMESTAMP(3) NOT NULL DEFAULT CURRENT_TIMESTAMP(3),
            updated_at TIMESTAMP(3) NOT NULL DEFAULT CURRENT_TIMESTAMP(3) ON UPDATE CURRENT_TIMESTAMP(3),
            CONSTRAINT fk_sid_password_types_site FOREIGN KEY (site_id) REFERENCES sites(id) ON DELETE CASCADE,
            UNIQUE KEY uq_sid_password_types_site_name (site_id, name)
        ) ENGINE=InnoDB
    """,
}

SEED_DEFAULT_TYPE = {
    DialectKind.SQLITE: """
        INSERT OR IGNORE INTO sid_password_types (site_id, name, description)
        SELECT s.id, :name, NULL FROM sites s
    """,
    DialectKind.MYSQL: """
        INSERT IGNORE INTO sid_password_types (site_id, name, description)
        SELECT s.id, :name, NULL FROM sites s
    """,
}

PASSWORD_TYPE_COLUMN = {
    DialectKind.SQLITE: "INTEGER NULL",
    DialectKind.MYSQL: "INT NULL",
}

BACKFILL_PASSWORD_TYPE = {
    DialectKind.SQLITE: """
        UPDATE sid_passwords
        SET password_type_id = (
            SELECT t.id
            FROM sids s
            JOIN sid_password_types t ON t.site_id = s.site_id AND t.name = :name
            WHERE s.id = sid_passwords.sid_id
        )
        WHERE password_type_id IS NULL
    """,
    DialectKind.MYSQL: """
        UPDATE sid_passwords p
        JOIN sids s ON s.id = p.sid_id
        JOIN sid_password_types t ON t.site_id = s.site_id AND t.name = :name
        SET p.password_type_id = t.id
        WHERE p.password_type_id IS NULL
    """,
}

_PASSWORD_COLUMNS = (
    "sid_id, password_type_id, username, password_ciphertext, "
    "password_updated_by, password_updated_at, created_at, updated_at"
)

# (descrição, SQL) na ordem de execução, por dialeto
WIDEN_PRIMARY_KEY = {
    DialectKind.SQLITE: [
        (
            "cria sid_passwords_rebuild",
            """
            CREATE TABLE sid_passwords_rebuild (
                sid_id INTEGER NOT NULL,
                password_type_id INTEGER NOT NULL,
                username VARCHAR(255) NULL,
                password_ciphertext TEXT NULL,
                password_updated_by INTEGER NULL,
                password_updated_at DATETIME NULL,
                created_at DATETIME NOT NULL DEFAULT CURRENT_TIMESTAMP,
                updated_at DATETIME NOT NULL DEFAULT CURRENT_TIMESTAMP,
                PRIMARY KEY (sid_id, password_type_id),
                FOREIGN KEY (sid_id) REFERENCES sids(id) ON DELETE CASCADE,
                FOREIGN KEY (password_type_id) REFERENCES sid_password_types(id) ON DELETE CASCADE,
                FOREIGN KEY (password_updated_by) REFERENCES users(id) ON DELETE SET NULL
            )
            """,
        ),
        (
            "copia sid_passwords",
            f"INSERT INTO sid_passwords_rebuild ({_PASSWORD_COLUMNS}) "
            f"SELECT {_PASSWORD_COLUMNS} FROM sid_passwords",
        ),
        ("drop table sid_passwords", "DROP TABLE sid_passwords"),
        ("renomeia sid_passwords_rebuild", "ALTER TABLE sid_passwords_rebuild RENAME TO sid_passwords"),
    ],
    DialectKind.MYSQL: [
        (
            "sid_passwords.password_type_id NOT NULL",
            "ALTER TABLE sid_passwords MODIFY COLUMN password_type_id INT NOT NULL",
        ),
        (
            "chave primária (sid_id, password_type_id)",
            "ALTER TABLE sid_passwords DROP PRIMARY KEY, ADD PRIMARY KEY (sid_id, password_type_id)",
        ),
        (
            "foreign key fk_sid_passwords_type",
            """
            ALTER TABLE sid_passwords ADD CONSTRAINT fk_sid_passwords_type
            FOREIGN KEY (password_type_id) REFERENCES sid_password_types(id) ON DELETE CASCADE
            """,
        ),
    ],
}


class Migration026_SidPasswordTypes(Migration):
    id = "026"
    name = "sid_password_types"
    description = "Tabela sid_password_types e várias senhas por SID"
    # Juntar de novo várias credenciais por SID em uma só perderia linhas
    down_policy = DownPolicy.UNSUPPORTED

    async def upgrade(self, ops: SchemaOps) -> None:
        await ops.create_table("sid_password_types", CREATE_SID_PASSWORD_TYPES)
        await ops.execute(SEED_DEFAULT_TYPE, {"name": DEFAULT_PASSWORD_TYPE}, description="tipo de senha padrão")

        await ops.add_column("sid_passwords", "password_type_id", PASSWORD_TYPE_COLUMN)
        await ops.execute(
            BACKFILL_PASSWORD_TYPE,
            {"name": DEFAULT_PASSWORD_TYPE},
            description="backfill sid_passwords.password_type_id",
        )

        # No MySQL um retry depois de falha parcial encontra a chave já trocada
        if await ops.schema.primary_key_columns("sid_passwords") != COMPOSITE_KEY:
            for description, sql in WIDEN_PRIMARY_KEY[ops.dialect]:
                await ops.execute(sql, description=description)

        await ops.create_index("idx_sid_passwords_type", "sid_passwords", ["password_type_id"])
