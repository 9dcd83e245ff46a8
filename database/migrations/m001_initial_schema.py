"""
Migration 001: Schema inicial do banco.
Cria usuários, sites, etiquetas de cabo e configurações da aplicação.
"""
from database.database import DialectKind
from .base import Migration, SchemaOps

CREATE_USERS = {
    DialectKind.SQLITE: """
        CREATE TABLE users (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            email VARCHAR(255) NOT NULL UNIQUE,
            password_hash VARCHAR(255) NOT NULL,
            full_name VARCHAR(255) NOT NULL,
            is_active BOOLEAN NOT NULL DEFAULT 1,
            last_login_at DATETIME NULL,
            created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
            updated_at DATETIME DEFAULT CURRENT_TIMESTAMP
        )
    """,
    DialectKind.MYSQL: """
        CREATE TABLE users (
            id INT AUTO_INCREMENT PRIMARY KEY,
            email VARCHAR(255) NOT NULL UNIQUE,
            password_hash VARCHAR(255) NOT NULL,
            full_name VARCHAR(255) NOT NULL,
            is_active TINYINT(1) NOT NULL DEFAULT 1,
            last_login_at TIMESTAMP(3) NULL,
            created_at TIMESTAMP(3) NOT NULL DEFAULT CURRENT_TIMESTAMP(3),
            updated_at TIMESTAMP(3) NOT NULL DEFAULT CURRENT_TIMESTAMP(3) ON UPDATE CURRENT_TIMESTAMP(3)
        ) ENGINE=InnoDB
    """,
}

CREATE_SITES = {
    DialectKind.SQLITE: """
        CREATE TABLE sites (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            name VARCHAR(255) NOT NULL,
            location VARCHAR(255) NULL,
            description TEXT NULL,
            user_id INTEGER NOT NULL,
            is_active BOOLEAN NOT NULL DEFAULT 1,
            created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
            updated_at DATETIME DEFAULT CURRENT_TIMESTAMP,
            FOREIGN KEY (user_id) REFERENCES users(id) ON DELETE CASCADE
        )
    """,
    DialectKind.MYSQL: """
        CREATE TABLE sites (
            id INT AUTO_INCREMENT PRIMARY KEY,
            name VARCHAR(255) NOT NULL,
            location VARCHAR(255) NULL,
            description TEXT NULL,
            user_id INT NOT NULL,
            is_active TINYINT(1) NOT NULL DEFAULT 1,
            created_at TIMESTAMP(3) NOT NULL DEFAULT CURRENT_TIMESTAMP(3),
            updated_at TIMESTAMP(3) NOT NULL DEFAULT CURRENT_TIMESTAMP(3) ON UPDATE CURRENT_TIMESTAMP(3),
            CONSTRAINT fk_sites_user_id FOREIGN KEY (user_id) REFERENCES users(id) ON DELETE CASCADE
        ) ENGINE=InnoDB
    """,
}

CREATE_LABELS = {
    DialectKind.SQLITE: """
        CREATE TABLE labels (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            site_id INTEGER NOT NULL,
            user_id INTEGER NOT NULL,
            reference_number VARCHAR(255) NOT NULL,
            source VARCHAR(255) NOT NULL,
            destination VARCHAR(255) NOT NULL,
            notes TEXT NULL,
            zpl_content TEXT NULL,
            is_active BOOLEAN NOT NULL DEFAULT 1,
            created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
            updated_at DATETIME DEFAULT CURRENT_TIMESTAMP,
            FOREIGN KEY (site_id) REFERENCES sites(id) ON DELETE CASCADE,
            FOREIGN KEY (user_id) REFERENCES users(id) ON DELETE CASCADE,
            UNIQUE (site_id, reference_number)
        )
    """,
    DialectKind.MYSQL: """
        CREATE TABLE labels (
            id INT AUTO_INCREMENT PRIMARY KEY,
            site_id INT NOT NULL,
            user_id INT NOT NULL,
            reference_number VARCHAR(255) NOT NULL,
            source VARCHAR(255) NOT NULL,
            destination VARCHAR(255) NOT NULL,
            notes TEXT NULL,
            zpl_content TEXT NULL,
            is_active TINYINT(1) NOT NULL DEFAULT 1,
            created_at TIMESTAMP(3) NOT NULL DEFAULT CURRENT_TIMESTAMP(3),
            updated_at TIMESTAMP(3) NOT NULL DEFAULT CURRENT_TIMESTAMP(3) ON UPDATE CURRENT_TIMESTAMP(3),
            CONSTRAINT fk_labels_site_id FOREIGN KEY (site_id) REFERENCES sites(id) ON DELETE CASCADE,
            CONSTRAINT fk_labels_user_id FOREIGN KEY (user_id) REFERENCES users(id) ON DELETE CASCADE,
            UNIQUE KEY unique_site_reference (site_id, reference_number)
        ) ENGINE=InnoDB
    """,
}

CREATE_APP_SETTINGS = {
    DialectKind.SQLITE: """
        CREATE TABLE app_settings (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            `key` VARCHAR(191) NOT NULL UNIQUE,
            value TEXT NOT NULL,
            description TEXT NULL,
            created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
            updated_at DATETIME DEFAULT CURRENT_TIMESTAMP
        )
    """,
    DialectKind.MYSQL: """
        CREATE TABLE app_settings (
            id INT AUTO_INCREMENT PRIMARY KEY,
            `key` VARCHAR(191) NOT NULL UNIQUE,
            value TEXT NOT NULL,
            description TEXT NULL,
            created_at TIMESTAMP(3) NOT NULL DEFAULT CURRENT_TIMESTAMP(3),
            updated_at TIMESTAMP(3) NOT NULL DEFAULT CURRENT_TIMESTAMP(3) ON UPDATE CURRENT_TIMESTAMP(3)
        ) ENGINE=InnoDB
    """,
}

# MySQL atualiza updated_at via ON UPDATE; no SQLite é preciso um trigger
TIMESTAMP_TABLES = ("users", "sites", "labels", "app_settings")


def _timestamp_trigger(table: str):
    return {
        DialectKind.SQLITE: f"""
            CREATE TRIGGER IF NOT EXISTS update_{table}_timestamp
            AFTER UPDATE ON {table}
            BEGIN
                UPDATE {table} SET updated_at = CURRENT_TIMESTAMP WHERE id = NEW.id;
            END
        """,
        DialectKind.MYSQL: None,
    }


def _drop_timestamp_trigger(table: str):
    return {
        DialectKind.SQLITE: f"DROP TRIGGER IF EXISTS update_{table}_timestamp",
        DialectKind.MYSQL: None,
    }


class Migration001_InitialSchema(Migration):
    """Migration inicial - tabelas núcleo do sistema de etiquetas"""

    id = "001"
    name = "initial_schema"
    description = "Usuários, sites, etiquetas e configurações"

    async def upgrade(self, ops: SchemaOps) -> None:
        await ops.create_table("users", CREATE_USERS)
        await ops.create_index("idx_users_active", "users", ["is_active"])

        await ops.create_table("sites", CREATE_SITES)
        await ops.create_index("idx_sites_user_id", "sites", ["user_id"])
        await ops.create_index("idx_sites_name", "sites", ["name"])

        await ops.create_table("labels", CREATE_LABELS)
        await ops.create_index("idx_labels_site_id", "labels", ["site_id"])
        await ops.create_index("idx_labels_user_id", "labels", ["user_id"])
        await ops.create_index("idx_labels_reference", "labels", ["reference_number"])
        await ops.create_index("idx_labels_source", "labels", ["source"])
        await ops.create_index("idx_labels_destination", "labels", ["destination"])

        await ops.create_table("app_settings", CREATE_APP_SETTINGS)

        for table in TIMESTAMP_TABLES:
            await ops.execute(_timestamp_trigger(table), description=f"trigger updated_at {table}")

    async def downgrade(self, ops: SchemaOps) -> None:
        for table in TIMESTAMP_TABLES:
            await ops.execute(_drop_timestamp_trigger(table), description=f"drop trigger updated_at {table}")

        # Ordem inversa por causa das foreign keys
        await ops.drop_table("app_settings")
        await ops.drop_table("labels")
        await ops.drop_table("sites")
        await ops.drop_table("users")
