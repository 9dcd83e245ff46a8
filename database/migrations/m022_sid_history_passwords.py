"""
Migration 022: Histórico de alterações por SID e senhas cifradas de acesso.
A API nunca devolve a senha decifrada.
"""
from database.database import DialectKind
from .base import Migration, SchemaOps

CREATE_SID_ACTIVITY_LOG = {
    DialectKind.SQLITE: """
        CREATE TABLE sid_activity_log (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            site_id INTEGER NOT NULL,
            sid_id INTEGER NOT NULL,
            actor_user_id INTEGER NOT NULL,
            action VARCHAR(100) NOT NULL,
            summary VARCHAR(500) NOT NULL,
            diff_json TEXT NULL,
            created_at DATETIME NOT NULL DEFAULT CURRENT_TIMESTAMP,
            FOREIGN KEY (site_id) REFERENCES sites(id) ON DELETE CASCADE,
            FOREIGN KEY (sid_id) REFERENCES sids(id) ON DELETE CASCADE,
            FOREIGN KEY (actor_user_id) REFERENCES users(id) ON DELETE CASCADE
        )
    """,
    DialectKind.MYSQL: """
        CREATE TABLE sid_activity_log (
            id BIGINT AUTO_INCREMENT PRIMARY KEY,
            site_id INT NOT NULL,
            sid_id INT NOT NULL,
            actor_user_id INT NOT NULL,
            action VARCHAR(100) NOT NULL,
            summary VARCHAR(500) NOT NULL,
            diff_json TEXT NULL,
            created_at TIMESTAMP(3) NOT NULL DEFAULT CURRENT_TIMESTAMP(3),
            CONSTRAINT fk_sid_activity_log_site FOREIGN KEY (site_id) REFERENCES sites(id) ON DELETE CASCADE,
            CONSTRAINT fk_sid_activity_log_sid FOREIGN KEY (sid_id) REFERENCES sids(id) ON DELETE CASCADE,
            CONSTRAINT fk_sid_activity_log_actor FOREIGN KEY (actor_user_id) REFERENCES users(id) ON DELETE CASCADE
        ) ENGINE=InnoDB
    """,
}

CREATE_SID_PASSWORDS = {
    DialectKind.SQLITE: """
        CREATE TABLE sid_passwords (
            sid_id INTEGER NOT NULL PRIMARY KEY,
            username VARCHAR(255) NULL,
            password_ciphertext TEXT NULL,
            password_updated_by INTEGER NULL,
            password_updated_at DATETIME NULL,
            created_at DATETIME NOT NULL DEFAULT CURRENT_TIMESTAMP,
            updated_at DATETIME NOT NULL DEFAULT CURRENT_TIMESTAMP,
            FOREIGN KEY (sid_id) REFERENCES sids(id) ON DELETE CASCADE,
            FOREIGN KEY (password_updated_by) REFERENCES users(id) ON DELETE SET NULL
        )
    """,
    DialectKind.MYSQL: """
        CREATE TABLE sid_passwords (
            sid_id INT NOT NULL PRIMARY KEY,
            username VARCHAR(255) NULL,
            password_ciphertext TEXT NULL,
            password_updated_by INT NULL,
            password_updated_at TIMESTAMP(3) NULL,
            created_at TIMESTAMP(3) NOT NULL DEFAULT CURRENT_TIMESTAMP(3),
            updated_at TIMESTAMP(3) NOT NULL DEFAULT CURRENT_TIMESTAMP(3) ON UPDATE CURRENT_TIMESTAMP(3),
            CONSTRAINT fk_sid_passwords_sid FOREIGN KEY (sid_id) REFERENCES sids(id) ON DELETE CASCADE,
            CONSTRAINT fk_sid_passwords_updated_by FOREIGN KEY (password_updated_by) REFERENCES users(id) ON DELETE SET NULL
        ) ENGINE=InnoDB
    """,
}


class Migration022_SidHistoryPasswords(Migration):
    id = "022"
    name = "sid_history_passwords"
    description = "Tabelas sid_activity_log e sid_passwords"

    async def upgrade(self, ops: SchemaOps) -> None:
        await ops.create_table("sid_activity_log", CREATE_SID_ACTIVITY_LOG)
        await ops.create_index("idx_sid_activity_log_sid_created", "sid_activity_log", ["sid_id", "created_at"])
        await ops.create_index("idx_sid_activity_log_site_created", "sid_activity_log", ["site_id", "created_at"])
        await ops.create_table("sid_passwords", CREATE_SID_PASSWORDS)

    async def downgrade(self, ops: SchemaOps) -> None:
        await ops.drop_table("sid_passwords")
        await ops.drop_table("sid_activity_log")
