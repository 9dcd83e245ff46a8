"""
Migration 010: Log de atividades (auditoria) por usuário e site.
"""
from database.database import DialectKind
from .base import Migration, SchemaOps

CREATE_ACTIVITY_LOG = {
    DialectKind.SQLITE: """
        CREATE TABLE activity_log (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            actor_user_id INTEGER NOT NULL,
            site_id INTEGER NULL,
            action VARCHAR(100) NOT NULL,
            summary VARCHAR(500) NOT NULL,
            metadata_json TEXT NULL,
            created_at TEXT NOT NULL DEFAULT (strftime('%Y-%m-%d %H:%M:%f', 'now')),
            FOREIGN KEY (actor_user_id) REFERENCES users(id) ON DELETE CASCADE,
            FOREIGN KEY (site_id) REFERENCES sites(id) ON DELETE SET NULL
        )
    """,
    DialectKind.MYSQL: """
        CREATE TABLE activity_log (
            id BIGINT AUTO_INCREMENT PRIMARY KEY,
            actor_user_id INT NOT NULL,
            site_id INT NULL,
            action VARCHAR(100) NOT NULL,
            summary VARCHAR(500) NOT NULL,
            metadata_json TEXT NULL,
            created_at TIMESTAMP(3) NOT NULL DEFAULT CURRENT_TIMESTAMP(3),
            CONSTRAINT fk_activity_log_actor FOREIGN KEY (actor_user_id) REFERENCES users(id) ON DELETE CASCADE,
            CONSTRAINT fk_activity_log_site FOREIGN KEY (site_id) REFERENCES sites(id) ON DELETE SET NULL
        ) ENGINE=InnoDB
    """,
}


class Migration010_ActivityLog(Migration):
    id = "010"
    name = "activity_log"

    async def upgrade(self, ops: SchemaOps) -> None:
        await ops.create_table("activity_log", CREATE_ACTIVITY_LOG)
        await ops.create_index("idx_activity_log_actor_created", "activity_log", ["actor_user_id", "created_at"])
        await ops.create_index("idx_activity_log_site_created", "activity_log", ["site_id", "created_at"])
        await ops.create_index("idx_activity_log_created", "activity_log", ["created_at"])

    async def downgrade(self, ops: SchemaOps) -> None:
        await ops.drop_table("activity_log")
