"""
Migration 009: Última atividade e último login por usuário.
"""
from database.database import DialectKind
from .base import Migration, SchemaOps

CREATE_USER_ACTIVITY = {
    DialectKind.SQLITE: """
        CREATE TABLE user_activity (
            user_id INTEGER PRIMARY KEY,
            last_activity DATETIME NULL,
            last_login DATETIME NULL,
            FOREIGN KEY (user_id) REFERENCES users(id) ON DELETE CASCADE
        )
    """,
    DialectKind.MYSQL: """
        CREATE TABLE user_activity (
            user_id INT PRIMARY KEY,
            last_activity TIMESTAMP(3) NULL,
            last_login TIMESTAMP(3) NULL,
            CONSTRAINT fk_user_activity_user_id FOREIGN KEY (user_id) REFERENCES users(id) ON DELETE CASCADE
        ) ENGINE=InnoDB
    """,
}


class Migration009_UserActivity(Migration):
    id = "009"
    name = "user_activity"

    async def upgrade(self, ops: SchemaOps) -> None:
        await ops.create_table("user_activity", CREATE_USER_ACTIVITY)
        await ops.create_index("idx_user_activity_last_activity", "user_activity", ["last_activity"])
        await ops.create_index("idx_user_activity_last_login", "user_activity", ["last_login"])

    async def downgrade(self, ops: SchemaOps) -> None:
        await ops.drop_table("user_activity")
