"""
Migration 006: Nome de usuário para login.
Linhas existentes recebem o email como username.
"""
from database.database import DialectKind
from .base import DownPolicy, Migration, SchemaOps


class Migration006_AddUsernameToUsers(Migration):
    id = "006"
    name = "add_username_to_users"
    description = "Adiciona users.username preenchido a partir do email"
    down_policy = {
        DialectKind.SQLITE: DownPolicy.BEST_EFFORT,
        DialectKind.MYSQL: DownPolicy.REVERSIBLE,
    }

    async def upgrade(self, ops: SchemaOps) -> None:
        await ops.add_column("users", "username", "VARCHAR(255) NULL")
        await ops.execute(
            "UPDATE users SET username = email WHERE username IS NULL OR username = ''",
            description="backfill users.username",
        )
        # SQLite: NOT NULL fica a cargo da aplicação
        await ops.modify_column("users", "username", "VARCHAR(255) NOT NULL")
        await ops.create_index("idx_users_username", "users", ["username"])

    async def downgrade(self, ops: SchemaOps) -> None:
        await ops.drop_index("idx_users_username", "users")
        await ops.drop_column("users", "username")
