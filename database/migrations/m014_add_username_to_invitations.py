"""
Migration 014: Nome de usuário proposto no convite.
Convites antigos recebem o email como username.
"""
from database.database import DialectKind
from .base import DownPolicy, Migration, SchemaOps


class Migration014_AddUsernameToInvitations(Migration):
    id = "014"
    name = "add_username_to_invitations"
    description = "Adiciona invitations.username preenchido a partir do email"
    down_policy = {
        DialectKind.SQLITE: DownPolicy.BEST_EFFORT,
        DialectKind.MYSQL: DownPolicy.REVERSIBLE,
    }

    async def upgrade(self, ops: SchemaOps) -> None:
        await ops.add_column("invitations", "username", "VARCHAR(100) NULL")
        await ops.execute(
            "UPDATE invitations SET username = email WHERE username IS NULL OR username = ''",
            description="backfill invitations.username",
        )

    async def downgrade(self, ops: SchemaOps) -> None:
        await ops.drop_column("invitations", "username")
