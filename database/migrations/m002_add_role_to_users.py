"""
Migration 002: Papel global do usuário.
No SQLite o CHECK vai junto da coluna; no MySQL é adicionado depois
como constraint opcional (versões antigas ignoram ou rejeitam CHECK).
"""
from database.database import DialectKind
from .base import DownPolicy, Migration, SchemaOps

ROLES = "('GLOBAL_ADMIN', 'ADMIN', 'USER')"

ROLE_COLUMN = {
    DialectKind.SQLITE: f"VARCHAR(32) NOT NULL DEFAULT 'USER' CHECK (role IN {ROLES})",
    DialectKind.MYSQL: "VARCHAR(32) NOT NULL DEFAULT 'USER'",
}

ADD_ROLE_CHECK = {
    DialectKind.SQLITE: None,
    DialectKind.MYSQL: f"ALTER TABLE users ADD CONSTRAINT chk_users_role CHECK (role IN {ROLES})",
}

DROP_ROLE_CHECK = {
    DialectKind.SQLITE: None,
    DialectKind.MYSQL: "ALTER TABLE users DROP CHECK chk_users_role",
}

# O usuário mais antigo vira administrador global
PROMOTE_FIRST_USER = {
    DialectKind.SQLITE: """
        UPDATE users SET role = 'GLOBAL_ADMIN'
        WHERE id = (SELECT MIN(id) FROM users)
    """,
    DialectKind.MYSQL: """
        UPDATE users u
        JOIN (SELECT MIN(id) AS id FROM users) oldest ON oldest.id = u.id
        SET u.role = 'GLOBAL_ADMIN'
    """,
}


class Migration002_AddRoleToUsers(Migration):
    id = "002"
    name = "add_role_to_users"
    description = "Adiciona users.role com CHECK de valores permitidos"
    down_policy = {
        DialectKind.SQLITE: DownPolicy.BEST_EFFORT,
        DialectKind.MYSQL: DownPolicy.REVERSIBLE,
    }

    async def upgrade(self, ops: SchemaOps) -> None:
        await ops.add_column("users", "role", ROLE_COLUMN)
        await ops.optional(ADD_ROLE_CHECK, description="check constraint users.role")
        await ops.execute(PROMOTE_FIRST_USER, description="promove primeiro usuário")
        await ops.create_index("idx_users_role", "users", ["role"])

    async def downgrade(self, ops: SchemaOps) -> None:
        # SQLite: a coluna permanece (remover exigiria reconstruir users)
        await ops.drop_index("idx_users_role", "users")
        await ops.optional(DROP_ROLE_CHECK, description="drop check constraint users.role")
        await ops.drop_column("users", "role")
