"""
Migration 011: Tokens de redefinição de senha.
"""
from database.database import DialectKind
from .base import Migration, SchemaOps

CREATE_PASSWORD_RESET_TOKENS = {
    DialectKind.SQLITE: """
        CREATE TABLE password_reset_tokens (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            user_id INTEGER NOT NULL,
            token_hash VARCHAR(255) NOT NULL UNIQUE,
            expires_at DATETIME NOT NULL,
            used_at DATETIME NULL,
            created_by_user_id INTEGER NULL,
            created_at DATETIME NOT NULL DEFAULT CURRENT_TIMESTAMP,
            FOREIGN KEY (user_id) REFERENCES users(id) ON DELETE CASCADE,
            FOREIGN KEY (created_by_user_id) REFERENCES users(id) ON DELETE SET NULL
        )
    """,
    DialectKind.MYSQL: """
        CREATE TABLE password_reset_tokens (
            id INT AUTO_INCREMENT PRIMARY KEY,
            user_id INT NOT NULL,
            token_hash VARCHAR(255) NOT NULL UNIQUE,
            expires_at TIMESTAMP(3) NOT NULL,
            used_at TIMESTAMP(3) NULL,
            created_by_user_id INT NULL,
            created_at TIMESTAMP(3) NOT NULL DEFAULT CURRENT_TIMESTAMP(3),
            CONSTRAINT fk_password_reset_tokens_user_id FOREIGN KEY (user_id) REFERENCES users(id) ON DELETE CASCADE,
            CONSTRAINT fk_password_reset_tokens_created_by FOREIGN KEY (created_by_user_id) REFERENCES users(id) ON DELETE SET NULL
        ) ENGINE=InnoDB
    """,
}


class Migration011_PasswordResetTokens(Migration):
    id = "011"
    name = "password_reset_tokens"

    async def upgrade(self, ops: SchemaOps) -> None:
        await ops.create_table("password_reset_tokens", CREATE_PASSWORD_RESET_TOKENS)
        await ops.create_index("idx_password_reset_tokens_user_id", "password_reset_tokens", ["user_id"])
        await ops.create_index("idx_password_reset_tokens_expires_at", "password_reset_tokens", ["expires_at"])

    async def downgrade(self, ops: SchemaOps) -> None:
        await ops.drop_table("password_reset_tokens")
