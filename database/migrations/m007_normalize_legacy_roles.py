"""
Migration 007: Normaliza papéis legados.
Global: 'ADMIN' vira 'GLOBAL_ADMIN'. Por site: 'ADMIN'/'USER' viram
'SITE_ADMIN'/'SITE_USER', inclusive os criados pelo backfill da 003.
"""
from .base import DownPolicy, Migration, SchemaOps

GLOBAL_ROLE_MAPPING = (
    ("ADMIN", "GLOBAL_ADMIN"),
)

SITE_ROLE_MAPPING = (
    ("ADMIN", "SITE_ADMIN"),
    ("USER", "SITE_USER"),
)

SITE_ROLE_TABLES = ("site_memberships", "invitation_sites")


class Migration007_NormalizeLegacyRoles(Migration):
    id = "007"
    name = "normalize_legacy_roles"
    description = "Converte papéis legados para GLOBAL_ADMIN e SITE_ADMIN/SITE_USER"
    down_policy = DownPolicy.BEST_EFFORT

    async def upgrade(self, ops: SchemaOps) -> None:
        for legacy, normalized in GLOBAL_ROLE_MAPPING:
            await ops.execute(
                "UPDATE users SET role = :normalized WHERE UPPER(role) = :legacy",
                {"normalized": normalized, "legacy": legacy},
                description=f"users: {legacy} -> {normalized}",
            )

        for table in SITE_ROLE_TABLES:
            for legacy, normalized in SITE_ROLE_MAPPING:
                await ops.execute(
                    f"UPDATE {table} SET site_role = :normalized WHERE UPPER(site_role) = :legacy",
                    {"normalized": normalized, "legacy": legacy},
                    description=f"{table}: {legacy} -> {normalized}",
                )

    async def downgrade(self, ops: SchemaOps) -> None:
        ops.unsupported(
            "restaurar papéis legados",
            "papéis normalizados não se distinguem dos criados depois da migration",
        )
