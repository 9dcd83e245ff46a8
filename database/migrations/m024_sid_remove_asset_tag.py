"""
Migration 024: Remove sids.asset_tag (sem uso) e permite notas de SID
sem autor, para notas geradas pelo sistema.
"""
from database.database import DialectKind
from .base import DownPolicy, Migration, SchemaOps, StepOutcome

DROP_NOTES_AUTHOR_FK = {
    DialectKind.SQLITE: None,
    DialectKind.MYSQL: "ALTER TABLE sid_notes DROP FOREIGN KEY fk_sid_notes_created_by",
}

ADD_NOTES_AUTHOR_FK = {
    DialectKind.SQLITE: None,
    DialectKind.MYSQL: """
        ALTER TABLE sid_notes ADD CONSTRAINT fk_sid_notes_created_by
        FOREIGN KEY (created_by) REFERENCES users(id) ON DELETE SET NULL
    """,
}


class Migration024_SidRemoveAssetTag(Migration):
    id = "024"
    name = "sid_remove_asset_tag_system_notes"
    description = "Remove sids.asset_tag e torna sid_notes.created_by opcional"
    down_policy = DownPolicy.BEST_EFFORT

    async def upgrade(self, ops: SchemaOps) -> None:
        await ops.drop_column("sids", "asset_tag")

        await ops.optional(DROP_NOTES_AUTHOR_FK, description="drop foreign key fk_sid_notes_created_by")
        await ops.modify_column("sid_notes", "created_by", "INT NULL")
        await ops.optional(ADD_NOTES_AUTHOR_FK, description="foreign key fk_sid_notes_created_by (SET NULL)")

    async def downgrade(self, ops: SchemaOps) -> None:
        restored = await ops.add_column("sids", "asset_tag", "VARCHAR(255) NULL")
        if restored is StepOutcome.APPLIED:
            ops.unsupported("restaurar valores de sids.asset_tag", "valores removidos pela migration")
        ops.unsupported("restaurar NOT NULL em sid_notes.created_by", "notas do sistema não têm autor")
