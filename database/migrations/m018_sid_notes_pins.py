"""
Migration 018: Quem fixou uma nota de SID e quando.
O índice de listagem passa a ordenar também por pinned_at.
"""
from database.database import DialectKind
from .base import DownPolicy, Migration, SchemaOps

PINNED_AT_COLUMN = {
    DialectKind.SQLITE: "DATETIME NULL",
    DialectKind.MYSQL: "TIMESTAMP(3) NULL",
}

PINNED_BY_COLUMN = {
    DialectKind.SQLITE: "INTEGER NULL",
    DialectKind.MYSQL: "INT NULL",
}

PREVIOUS_INDEX = ("idx_sid_notes_sid_pinned", ["sid_id", "pinned", "created_at"])
PINNED_ORDER_INDEX = ("idx_sid_notes_pinned_order", ["sid_id", "pinned", "pinned_at", "created_at"])


class Migration018_SidNotesPins(Migration):
    id = "018"
    name = "sid_notes_pins"
    description = "Adiciona sid_notes.pinned_at/pinned_by"
    down_policy = {
        DialectKind.SQLITE: DownPolicy.BEST_EFFORT,
        DialectKind.MYSQL: DownPolicy.REVERSIBLE,
    }

    async def upgrade(self, ops: SchemaOps) -> None:
        await ops.add_column("sid_notes", "pinned_at", PINNED_AT_COLUMN)
        await ops.add_column("sid_notes", "pinned_by", PINNED_BY_COLUMN)

        name, columns = PINNED_ORDER_INDEX
        await ops.create_index(name, "sid_notes", columns)
        await ops.drop_index(PREVIOUS_INDEX[0], "sid_notes")

    async def downgrade(self, ops: SchemaOps) -> None:
        name, columns = PREVIOUS_INDEX
        await ops.create_index(name, "sid_notes", columns)
        await ops.drop_index(PINNED_ORDER_INDEX[0], "sid_notes")
        await ops.drop_column("sid_notes", "pinned_by")
        await ops.drop_column("sid_notes", "pinned_at")
