"""
Migration 019: Modelos de CPU por site, com núcleos e threads.
"""
from database.database import DialectKind
from .base import Migration, SchemaOps

CREATE_SID_CPU_MODELS = {
    DialectKind.SQLITE: """
        CREATE TABLE sid_cpu_models (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            site_id INTEGER NOT NULL,
            manufacturer VARCHAR(255) NULL,
            name VARCHAR(255) NOT NULL,
            description TEXT NULL,
            created_at DATETIME NOT NULL DEFAULT CURRENT_TIMESTAMP,
            updated_at DATETIME NOT NULL DEFAULT CURRENT_TIMESTAMP,
            FOREIGN KEY (site_id) REFERENCES sites(id) ON DELETE CASCADE,
            UNIQUE (site_id, name)
        )
    """,
    DialectKind.MYSQL: """
        CREATE TABLE sid_cpu_models (
            id INT AUTO_INCREMENT PRIMARY KEY,
            site_id INT NOT NULL,
            manufacturer VARCHAR(255) NULL,
            name VARCHAR(255) NOT NULL,
            description TEXT NULL,
            created_at TIMESTAMP(3) NOT NULL DEFAULT CURRENT_TIMESTAMP(3),
            updated_at TIMESTAMP(3) NOT NULL DEFAULT CURRENT_TIMESTAMP(3) ON UPDATE CURRENT_TIMESTAMP(3),
            CONSTRAINT fk_sid_cpu_models_site_id FOREIGN KEY (site_id) REFERENCES sites(id) ON DELETE CASCADE,
            UNIQUE KEY unique_site_cpu_model_name (site_id, name)
        ) ENGINE=InnoDB
    """,
}

COUNT_COLUMN = {
    DialectKind.SQLITE: "INTEGER NULL",
    DialectKind.MYSQL: "INT NULL",
}


class Migration019_SidCpuModels(Migration):
    id = "019"
    name = "sid_cpu_models_cores_threads"
    description = "Tabela sid_cpu_models com cpu_cores/cpu_threads"

    async def upgrade(self, ops: SchemaOps) -> None:
        await ops.create_table("sid_cpu_models", CREATE_SID_CPU_MODELS)
        # Instalações antigas já têm a tabela, sem as colunas
        await ops.add_column("sid_cpu_models", "cpu_cores", COUNT_COLUMN)
        await ops.add_column("sid_cpu_models", "cpu_threads", COUNT_COLUMN)

    async def downgrade(self, ops: SchemaOps) -> None:
        await ops.drop_table("sid_cpu_models")
