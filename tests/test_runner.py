"""
Testes do MigrationRunner contra SQLite real: catálogo completo,
idempotência, ordem, retomada, falha no meio de uma migration e rollback.
"""
import asyncio
from dataclasses import replace

import pytest
from sqlalchemy.exc import OperationalError

import database.migrations.runner as runner_module
from database.adapters import create_adapter

from database.migrations.base import (
    CatalogError,
    DownPolicy,
    Migration,
    MigrationIrreversibleError,
    MigrationNotAppliedError,
    MigrationNotFoundError,
    SchemaOps,
    StepOutcome,
    get_applied_migrations,
)
from database.migrations.registry import LATEST_MIGRATION_ID
from database.migrations.runner import MigrationRunner, RunnerState
from database.migrations.schema_checks import SchemaIntrospector
from database.migrations.status import StatusReporter


class CreateWidgets(Migration):
    id = "001"
    name = "create_widgets"

    async def upgrade(self, ops: SchemaOps) -> None:
        await ops.create_table("widgets", "CREATE TABLE widgets (id INTEGER PRIMARY KEY, name TEXT)")

    async def downgrade(self, ops: SchemaOps) -> None:
        await ops.drop_table("widgets")


class AddWidgetColor(Migration):
    """Falha na segunda de três instruções enquanto `broken` for True."""

    id = "002"
    name = "add_widget_color"
    broken = True

    async def upgrade(self, ops: SchemaOps) -> None:
        await ops.add_column("widgets", "color", "TEXT NULL")
        if AddWidgetColor.broken:
            await ops.execute("UPDATE tabela_inexistente SET color = 'red'")
        await ops.create_index("idx_widgets_color", "widgets", ["color"])

    async def downgrade(self, ops: SchemaOps) -> None:
        await ops.drop_index("idx_widgets_color", "widgets")
        await ops.drop_column("widgets", "color")


class CreateGadgets(Migration):
    id = "003"
    name = "create_gadgets"

    async def upgrade(self, ops: SchemaOps) -> None:
        await ops.create_table("gadgets", "CREATE TABLE gadgets (id INTEGER PRIMARY KEY)")

    async def downgrade(self, ops: SchemaOps) -> None:
        await ops.drop_table("gadgets")


class BrokenDowngrade(Migration):
    id = "004"
    name = "broken_downgrade"

    async def upgrade(self, ops: SchemaOps) -> None:
        await ops.create_table("parts", "CREATE TABLE parts (id INTEGER PRIMARY KEY)")

    async def downgrade(self, ops: SchemaOps) -> None:
        await ops.drop_table("parts")
        await ops.execute("DROP TABLE tabela_inexistente")


@pytest.fixture(autouse=True)
def reset_broken_flag():
    AddWidgetColor.broken = True
    yield
    AddWidgetColor.broken = True


@pytest.mark.asyncio
async def test_banco_novo_aplica_catalogo_completo(sqlite_config, adapter, catalog):
    runner = MigrationRunner(sqlite_config, adapter=adapter)

    applied = await runner.run()

    assert applied == [migration.id for migration in catalog]
    assert applied[-1] == LATEST_MIGRATION_ID
    assert runner.state is RunnerState.DONE

    statuses = await StatusReporter(adapter).get_status()
    assert [status.id for status in statuses] == applied
    assert all(status.applied for status in statuses)
    assert all(status.applied_at is not None for status in statuses)


@pytest.mark.asyncio
async def test_runner_conecta_sozinho_quando_sem_adapter(sqlite_config, catalog):
    runner = MigrationRunner(sqlite_config)

    applied = await runner.run()

    assert len(applied) == len(catalog)
    assert not runner.adapter.is_connected


@pytest.mark.asyncio
async def test_segunda_execucao_nao_altera_nada(sqlite_config, adapter, snapshot):
    await MigrationRunner(sqlite_config, adapter=adapter).run()
    before = await snapshot(adapter)
    records_before = await get_applied_migrations(adapter)

    again = await MigrationRunner(sqlite_config, adapter=adapter).run()

    assert again == []
    assert await snapshot(adapter) == before
    assert await get_applied_migrations(adapter) == records_before


@pytest.mark.asyncio
async def test_applied_at_respeita_ordem_do_catalogo(sqlite_config, adapter, catalog):
    await MigrationRunner(sqlite_config, adapter=adapter).run()

    records = await get_applied_migrations(adapter)
    timestamps = [records[migration.id].applied_at for migration in catalog]

    assert all(earlier <= later for earlier, later in zip(timestamps, timestamps[1:]))


@pytest.mark.asyncio
async def test_retoma_a_partir_das_ja_aplicadas(sqlite_config, adapter, catalog):
    first = await MigrationRunner(sqlite_config, adapter=adapter, migrations=catalog[:5]).run()
    assert first == ["001", "002", "003", "004", "005"]

    rest = await MigrationRunner(sqlite_config, adapter=adapter).run()

    assert rest == [migration.id for migration in catalog[5:]]
    assert list(await get_applied_migrations(adapter)) == [migration.id for migration in catalog]


@pytest.mark.asyncio
async def test_dry_run_so_lista_pendentes(sqlite_config, adapter, catalog):
    schema = SchemaIntrospector(adapter, sqlite_config.dialect)

    pending = await MigrationRunner(sqlite_config, adapter=adapter).run(dry_run=True)

    assert pending == [migration.id for migration in catalog]
    assert await schema.table_exists("users") is False
    assert await get_applied_migrations(adapter) == {}


@pytest.mark.asyncio
async def test_falha_no_meio_reverte_e_interrompe(sqlite_config, adapter):
    schema = SchemaIntrospector(adapter, sqlite_config.dialect)
    runner = MigrationRunner(
        sqlite_config, adapter=adapter, migrations=[CreateWidgets, AddWidgetColor, CreateGadgets]
    )

    with pytest.raises(OperationalError):
        await runner.run()

    assert runner.state is RunnerState.FAILED
    assert runner.current.id == "002"
    # O passo 1 da 002 foi desfeito e nenhuma migration posterior rodou
    assert await schema.column_exists("widgets", "color") is False
    assert await schema.table_exists("gadgets") is False
    assert list(await get_applied_migrations(adapter)) == ["001"]
    assert not adapter.in_transaction


@pytest.mark.asyncio
async def test_proxima_execucao_refaz_a_migration_que_falhou(sqlite_config, adapter):
    catalog = [CreateWidgets, AddWidgetColor, CreateGadgets]
    with pytest.raises(OperationalError):
        await MigrationRunner(sqlite_config, adapter=adapter, migrations=catalog).run()

    AddWidgetColor.broken = False
    applied = await MigrationRunner(sqlite_config, adapter=adapter, migrations=catalog).run()

    schema = SchemaIntrospector(adapter, sqlite_config.dialect)
    assert applied == ["002", "003"]
    assert await schema.column_exists("widgets", "color") is True
    assert await schema.index_exists("idx_widgets_color") is True


@pytest.mark.asyncio
async def test_estado_parcial_nao_quebra_migrations_com_guardas(sqlite_config, adapter, catalog):
    await MigrationRunner(sqlite_config, adapter=adapter, migrations=catalog[:1]).run()
    # Alguém já aplicou à mão parte do que a 002 e a 009 fazem
    await adapter.execute("ALTER TABLE users ADD COLUMN role VARCHAR(32) NOT NULL DEFAULT 'USER'")
    await adapter.execute("CREATE INDEX idx_users_role ON users (role)")
    await adapter.execute("CREATE TABLE user_activity (user_id INTEGER PRIMARY KEY, last_activity DATETIME NULL, last_login DATETIME NULL)")

    applied = await MigrationRunner(sqlite_config, adapter=adapter).run()

    assert applied == [migration.id for migration in catalog[1:]]


@pytest.mark.asyncio
async def test_dados_existentes_sao_migrados(sqlite_config, adapter, catalog):
    await MigrationRunner(sqlite_config, adapter=adapter, migrations=catalog[:1]).run()
    await adapter.execute(
        "INSERT INTO users (email, password_hash, full_name) VALUES ('ana@example.com', 'x', 'Ana')"
    )
    await adapter.execute(
        "INSERT INTO users (email, password_hash, full_name) VALUES ('bia@example.com', 'x', 'Bia')"
    )
    await adapter.execute("INSERT INTO sites (name, user_id) VALUES ('DC-1', 1)")
    await adapter.execute(
        "INSERT INTO labels (site_id, user_id, reference_number, source, destination) "
        "VALUES (1, 1, 'REF-0042', 'A', 'B')"
    )

    await MigrationRunner(sqlite_config, adapter=adapter).run()

    users = await adapter.query("SELECT id, role, username FROM users ORDER BY id")
    assert users == [
        {"id": 1, "role": "GLOBAL_ADMIN", "username": "ana@example.com"},
        {"id": 2, "role": "USER", "username": "bia@example.com"},
    ]
    sites = await adapter.query("SELECT code, created_by FROM sites")
    assert sites == [{"code": "DC-1", "created_by": 1}]
    memberships = await adapter.query("SELECT site_id, user_id, site_role FROM site_memberships")
    assert memberships == [{"site_id": 1, "user_id": 1, "site_role": "SITE_ADMIN"}]
    labels = await adapter.query("SELECT ref_string, ref_number, type, created_by FROM labels")
    assert labels == [{"ref_string": "REF-0042", "ref_number": 42, "type": "cable", "created_by": 1}]
    counters = await adapter.query("SELECT site_id, next_ref, next_sid FROM site_counters")
    assert counters == [{"site_id": 1, "next_ref": 43, "next_sid": 1}]


@pytest.mark.asyncio
async def test_catalogo_customizado_invalido_e_rejeitado(sqlite_config, adapter):
    with pytest.raises(CatalogError):
        MigrationRunner(sqlite_config, adapter=adapter, migrations=[CreateWidgets, CreateWidgets])


def test_adapter_de_outro_dialeto_e_rejeitado(sqlite_config, recording_adapter):
    with pytest.raises(ValueError):
        MigrationRunner(sqlite_config, adapter=recording_adapter())


# Rollback


@pytest.mark.asyncio
@pytest.mark.parametrize("migration_id", ["001", "009", "010", "011", "012", "019", "020", "022", "025"])
async def test_rollback_reversivel_restaura_schema(sqlite_config, adapter, catalog, snapshot, migration_id):
    position = [migration.id for migration in catalog].index(migration_id)
    await MigrationRunner(sqlite_config, adapter=adapter, migrations=catalog[:position]).run()
    before = await snapshot(adapter)

    runner = MigrationRunner(sqlite_config, adapter=adapter, migrations=catalog[: position + 1])
    await runner.run()
    assert await snapshot(adapter) != before

    result = await runner.rollback(migration_id)

    assert result.policy is DownPolicy.REVERSIBLE
    assert result.fully_reverted
    assert await snapshot(adapter) == before
    assert migration_id not in await get_applied_migrations(adapter)


@pytest.mark.asyncio
async def test_rollback_best_effort_nao_falha_e_nao_mente(sqlite_config, adapter, catalog):
    schema = SchemaIntrospector(adapter, sqlite_config.dialect)
    runner = MigrationRunner(sqlite_config, adapter=adapter, migrations=catalog[:2])
    await runner.run()

    result = await runner.rollback("002")

    assert result.policy is DownPolicy.BEST_EFFORT
    assert not result.fully_reverted
    outcomes = {step.description: step.outcome for step in result.steps}
    assert outcomes["drop index idx_users_role"] is StepOutcome.APPLIED
    assert outcomes["drop column users.role"] is StepOutcome.SKIPPED_UNSUPPORTED
    # O índice saiu; a coluna ficou, como declarado no resultado
    assert await schema.index_exists("idx_users_role") is False
    assert await schema.column_exists("users", "role") is True
    assert "002" not in await get_applied_migrations(adapter)

    # Reaplicar depois do rollback parcial funciona graças às guardas
    assert await runner.run() == ["002"]


@pytest.mark.asyncio
async def test_rollback_de_migration_de_dados_e_noop_declarado(sqlite_config, adapter, catalog):
    runner = MigrationRunner(sqlite_config, adapter=adapter, migrations=catalog[:7])
    await runner.run()

    result = await runner.rollback("007")

    assert [step.outcome for step in result.steps] == [StepOutcome.SKIPPED_UNSUPPORTED]


@pytest.mark.asyncio
async def test_rollback_unsupported_e_recusado(sqlite_config, adapter, catalog, snapshot):
    runner = MigrationRunner(sqlite_config, adapter=adapter, migrations=catalog[:3])
    await runner.run()
    before = await snapshot(adapter)

    with pytest.raises(MigrationIrreversibleError):
        await runner.rollback("003")

    assert await snapshot(adapter) == before
    assert "003" in await get_applied_migrations(adapter)


@pytest.mark.asyncio
async def test_rollback_de_id_desconhecido(sqlite_config, adapter):
    with pytest.raises(MigrationNotFoundError):
        await MigrationRunner(sqlite_config, adapter=adapter).rollback("999")


@pytest.mark.asyncio
async def test_rollback_de_migration_nao_aplicada_nao_altera_banco(sqlite_config, adapter):
    schema = SchemaIntrospector(adapter, sqlite_config.dialect)

    with pytest.raises(MigrationNotAppliedError):
        await MigrationRunner(sqlite_config, adapter=adapter).rollback("001")

    # Nem a tabela de controle foi criada
    assert await schema.table_exists("migrations") is False


@pytest.mark.asyncio
async def test_rollback_que_falha_mantem_registro(sqlite_config, adapter):
    schema = SchemaIntrospector(adapter, sqlite_config.dialect)
    runner = MigrationRunner(sqlite_config, adapter=adapter, migrations=[CreateWidgets, BrokenDowngrade])
    await runner.run()

    with pytest.raises(OperationalError):
        await runner.rollback("004")

    assert await schema.table_exists("parts") is True
    assert "004" in await get_applied_migrations(adapter)


# Concorrência


@pytest.mark.asyncio
async def test_dois_runners_no_mesmo_arquivo_se_revezam(sqlite_config, catalog):
    config = replace(sqlite_config, lock_timeout=30)
    all_ids = [migration.id for migration in catalog]

    first, second = await asyncio.gather(MigrationRunner(config).run(), MigrationRunner(config).run())

    # Cada migration é aplicada por exatamente uma das instâncias
    assert sorted(first + second, key=int) == all_ids
    async with create_adapter(config) as other:
        assert list(await get_applied_migrations(other)) == all_ids


@pytest.mark.asyncio
async def test_leitura_desatualizada_nao_reaplica(sqlite_config, adapter, snapshot, monkeypatch):
    await MigrationRunner(sqlite_config, adapter=adapter).run()
    before = await snapshot(adapter)
    records_before = await get_applied_migrations(adapter)

    # Simula a instância que leu a tabela de controle antes da outra terminar
    async def nothing_applied(adapter):
        return {}

    monkeypatch.setattr(runner_module, "get_applied_migrations", nothing_applied)

    assert await MigrationRunner(sqlite_config, adapter=adapter).run() == []
    assert await snapshot(adapter) == before
    assert await get_applied_migrations(adapter) == records_before


# Definições do catálogo


async def _seed_user_and_site(adapter):
    await adapter.execute(
        "INSERT INTO users (email, password_hash, full_name) VALUES ('ana@example.com', 'x', 'Ana')"
    )
    await adapter.execute("INSERT INTO sites (name, user_id) VALUES ('DC-1', 1)")


@pytest.mark.asyncio
async def test_papel_global_admin_legado_e_normalizado(sqlite_config, adapter, catalog):
    await MigrationRunner(sqlite_config, adapter=adapter, migrations=catalog[:6]).run()
    await adapter.execute(
        "INSERT INTO users (email, password_hash, full_name, role) VALUES ('leo@example.com', 'x', 'Leo', 'ADMIN')"
    )

    await MigrationRunner(sqlite_config, adapter=adapter).run()

    rows = await adapter.query("SELECT role FROM users WHERE email = 'leo@example.com'")
    assert rows == [{"role": "GLOBAL_ADMIN"}]


@pytest.mark.asyncio
async def test_remocao_de_coluna_com_dados_no_sqlite(sqlite_config, adapter, catalog):
    schema = SchemaIntrospector(adapter, sqlite_config.dialect)
    await MigrationRunner(sqlite_config, adapter=adapter, migrations=catalog[:1]).run()
    await _seed_user_and_site(adapter)
    await MigrationRunner(sqlite_config, adapter=adapter, migrations=catalog[:16]).run()
    await adapter.execute(
        "INSERT INTO site_locations (site_id, floor, suite, `row`, rack, name) "
        "VALUES (1, '1', 'A', '01', 'R1', 'Sala A')"
    )

    runner = MigrationRunner(sqlite_config, adapter=adapter, migrations=catalog[:17])
    assert await runner.run() == ["017"]

    # A coluna não pode sair sem reconstruir a tabela: fica, com os dados
    assert await schema.column_exists("site_locations", "name") is True
    assert await adapter.query("SELECT name FROM site_locations") == [{"name": "Sala A"}]

    result = await runner.rollback("017")

    assert result.policy is DownPolicy.REVERSIBLE
    assert [step.outcome for step in result.steps] == [StepOutcome.SKIPPED_ALREADY_PRESENT]
    assert result.fully_reverted


@pytest.mark.asyncio
async def test_senhas_existentes_ganham_tipo_padrao_e_chave_composta(sqlite_config, adapter, catalog):
    schema = SchemaIntrospector(adapter, sqlite_config.dialect)
    await MigrationRunner(sqlite_config, adapter=adapter, migrations=catalog[:1]).run()
    await _seed_user_and_site(adapter)
    await MigrationRunner(sqlite_config, adapter=adapter, migrations=catalog[:25]).run()
    await adapter.execute("INSERT INTO sids (site_id, sid_number) VALUES (1, 'SID-1')")
    await adapter.execute(
        "INSERT INTO sid_passwords (sid_id, username, password_ciphertext) VALUES (1, 'root', 'cifrado')"
    )
    assert await schema.primary_key_columns("sid_passwords") == ["sid_id"]

    assert await MigrationRunner(sqlite_config, adapter=adapter).run() == ["026"]

    assert await schema.primary_key_columns("sid_passwords") == ["sid_id", "password_type_id"]
    assert await schema.index_exists("idx_sid_passwords_type") is True
    rows = await adapter.query(
        "SELECT p.sid_id, p.username, t.name AS type_name FROM sid_passwords p "
        "JOIN sid_password_types t ON t.id = p.password_type_id"
    )
    assert rows == [{"sid_id": 1, "username": "root", "type_name": "OS Credentials"}]
    assert await schema.table_exists("sid_passwords_rebuild") is False


@pytest.mark.asyncio
@pytest.mark.parametrize("migration_id", ["023", "026"])
async def test_rollback_das_alteracoes_irreversiveis_e_recusado(sqlite_config, adapter, catalog, migration_id):
    runner = MigrationRunner(sqlite_config, adapter=adapter)
    await runner.run()

    with pytest.raises(MigrationIrreversibleError):
        await runner.rollback(migration_id)

    assert migration_id in await get_applied_migrations(adapter)
