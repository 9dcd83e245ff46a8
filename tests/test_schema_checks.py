"""
Testes das sondas de introspecção (tabelas, colunas e índices).
"""
import pytest

from database.database import DialectKind
from database.migrations.schema_checks import SchemaIntrospector, validate_identifier


@pytest.fixture
def schema(adapter):
    return SchemaIntrospector(adapter, DialectKind.SQLITE)


@pytest.mark.asyncio
async def test_sondas_de_objetos_existentes(adapter, schema):
    await adapter.execute("CREATE TABLE devices (id INTEGER PRIMARY KEY, hostname TEXT)")
    await adapter.execute("CREATE INDEX idx_devices_hostname ON devices (hostname)")

    assert await schema.table_exists("devices") is True
    assert await schema.column_exists("devices", "hostname") is True
    assert await schema.index_exists("idx_devices_hostname") is True
    assert await schema.index_exists("idx_devices_hostname", "devices") is True


@pytest.mark.asyncio
async def test_sondas_de_objetos_ausentes_retornam_false(adapter, schema):
    await adapter.execute("CREATE TABLE devices (id INTEGER PRIMARY KEY)")

    assert await schema.table_exists("racks") is False
    assert await schema.column_exists("devices", "serial") is False
    assert await schema.index_exists("idx_racks_name") is False


@pytest.mark.asyncio
async def test_coluna_de_tabela_inexistente_nao_gera_erro(schema):
    assert await schema.column_exists("tabela_que_nao_existe", "id") is False


@pytest.mark.asyncio
async def test_indice_nao_e_confundido_com_tabela(adapter, schema):
    await adapter.execute("CREATE TABLE devices (id INTEGER PRIMARY KEY, hostname TEXT)")
    await adapter.execute("CREATE INDEX devices_lookup ON devices (hostname)")

    assert await schema.table_exists("devices_lookup") is False
    assert await schema.index_exists("devices") is False


@pytest.mark.asyncio
async def test_coluna_gerada_e_visivel(adapter, schema):
    await adapter.execute(
        "CREATE TABLE locations (id INTEGER PRIMARY KEY, label TEXT, "
        "label_key TEXT GENERATED ALWAYS AS (IFNULL(label, '-')) VIRTUAL)"
    )

    assert await schema.column_exists("locations", "label_key") is True


@pytest.mark.asyncio
async def test_identificador_invalido_e_rejeitado(schema):
    with pytest.raises(ValueError):
        await schema.column_exists("devices); DROP TABLE users; --", "id")


@pytest.mark.parametrize("name", ["users", "_tmp", "site_counters2", "A1"])
def test_identificadores_validos(name):
    assert validate_identifier(name) == name


@pytest.mark.parametrize("name", ["", "1users", "users-old", "users table", "`users`"])
def test_identificadores_invalidos(name):
    with pytest.raises(ValueError):
        validate_identifier(name)


@pytest.mark.asyncio
async def test_sondas_mysql_usam_information_schema(recording_adapter):
    fake = recording_adapter(tables={"users"}, columns={("users", "role")}, indexes={"idx_users_role"})
    schema = SchemaIntrospector(fake, DialectKind.MYSQL)

    assert await schema.table_exists("users") is True
    assert await schema.table_exists("sites") is False
    assert await schema.column_exists("users", "role") is True
    assert await schema.column_exists("users", "username") is False
    assert await schema.index_exists("idx_users_role", "users") is True

    assert all("DATABASE()" in statement for statement in fake.statements)
    assert "TABLE_NAME = :table" in fake.statements[-1]


@pytest.mark.asyncio
async def test_chave_primaria_na_ordem_da_chave(adapter, schema):
    await adapter.execute("CREATE TABLE ports (id INTEGER PRIMARY KEY, name TEXT)")
    await adapter.execute(
        "CREATE TABLE port_links (port_b INTEGER, port_a INTEGER, note TEXT, PRIMARY KEY (port_a, port_b))"
    )

    assert await schema.primary_key_columns("ports") == ["id"]
    assert await schema.primary_key_columns("port_links") == ["port_a", "port_b"]
    assert await schema.primary_key_columns("tabela_que_nao_existe") == []


@pytest.mark.asyncio
async def test_chave_primaria_mysql_usa_key_column_usage(recording_adapter):
    fake = recording_adapter(primary_keys={"sid_passwords": ["sid_id", "password_type_id"]})
    schema = SchemaIntrospector(fake, DialectKind.MYSQL)

    assert await schema.primary_key_columns("sid_passwords") == ["sid_id", "password_type_id"]
    assert await schema.primary_key_columns("sids") == []
    assert "CONSTRAINT_NAME = 'PRIMARY'" in fake.statements[-1]
