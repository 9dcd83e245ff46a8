"""
Configuração global de testes do motor de migrations.
Fornece fixtures para bancos SQLite em arquivo temporário, um adapter
"gravador" que simula o MySQL e o cliente HTTP da API.
"""
from typing import Any, Dict, List, Mapping, Optional

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.exc import OperationalError

import database.database as db_module
from database.adapters import ExecuteResult, create_adapter
from database.database import AdapterConfig
from database.migrations.registry import MIGRATIONS


@pytest.fixture
def sqlite_config(tmp_path) -> AdapterConfig:
    """Banco SQLite novo em um subdiretório ainda inexistente."""
    return AdapterConfig.for_sqlite(tmp_path / "db" / "test.sqlite", lock_timeout=1)


@pytest_asyncio.fixture(scope="function")
async def adapter(sqlite_config):
    """Adapter SQLite conectado para cada teste."""
    adapter = create_adapter(sqlite_config)
    await adapter.connect()
    yield adapter
    await adapter.disconnect()


@pytest.fixture
def catalog():
    return list(MIGRATIONS)


async def schema_snapshot(adapter) -> Dict[str, Any]:
    """Forma introspectável do schema (tabelas, colunas, índices e triggers), sem a tabela migrations."""
    objects = await adapter.query(
        """
        SELECT type, name, tbl_name FROM sqlite_master
        WHERE name NOT LIKE 'sqlite\\_%' ESCAPE '\\' AND tbl_name != 'migrations'
        ORDER BY type, name
        """
    )
    columns = {}
    for obj in objects:
        if obj["type"] == "table":
            rows = await adapter.query(f"PRAGMA table_xinfo({obj['name']})")
            columns[obj["name"]] = [row["name"] for row in rows]
    return {
        "objects": [(obj["type"], obj["name"]) for obj in objects],
        "columns": columns,
    }


@pytest.fixture
def snapshot():
    return schema_snapshot


class RecordingAdapter:
    """
    Adapter falso com o dialeto MySQL: grava cada instrução e responde
    às sondas de introspecção a partir de conjuntos configuráveis.
    """

    supports_transactional_ddl = False

    def __init__(
        self,
        config: AdapterConfig,
        tables=(),
        columns=(),
        indexes=(),
        applied=(),
        lock_available: bool = True,
        fail_on=(),
        primary_keys=None,
    ):
        self.config = config
        self.dialect = config.dialect
        self.tables = set(tables)
        self.columns = set(columns)
        self.indexes = set(indexes)
        self.applied = list(applied)
        self.lock_available = lock_available
        self.fail_on = tuple(fail_on)
        self.primary_keys = dict(primary_keys or {})
        self.statements: List[str] = []
        self.events: List[str] = []
        self.is_connected = True
        self.in_transaction = False

    async def connect(self) -> None:
        self.is_connected = True

    async def disconnect(self) -> None:
        self.is_connected = False

    async def query(self, sql: str, params: Optional[Mapping[str, Any]] = None) -> List[Dict[str, Any]]:
        params = dict(params or {})
        self.statements.append(" ".join(sql.split()))
        if "GET_LOCK" in sql:
            self.events.append("lock")
            return [{"acquired": 1 if self.lock_available else 0}]
        if "RELEASE_LOCK" in sql:
            self.events.append("unlock")
            return [{"released": 1}]
        if "INFORMATION_SCHEMA.TABLES" in sql:
            return [{"name": params["table"]}] if params["table"] in self.tables else []
        if "INFORMATION_SCHEMA.COLUMNS" in sql:
            found = (params["table"], params["column"]) in self.columns
            return [{"name": params["column"]}] if found else []
        if "INFORMATION_SCHEMA.STATISTICS" in sql:
            return [{"name": params["index"]}] if params["index"] in self.indexes else []
        if "INFORMATION_SCHEMA.KEY_COLUMN_USAGE" in sql:
            return [{"name": column} for column in self.primary_keys.get(params["table"], [])]
        if "COUNT(*)" in sql:
            return [{"total": 1 if params.get("id") in self.applied else 0}]
        if "FROM migrations" in sql:
            return [{"id": mid, "name": f"m{mid}", "applied_at": None} for mid in self.applied]
        return []

    async def execute(self, sql: str, params: Optional[Mapping[str, Any]] = None) -> ExecuteResult:
        statement = " ".join(sql.split())
        self.statements.append(statement)
        for fragment in self.fail_on:
            if fragment in statement:
                raise OperationalError(statement, params, Exception(3823, f"falha simulada: {fragment}"))
        return ExecuteResult(affected_rows=0)

    async def begin_transaction(self) -> None:
        self.events.append("begin")
        self.in_transaction = True

    async def commit(self) -> None:
        self.events.append("commit")
        self.in_transaction = False

    async def rollback(self) -> None:
        self.events.append("rollback")
        self.in_transaction = False

    async def acquire_migration_lock(self, timeout: int) -> bool:
        rows = await self.query("SELECT GET_LOCK(:name, :timeout) AS acquired", {"name": "x", "timeout": timeout})
        return rows[0]["acquired"] == 1

    async def release_migration_lock(self) -> None:
        await self.query("SELECT RELEASE_LOCK(:name) AS released", {"name": "x"})

    def executed(self, fragment: str) -> List[str]:
        return [statement for statement in self.statements if fragment in statement]


@pytest.fixture
def mysql_config() -> AdapterConfig:
    return AdapterConfig.for_mysql(
        host="db.internal",
        user="infradb",
        password="s3cr3t",
        database="infradb",
        lock_timeout=5,
    )


@pytest.fixture
def recording_adapter(mysql_config):
    def factory(**kwargs) -> RecordingAdapter:
        return RecordingAdapter(mysql_config, **kwargs)
    return factory


@pytest_asyncio.fixture(scope="function")
async def client(sqlite_config, monkeypatch):
    """Cliente HTTP assíncrono apontando o engine do processo para o banco de teste."""
    from main import app

    monkeypatch.setattr(db_module, "_config", sqlite_config)
    monkeypatch.setattr(db_module, "_engine", None)

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test"
    ) as ac:
        yield ac

    await db_module.dispose_engine()
