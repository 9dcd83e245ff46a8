"""
Adapters de banco de dados.
Expõe uma superfície uniforme (execute/query/transação) sobre SQLite e MySQL,
escondendo as diferenças de driver e de comportamento transacional.
"""
import logging
from dataclasses import dataclass, replace
from typing import Any, Dict, List, Mapping, Optional

from sqlalchemy import text
from sqlalchemy.engine import URL
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine

from database.database import SQLITE_BEGIN_KEY, AdapterConfig, DialectKind, build_engine

logger = logging.getLogger(__name__)

ER_BAD_DB_ERROR = 1049


class AdapterError(RuntimeError):
    """Erro de uso do adapter (não é erro do engine)."""


class AdapterNotConnectedError(AdapterError):
    """O adapter foi usado antes de connect()."""


class TransactionStateError(AdapterError):
    """begin/commit/rollback chamados fora de ordem."""


@dataclass
class ExecuteResult:
    affected_rows: int
    insert_id: Optional[int] = None


class DialectAdapter:
    """
    Superfície comum sobre uma conexão fixa do engine.

    Fora de uma transação explícita cada instrução é confirmada
    automaticamente. Erros do engine são propagados sem alteração.
    """

    dialect: DialectKind
    supports_transactional_ddl: bool = True

    def __init__(self, config: AdapterConfig, engine: Optional[AsyncEngine] = None):
        self.config = config
        self._engine = engine
        self._owns_engine = engine is None
        self._conn: Optional[AsyncConnection] = None
        self._in_transaction = False

    @property
    def is_connected(self) -> bool:
        return self._conn is not None

    @property
    def in_transaction(self) -> bool:
        return self._in_transaction

    async def connect(self) -> None:
        if self._conn is not None:
            return
        if self._engine is None:
            self._engine = build_engine(self.config)
        self._conn = await self._open_connection()
        logger.info("✅ %s conectado: %s", self.dialect.value, self.config.describe())

    async def _open_connection(self) -> AsyncConnection:
        return await self._engine.connect()

    async def disconnect(self) -> None:
        if self._conn is not None:
            if self._in_transaction:
                logger.warning("⚠️ Desconectando com transação aberta; revertendo")
                await self._conn.rollback()
                self._in_transaction = False
            await self._conn.close()
            self._conn = None
        if self._owns_engine and self._engine is not None:
            await self._engine.dispose()
            self._engine = None

    async def __aenter__(self) -> "DialectAdapter":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.disconnect()

    def _require_connection(self) -> AsyncConnection:
        if self._conn is None:
            raise AdapterNotConnectedError("Banco de dados não conectado. Chame connect() primeiro.")
        return self._conn

    async def test_connection(self) -> bool:
        try:
            await self.query("SELECT 1")
            return True
        except (AdapterError, SQLAlchemyError):
            return False

    async def _run(self, sql: str, params: Optional[Mapping[str, Any]]):
        conn = self._require_connection()
        try:
            return await conn.execute(text(sql), dict(params or {}))
        except SQLAlchemyError:
            logger.debug("Falha ao executar SQL: %s", sql)
            if not self._in_transaction:
                await conn.rollback()
            raise

    async def _autocommit(self) -> None:
        if not self._in_transaction:
            await self._conn.commit()

    async def query(self, sql: str, params: Optional[Mapping[str, Any]] = None) -> List[Dict[str, Any]]:
        result = await self._run(sql, params)
        rows = [dict(row._mapping) for row in result] if result.returns_rows else []
        await self._autocommit()
        return rows

    async def execute(self, sql: str, params: Optional[Mapping[str, Any]] = None) -> ExecuteResult:
        result = await self._run(sql, params)
        affected = result.rowcount if result.rowcount and result.rowcount > 0 else 0
        insert_id = result.lastrowid or None
        await self._autocommit()
        return ExecuteResult(affected_rows=affected, insert_id=insert_id)

    async def begin_transaction(self) -> None:
        conn = self._require_connection()
        if self._in_transaction:
            raise TransactionStateError("Já existe uma transação ativa neste adapter")
        if conn.in_transaction():
            await conn.commit()
        await self._begin(conn)
        self._in_transaction = True

    async def _begin(self, conn: AsyncConnection) -> None:
        await conn.begin()

    async def commit(self) -> None:
        conn = self._require_connection()
        if not self._in_transaction:
            raise TransactionStateError("Nenhuma transação ativa")
        try:
            await conn.commit()
        finally:
            self._in_transaction = False

    async def rollback(self) -> None:
        conn = self._require_connection()
        if not self._in_transaction:
            raise TransactionStateError("Nenhuma transação ativa")
        try:
            await conn.rollback()
        finally:
            self._in_transaction = False

    async def acquire_migration_lock(self, timeout: int) -> bool:
        return True

    async def release_migration_lock(self) -> None:
        return None


class SQLiteAdapter(DialectAdapter):
    """
    SQLite em arquivo único. DDL é transacional (BEGIN emitido pelo engine).

    Transações explícitas começam com BEGIN IMMEDIATE: a trava de escrita
    do arquivo é obtida no início, esperando até o busy_timeout, e não no
    primeiro INSERT/CREATE depois de uma leitura. Assim dois processos
    migrando o mesmo arquivo se revezam em vez de falhar com
    "database is locked".
    """

    dialect = DialectKind.SQLITE
    supports_transactional_ddl = True

    async def connect(self) -> None:
        path = self.config.sqlite_path
        if path is not None:
            path.parent.mkdir(parents=True, exist_ok=True)
        await super().connect()

    async def _begin(self, conn: AsyncConnection) -> None:
        info = conn.sync_connection.info
        info[SQLITE_BEGIN_KEY] = "BEGIN IMMEDIATE"
        try:
            await conn.begin()
        finally:
            info.pop(SQLITE_BEGIN_KEY, None)


def _mysql_errno(exc: OperationalError) -> Optional[int]:
    args = getattr(exc.orig, "args", ())
    if args and isinstance(args[0], int):
        return args[0]
    return None


class MySQLAdapter(DialectAdapter):
    """
    MySQL em rede. DDL confirma implicitamente, então rollback só desfaz
    o DML emitido depois do último DDL da transação.
    """

    dialect = DialectKind.MYSQL
    supports_transactional_ddl = False

    async def _open_connection(self) -> AsyncConnection:
        try:
            return await self._engine.connect()
        except OperationalError as exc:
            if _mysql_errno(exc) != ER_BAD_DB_ERROR:
                raise
        logger.info("📦 Banco '%s' não existe. Criando...", self.config.database)
        await self._create_database()
        return await self._engine.connect()

    async def _create_database(self) -> None:
        name = self.config.database or ""
        if not name or "`" in name:
            raise AdapterError(f"Nome de banco inválido: {name!r}")
        url = self.config.url
        # Mesmo servidor e credenciais, sem banco selecionado
        server_url = URL.create(
            url.drivername,
            username=url.username,
            password=url.password,
            host=url.host,
            port=url.port,
            query=url.query,
        )
        server_engine = build_engine(replace(self.config, url=server_url))
        try:
            async with server_engine.begin() as conn:
                await conn.execute(
                    text(
                        f"CREATE DATABASE IF NOT EXISTS `{name}` "
                        "CHARACTER SET utf8mb4 COLLATE utf8mb4_unicode_ci"
                    )
                )
        finally:
            await server_engine.dispose()
        logger.info("✅ Banco '%s' criado", name)

    @property
    def lock_name(self) -> str:
        return f"{self.config.database}.migrations"[:64]

    async def acquire_migration_lock(self, timeout: int) -> bool:
        rows = await self.query(
            "SELECT GET_LOCK(:name, :timeout) AS acquired",
            {"name": self.lock_name, "timeout": timeout},
        )
        return bool(rows) and rows[0]["acquired"] == 1

    async def release_migration_lock(self) -> None:
        await self.query("SELECT RELEASE_LOCK(:name) AS released", {"name": self.lock_name})


_ADAPTERS = {
    DialectKind.SQLITE: SQLiteAdapter,
    DialectKind.MYSQL: MySQLAdapter,
}


def create_adapter(config: AdapterConfig, engine: Optional[AsyncEngine] = None) -> DialectAdapter:
    """Instancia o adapter do dialeto configurado."""
    return _ADAPTERS[config.dialect](config, engine=engine)
