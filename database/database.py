"""
Configuração de conexão do banco de dados.
O dialeto (SQLite embarcado ou MySQL em rede) é escolhido uma única vez,
a partir das settings, e nunca deduzido do comportamento do engine.
"""
import ssl
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional

from sqlalchemy import event
from sqlalchemy.engine import URL
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from config import Settings, settings


class DialectKind(str, Enum):
    """Dialetos SQL suportados."""
    SQLITE = "sqlite"
    MYSQL = "mysql"


@dataclass(frozen=True)
class AdapterConfig:
    dialect: DialectKind
    url: URL
    pool_size: int = 10
    use_ssl: bool = False
    lock_timeout: int = 30

    @property
    def database(self) -> Optional[str]:
        return self.url.database

    @property
    def sqlite_path(self) -> Optional[Path]:
        if self.dialect is not DialectKind.SQLITE or not self.url.database:
            return None
        if self.url.database == ":memory:":
            return None
        return Path(self.url.database)

    def describe(self) -> str:
        return self.url.render_as_string(hide_password=True)

    @classmethod
    def for_sqlite(cls, path, lock_timeout: int = 30) -> "AdapterConfig":
        return cls(
            dialect=DialectKind.SQLITE,
            url=URL.create("sqlite+aiosqlite", database=str(path)),
            lock_timeout=lock_timeout,
        )

    @classmethod
    def for_mysql(
        cls,
        host: str,
        user: str,
        password: str,
        database: str,
        port: int = 3306,
        pool_size: int = 10,
        use_ssl: bool = False,
        lock_timeout: int = 30,
    ) -> "AdapterConfig":
        url = URL.create(
            drivername="mysql+aiomysql",
            username=user,
            password=password,
            host=host,
            port=port,
            database=database,
            query={"charset": "utf8mb4"},
        )
        return cls(
            dialect=DialectKind.MYSQL,
            url=url,
            pool_size=pool_size,
            use_ssl=use_ssl,
            lock_timeout=lock_timeout,
        )

    @classmethod
    def from_settings(cls, source: Settings) -> "AdapterConfig":
        dialect = DialectKind(source.DB_DIALECT)
        if dialect is DialectKind.SQLITE:
            return cls.for_sqlite(source.SQLITE_PATH, lock_timeout=source.MIGRATIONS_LOCK_TIMEOUT)
        return cls.for_mysql(
            host=source.MYSQL_HOST,
            user=source.MYSQL_USER,
            password=source.MYSQL_PASSWORD.get_secret_value(),
            database=source.MYSQL_DATABASE,
            port=source.MYSQL_PORT,
            pool_size=source.MYSQL_POOL_SIZE,
            use_ssl=source.MYSQL_SSL,
            lock_timeout=source.MIGRATIONS_LOCK_TIMEOUT,
        )


# Chave em Connection.info: instrução usada no próximo BEGIN do SQLite
SQLITE_BEGIN_KEY = "sqlite_begin"


def _install_sqlite_hooks(engine: AsyncEngine, busy_timeout_ms: int) -> None:
    @event.listens_for(engine.sync_engine, "connect")
    def _set_sqlite_pragma(dbapi_connection, connection_record):
        # O driver não emite BEGIN antes de DDL; o BEGIN é emitido em _do_begin
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON;")
        cursor.execute("PRAGMA journal_mode=WAL;")
        cursor.execute("PRAGMA synchronous=NORMAL;")
        cursor.execute(f"PRAGMA busy_timeout={int(busy_timeout_ms)};")
        cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def _do_begin(conn):
        conn.exec_driver_sql(conn.info.get(SQLITE_BEGIN_KEY, "BEGIN"))


def build_engine(config: AdapterConfig) -> AsyncEngine:
    """Cria o engine assíncrono adequado ao dialeto configurado."""
    if config.dialect is DialectKind.SQLITE:
        engine = create_async_engine(config.url, connect_args={"timeout": 30})
        # Quem espera pela trava de escrita do arquivo espera o mesmo que pelo lock de migrations
        _install_sqlite_hooks(engine, busy_timeout_ms=config.lock_timeout * 1000)
        return engine

    connect_args = {"connect_timeout": 10}
    if config.use_ssl:
        connect_args["ssl"] = ssl.create_default_context()
    return create_async_engine(
        config.url,
        connect_args=connect_args,
        pool_size=config.pool_size,
        pool_pre_ping=True,
    )


_config: Optional[AdapterConfig] = None
_engine: Optional[AsyncEngine] = None


def get_adapter_config() -> AdapterConfig:
    global _config
    if _config is None:
        _config = AdapterConfig.from_settings(settings)
    return _config


def get_engine() -> AsyncEngine:
    """Engine compartilhado pelo processo (migrations e aplicação)."""
    global _engine
    if _engine is None:
        _engine = build_engine(get_adapter_config())
    return _engine


async def dispose_engine() -> None:
    global _engine
    if _engine is not None:
        await _engine.dispose()
        _engine = None
