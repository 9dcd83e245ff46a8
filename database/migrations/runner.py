"""
Executor de migrations.

Aplica as migrations pendentes em ordem de catálogo, cada uma na sua
própria transação, e registra a aplicação na tabela `migrations`.
Uma falha reverte a transação da migration, interrompe o catálogo e
propaga o erro original. O rollback de uma migration é uma ação
separada, explícita, e valida tudo antes de tocar no banco.
"""
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Sequence, Type

from sqlalchemy.exc import SQLAlchemyError

from database.adapters import DialectAdapter, create_adapter
from database.database import AdapterConfig
from .base import (
    MIGRATIONS_TABLE,
    DownPolicy,
    Migration,
    MigrationIrreversibleError,
    MigrationLockError,
    MigrationNotAppliedError,
    MigrationNotFoundError,
    SchemaOps,
    StepOutcome,
    StepResult,
    ensure_migrations_table,
    get_applied_migrations,
)
from .registry import get_all_migrations, validate_catalog
from .schema_checks import SchemaIntrospector

logger = logging.getLogger(__name__)


class RunnerState(str, Enum):
    NOT_STARTED = "not_started"
    ENSURING_BOOKKEEPING = "ensuring_bookkeeping"
    ITERATING = "iterating"
    APPLYING = "applying"
    RECORDING = "recording"
    DONE = "done"
    FAILED = "failed"


@dataclass
class RollbackResult:
    """O que um rollback realmente reverteu."""

    id: str
    name: str
    policy: DownPolicy
    steps: List[StepResult] = field(default_factory=list)

    @property
    def skipped(self) -> List[StepResult]:
        return [step for step in self.steps if step.outcome is StepOutcome.SKIPPED_UNSUPPORTED]

    @property
    def fully_reverted(self) -> bool:
        return not self.skipped


def _format_summary(counts: Dict[str, int]) -> str:
    if not counts:
        return "nenhum passo"
    return ", ".join(f"{outcome}={total}" for outcome, total in sorted(counts.items()))


class MigrationRunner:
    """
    Máquina de estados de uma execução:
    NOT_STARTED -> ENSURING_BOOKKEEPING -> ITERATING -> (APPLYING -> RECORDING)* -> DONE,
    ou FAILED a partir de APPLYING/RECORDING.
    """

    def __init__(
        self,
        config: AdapterConfig,
        adapter: Optional[DialectAdapter] = None,
        migrations: Optional[Sequence[Type[Migration]]] = None,
    ):
        self.config = config
        self.dialect = config.dialect
        self.adapter = adapter if adapter is not None else create_adapter(config)
        if self.adapter.dialect is not self.dialect:
            raise ValueError(
                f"Adapter {self.adapter.dialect.value} incompatível com o dialeto configurado {self.dialect.value}"
            )

        catalog = list(migrations) if migrations is not None else get_all_migrations()
        validate_catalog(catalog)
        self.migrations: List[Migration] = [migration_class() for migration_class in catalog]
        self.state = RunnerState.NOT_STARTED
        self.current: Optional[Migration] = None

    def _find(self, migration_id: str) -> Migration:
        for migration in self.migrations:
            if migration.id == migration_id:
                return migration
        raise MigrationNotFoundError(f"Migration {migration_id} não encontrada")

    @asynccontextmanager
    async def _locked(self):
        """Conecta (se preciso) e segura o lock de migrations durante o bloco."""
        connected_here = not self.adapter.is_connected
        if connected_here:
            await self.adapter.connect()
        try:
            if not await self.adapter.acquire_migration_lock(self.config.lock_timeout):
                raise MigrationLockError(
                    f"Não foi possível obter o lock de migrations em {self.config.lock_timeout}s; "
                    "outra instância pode estar migrando o banco"
                )
            try:
                yield
            finally:
                try:
                    await self.adapter.release_migration_lock()
                except SQLAlchemyError as exc:
                    # O servidor libera o lock quando a conexão é fechada
                    logger.warning("⚠️ Falha ao liberar lock de migrations: %s", exc)
        finally:
            if connected_here:
                await self.adapter.disconnect()

    async def run(self, dry_run: bool = False) -> List[str]:
        """
        Executa todas as migrations pendentes.

        Args:
            dry_run: Se True, apenas mostra o que seria feito, sem aplicar

        Returns:
            Ids aplicados (ou que seriam aplicados, em dry run), em ordem
        """
        self.state = RunnerState.NOT_STARTED
        async with self._locked():
            self.state = RunnerState.ENSURING_BOOKKEEPING
            await ensure_migrations_table(self.adapter, self.dialect)
            applied = await get_applied_migrations(self.adapter)
            logger.info("Migrations aplicadas: %s", list(applied))

            self.state = RunnerState.ITERATING
            pending = [migration for migration in self.migrations if migration.id not in applied]
            if not pending:
                logger.info("✅ Nenhuma migration pendente")
                self.state = RunnerState.DONE
                return []

            logger.info("📋 %d migration(s) pendente(s)", len(pending))
            if dry_run:
                logger.info("🔍 DRY RUN - Nenhuma alteração será feita")
                for migration in pending:
                    logger.info("  - %s: %s - %s", migration.id, migration.name, migration.description)
                self.state = RunnerState.DONE
                return [migration.id for migration in pending]

            done: List[str] = []
            for migration in pending:
                if await self._apply(migration):
                    done.append(migration.id)
                self.state = RunnerState.ITERATING

        self.current = None
        self.state = RunnerState.DONE
        logger.info("✅ Todas as migrations foram aplicadas com sucesso")
        return done

    async def _apply(self, migration: Migration) -> bool:
        self.current = migration
        ops = SchemaOps(self.adapter, self.dialect)
        logger.info("🔄 Aplicando migration %s: %s...", migration.id, migration.name)

        await self.adapter.begin_transaction()
        try:
            # Conferido de novo já com a transação aberta: outra instância pode
            # ter aplicado a migration enquanto esta esperava pela trava de escrita
            if await migration.is_applied(self.adapter):
                await self.adapter.commit()
                logger.info("ℹ️ Migration %s já aplicada por outro processo", migration.id)
                return False
            self.state = RunnerState.APPLYING
            await migration.upgrade(ops)
            self.state = RunnerState.RECORDING
            await migration.mark_applied(self.adapter)
            await self.adapter.commit()
        except Exception:
            self.state = RunnerState.FAILED
            logger.error("❌ Erro ao aplicar migration %s", migration.id, exc_info=True)
            if self.adapter.in_transaction:
                await self.adapter.rollback()
            if not self.adapter.supports_transactional_ddl:
                logger.warning(
                    "⚠️ %s confirma DDL implicitamente; passos de %s anteriores à falha podem ter ficado no banco",
                    self.dialect.value,
                    migration.id,
                )
            raise

        logger.info(
            "✅ Migration %s aplicada com sucesso (%s)",
            migration.id,
            _format_summary(ops.summary()),
        )
        return True

    async def _is_recorded(self, migration: Migration) -> bool:
        introspector = SchemaIntrospector(self.adapter, self.dialect)
        if not await introspector.table_exists(MIGRATIONS_TABLE):
            return False
        return await migration.is_applied(self.adapter)

    async def rollback(self, migration_id: str) -> RollbackResult:
        """
        Reverte uma migration específica.

        Id desconhecido, migration não aplicada ou política UNSUPPORTED
        são rejeitados antes de qualquer alteração no banco.
        """
        migration = self._find(migration_id)
        policy = migration.rollback_policy(self.dialect)

        async with self._locked():
            if not await self._is_recorded(migration):
                raise MigrationNotAppliedError(f"Migration {migration_id} não foi aplicada")
            if policy is DownPolicy.UNSUPPORTED:
                raise MigrationIrreversibleError(
                    f"Migration {migration_id} não pode ser revertida em {self.dialect.value}"
                )

            ops = SchemaOps(self.adapter, self.dialect)
            logger.info("🔄 Revertendo migration %s: %s...", migration.id, migration.name)
            await self.adapter.begin_transaction()
            try:
                await migration.downgrade(ops)
                await migration.mark_unapplied(self.adapter)
                await self.adapter.commit()
            except Exception:
                logger.error("❌ Erro ao reverter migration %s", migration.id, exc_info=True)
                if self.adapter.in_transaction:
                    await self.adapter.rollback()
                raise

        result = RollbackResult(migration.id, migration.name, policy, list(ops.steps))
        if result.fully_reverted:
            logger.info("✅ Migration %s revertida com sucesso", migration.id)
        else:
            logger.warning(
                "⚠️ Migration %s revertida parcialmente (%s): %d passo(s) não revertidos",
                migration.id,
                policy.value,
                len(result.skipped),
            )
        return result
