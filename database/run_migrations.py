"""
Script para executar migrations do banco de dados.

Uso:
    python -m database.run_migrations             # aplica as pendentes
    python -m database.run_migrations --dry-run   # só lista as pendentes
    python -m database.run_migrations --rollback 002
    python -m database.run_migrations --status
"""
import argparse
import asyncio
import logging
import sys
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError

from database.adapters import AdapterError, DialectAdapter, create_adapter
from database.database import AdapterConfig, dispose_engine, get_adapter_config, get_engine
from database.migrations.base import MigrationError
from database.migrations.runner import MigrationRunner, RollbackResult
from database.migrations.status import MigrationStatus, StatusReporter
from logging_config import setup_logging

logger = logging.getLogger(__name__)


def _adapter_for(config: Optional[AdapterConfig]) -> DialectAdapter:
    # Sem config explícita, usa o engine compartilhado do processo
    if config is None:
        return create_adapter(get_adapter_config(), engine=get_engine())
    return create_adapter(config)


async def run_migrations(config: Optional[AdapterConfig] = None, dry_run: bool = False) -> List[str]:
    """
    Executa todas as migrations pendentes.
    Chamado uma vez na inicialização, antes de aceitar requisições.
    Qualquer falha é propagada.
    """
    adapter = _adapter_for(config)
    runner = MigrationRunner(adapter.config, adapter=adapter)
    return await runner.run(dry_run=dry_run)


async def rollback_migration(migration_id: str, config: Optional[AdapterConfig] = None) -> RollbackResult:
    """Reverte exatamente uma migration aplicada."""
    adapter = _adapter_for(config)
    runner = MigrationRunner(adapter.config, adapter=adapter)
    return await runner.rollback(migration_id)


async def get_migration_status(config: Optional[AdapterConfig] = None) -> List[MigrationStatus]:
    """Status de todas as migrations do catálogo, em ordem."""
    async with _adapter_for(config) as adapter:
        return await StatusReporter(adapter).get_status()


def _print_status(statuses: List[MigrationStatus]) -> None:
    for status in statuses:
        mark = "✅" if status.applied else "⏳"
        when = status.applied_at.isoformat(sep=" ") if status.applied_at else "pendente"
        print(f"{mark} {status.id}  {status.name:<32} {when}")


async def main(argv: Optional[List[str]] = None) -> int:
    """Função principal"""
    parser = argparse.ArgumentParser(description="Executar migrations do banco de dados")
    group = parser.add_mutually_exclusive_group()
    group.add_argument(
        "--dry-run",
        action="store_true",
        help="Apenas mostrar o que seria feito, sem aplicar"
    )
    group.add_argument(
        "--rollback",
        type=str,
        metavar="ID",
        help="Reverter migration específica (ex: --rollback 002)"
    )
    group.add_argument(
        "--status",
        action="store_true",
        help="Mostrar migrations aplicadas e pendentes"
    )
    args = parser.parse_args(argv)

    setup_logging()
    try:
        if args.status:
            _print_status(await get_migration_status())
        elif args.rollback:
            result = await rollback_migration(args.rollback)
            for step in result.steps:
                print(f"  {step.outcome.value:<24} {step.description}")
        else:
            await run_migrations(dry_run=args.dry_run)
    except (MigrationError, AdapterError, SQLAlchemyError) as exc:
        logger.error("❌ %s", exc)
        return 1
    finally:
        await dispose_engine()
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
