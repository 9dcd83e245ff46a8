"""
Testes do catálogo de migrations.
"""
import pytest

from database.database import DialectKind
from database.migrations.base import CatalogError, DownPolicy, Migration
from database.migrations.registry import (
    LATEST_MIGRATION_ID,
    get_all_migrations,
    get_migration_by_id,
    validate_catalog,
)


def _migration(migration_id, name="dummy"):
    return type(f"M{migration_id}", (Migration,), {"id": migration_id, "name": name})


def test_ids_unicos_e_crescentes(catalog):
    ids = [migration.id for migration in catalog]

    assert ids == sorted(ids, key=int)
    assert len(set(ids)) == len(ids)
    assert LATEST_MIGRATION_ID == ids[-1] == "026"


def test_nomes_unicos(catalog):
    names = [migration.name for migration in catalog]
    assert len(set(names)) == len(names)


def test_get_migration_by_id():
    assert get_migration_by_id("002").name == "add_role_to_users"
    assert get_migration_by_id("999") is None


def test_get_all_migrations_retorna_copia():
    migrations = get_all_migrations()
    migrations.clear()
    assert len(get_all_migrations()) == 26


def test_toda_migration_declara_politica_para_os_dois_dialetos(catalog):
    for migration_class in catalog:
        migration = migration_class()
        for dialect in DialectKind:
            assert isinstance(migration.rollback_policy(dialect), DownPolicy)


def test_politicas_de_rollback():
    assert get_migration_by_id("003")().rollback_policy(DialectKind.MYSQL) is DownPolicy.UNSUPPORTED
    assert get_migration_by_id("002")().rollback_policy(DialectKind.SQLITE) is DownPolicy.BEST_EFFORT
    assert get_migration_by_id("002")().rollback_policy(DialectKind.MYSQL) is DownPolicy.REVERSIBLE
    assert get_migration_by_id("012")().rollback_policy(DialectKind.SQLITE) is DownPolicy.REVERSIBLE


@pytest.mark.parametrize(
    "ids",
    [
        ["001", "001"],
        ["002", "001"],
        ["001", "003", "002"],
    ],
)
def test_validate_catalog_rejeita_ordem_invalida(ids):
    with pytest.raises(CatalogError):
        validate_catalog([_migration(migration_id, f"m{index}") for index, migration_id in enumerate(ids)])


def test_validate_catalog_exige_id_e_nome():
    with pytest.raises(CatalogError):
        validate_catalog([_migration("001", name="")])


def test_validate_catalog_compara_ids_numericamente():
    validate_catalog([_migration("9"), _migration("10")])
