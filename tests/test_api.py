"""
Testes dos endpoints de diagnóstico da API.
"""
import pytest
from httpx import AsyncClient

from database.run_migrations import run_migrations


@pytest.mark.asyncio
async def test_health(client: AsyncClient):
    response = await client.get("/health")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ok"


@pytest.mark.asyncio
async def test_status_de_migrations_em_banco_novo(client: AsyncClient, catalog):
    response = await client.get("/admin/migrations")

    assert response.status_code == 200
    data = response.json()
    assert data["applied"] == 0
    assert data["pending"] == len(catalog)
    assert [item["id"] for item in data["migrations"]] == [migration.id for migration in catalog]


@pytest.mark.asyncio
async def test_status_de_migrations_depois_de_aplicar(client: AsyncClient, sqlite_config, catalog):
    await run_migrations(sqlite_config)

    response = await client.get("/admin/migrations")

    data = response.json()
    assert data["pending"] == 0
    assert data["applied"] == len(catalog)
    first = data["migrations"][0]
    assert first["id"] == "001"
    assert first["name"] == "initial_schema"
    assert first["applied"] is True
    assert first["applied_at"] is not None
