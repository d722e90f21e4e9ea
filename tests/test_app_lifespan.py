import pytest
from fastapi import FastAPI

from app_lifespan import shutdown_event, startup_event
from core.config.app_config import AppConfig
from core.database.inmemory_condition_storage import InMemoryConditionStore
from core.database.storage_interface import StorageUnavailableError
from core.services.enrichment_orchestrator import EnrichmentOrchestrator


class UnreachableStore(InMemoryConditionStore):
    async def initialize(self):
        raise StorageUnavailableError("Failed to connect to PostgreSQL: refused")


@pytest.mark.asyncio
async def test_startup_builds_service_graph():
    app = FastAPI()
    config = AppConfig(database={"backend": "inmemory"})

    await startup_event(app, config)
    try:
        assert isinstance(app.state.store, InMemoryConditionStore)
        assert isinstance(app.state.orchestrator, EnrichmentOrchestrator)
        assert app.state.orchestrator.store is app.state.store
        assert app.state.orchestrator.scrape_gateway is app.state.scrape_gateway
        assert app.state.diagnosis_client is not None
    finally:
        await shutdown_event(app)

    assert app.state.scrape_gateway.client.is_closed
    assert app.state.diagnosis_client.client.is_closed


@pytest.mark.asyncio
async def test_unreachable_store_leaves_condition_routes_disabled(monkeypatch):
    monkeypatch.setattr(
        "app_lifespan.ConditionStoreFactory.from_config",
        lambda database_config: UnreachableStore(),
    )
    app = FastAPI()

    await startup_event(app, AppConfig(database={"backend": "postgres"}))
    try:
        assert app.state.store is None
        assert app.state.orchestrator is None
        assert app.state.diagnosis_client is not None
    finally:
        await shutdown_event(app)
