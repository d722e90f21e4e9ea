"""
FastAPI Lifespan Context Manager for Proper Resource Initialization

Startup builds the per-process service graph and attaches it to app.state:
- Condition store (postgres or inmemory, from DB_BACKEND)
- Scrape gateway (Wikipedia + eMedExpert)
- ApiMedic client
- Enrichment orchestrator (store + scrape gateway)

Routes resolve these through FastAPI dependencies that read app.state, so
tests can swap any of them with app.dependency_overrides.

Shutdown closes network clients and the connection pool.

**Usage in main.py:**
```python
from app_lifespan import lifespan

app = FastAPI(lifespan=lifespan)
```
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from core.config.app_config import AppConfig, get_app_config
from core.database.storage_interface import ConditionStoreFactory, StorageException
from core.services.enrichment_orchestrator import EnrichmentOrchestrator
from tools.apimedic.api_client import ApiMedicClient
from tools.scraper.scrape_gateway import WebScrapeGateway

logger = logging.getLogger(__name__)


async def startup_event(app: FastAPI, config: Optional[AppConfig] = None):
    """
    Initialize all services during application startup.

    Runs once per worker. A store that cannot be reached is logged and
    left unset; condition routes then answer 503 while symptom routes keep
    working.
    """
    config = config or get_app_config()
    proxy_url = config.proxy.url

    logger.info("🚀 Starting up application services...")

    app.state.store = None
    app.state.orchestrator = None

    # 1. External collaborators
    app.state.scrape_gateway = WebScrapeGateway(config.scraper, proxy_url=proxy_url)
    app.state.diagnosis_client = ApiMedicClient(config.apimedic, proxy_url=proxy_url)
    if proxy_url:
        logger.info(f"🌐 Outbound requests routed through proxy {config.proxy.host}:{config.proxy.port}")

    # 2. Condition store
    store = ConditionStoreFactory.from_config(config.database)
    try:
        await store.initialize()
        app.state.store = store
        logger.info(f"✅ Condition store ready ({config.database.backend})")
    except StorageException as e:
        logger.error(f"❌ Condition store unavailable, condition routes disabled: {e}")
        return

    # 3. Orchestrator
    app.state.orchestrator = EnrichmentOrchestrator(store, app.state.scrape_gateway)
    logger.info("✅ Enrichment orchestrator initialized")


async def shutdown_event(app: FastAPI):
    """Close network clients and the store."""
    logger.info("🛑 Shutting down application services...")

    for name in ("scrape_gateway", "diagnosis_client", "store"):
        resource = getattr(app.state, name, None)
        if resource is None:
            continue
        try:
            await resource.close()
            logger.info(f"✅ Closed {name}")
        except Exception as e:
            logger.warning(f"⚠️  Error closing {name}: {e}")


@asynccontextmanager
async def lifespan(app: FastAPI):
    await startup_event(app)
    yield
    await shutdown_event(app)
