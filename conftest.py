"""
Pytest configuration and shared fixtures.
"""

import os

# Keep test runs off disk and off the network database
os.environ.setdefault("LOG_FILE", "")
os.environ.setdefault("DB_BACKEND", "inmemory")

import asyncio
from typing import Dict, List, Optional

import pytest

from core.database.inmemory_condition_storage import InMemoryConditionStore
from core.services.enrichment_orchestrator import EnrichmentOrchestrator
from tools.scraper.models import ConditionInfo
from tools.scraper.scrape_gateway import ScrapeGateway


class FakeScrapeGateway(ScrapeGateway):
    """Scripted knowledge sources that count their calls."""

    def __init__(
        self,
        infos: Optional[Dict[str, ConditionInfo]] = None,
        medications: Optional[List[Dict[str, str]]] = None,
        delay: float = 0.0,
    ):
        self.infos = infos or {}
        # One medication listing per scrape_medication() call; the last one repeats
        self.medications = medications or [{}]
        self.delay = delay
        self.condition_calls: List[str] = []
        self.medication_calls = 0

    async def scrape_condition_info(self, key: str) -> ConditionInfo:
        self.condition_calls.append(key)
        await asyncio.sleep(self.delay)
        return self.infos.get(key, ConditionInfo())

    async def scrape_medication(self) -> Dict[str, str]:
        index = min(self.medication_calls, len(self.medications) - 1)
        self.medication_calls += 1
        await asyncio.sleep(self.delay)
        return self.medications[index]

    def extract_medication(self, key: str, blob: Dict[str, str]) -> str:
        return blob.get(key, "")


class CountingStore:
    """Wraps a store and counts the calls made on it."""

    def __init__(self, inner):
        self.inner = inner
        self.calls = 0

    def __getattr__(self, name):
        attr = getattr(self.inner, name)
        if not callable(attr):
            return attr

        async def counted(*args, **kwargs):
            self.calls += 1
            return await attr(*args, **kwargs)

        return counted


@pytest.fixture(scope="session")
def event_loop_policy():
    """Configure event loop policy for Windows."""
    import sys

    if sys.platform == "win32":
        asyncio.set_event_loop_policy(asyncio.WindowsProactorEventLoopPolicy())

    return asyncio.get_event_loop_policy()


@pytest.fixture
def condition_infos():
    return {
        "pneumonia": ConditionInfo(
            treatment=None,
            prevention="Vaccines, handwashing, not smoking",
            specialty="Pulmonology, Infectious disease",
        ),
        "kidney stones": ConditionInfo(
            treatment="Pain medication, extracorporeal shock wave lithotripsy, ureteroscopy",
            prevention="Drinking fluids such that more than two liters of urine are produced per day",
            specialty="Urology, nephrology",
        ),
    }


@pytest.fixture
def medication_listing():
    return {
        "kidney stones": "Allopurinol [1]\\nCellulose Sodium Phosphate\nCitrates 2 Diuretics, Thiazide",
    }


@pytest.fixture
def store():
    return InMemoryConditionStore()


@pytest.fixture
def scrape_gateway(condition_infos, medication_listing):
    return FakeScrapeGateway(infos=condition_infos, medications=[medication_listing])


@pytest.fixture
def orchestrator(store, scrape_gateway):
    return EnrichmentOrchestrator(store, scrape_gateway)
