"""
Scrape gateway - the two knowledge-source capabilities behind one interface.

Phase A needs general condition info, phase B needs medication info. The
methods stay separate so either can be substituted independently.
"""

import logging
from abc import ABC, abstractmethod
from typing import Optional

import httpx

from tools.scraper.emedexpert import EMedExpertScraper, extract_medication_section
from tools.scraper.models import CONDITION_INFO_KEYS, ConditionInfo
from tools.scraper.wikipedia import WikipediaScraper, extract_fields

logger = logging.getLogger(__name__)


class ScrapeGateway(ABC):
    """Knowledge-source capabilities used by the enrichment orchestrator."""

    @abstractmethod
    async def scrape_condition_info(self, key: str) -> ConditionInfo:
        """Fetch treatment, prevention and specialty for a normalized condition."""

    @abstractmethod
    async def scrape_medication(self) -> str:
        """Fetch the raw medication listing."""

    @abstractmethod
    def extract_medication(self, key: str, blob: str) -> str:
        """Pull the medication text for one condition out of a raw listing."""

    async def close(self) -> None:
        """Release network resources. Optional."""


class WebScrapeGateway(ScrapeGateway):
    """
    ScrapeGateway backed by Wikipedia (condition info) and eMedExpert
    (medication lists).

    Args:
        scraper_config: ScraperConfig section of AppConfig
        proxy_url: Optional outbound proxy URL
        client: Pre-built httpx client (takes precedence; used by tests)
    """

    def __init__(self, scraper_config, proxy_url: Optional[str] = None, client: Optional[httpx.AsyncClient] = None):
        self.client = client or httpx.AsyncClient(
            timeout=scraper_config.timeout_seconds,
            headers={"User-Agent": scraper_config.user_agent},
            follow_redirects=True,
            proxy=proxy_url,
        )
        self.wikipedia = WikipediaScraper(self.client, scraper_config.wikipedia_url)
        self.emedexpert = EMedExpertScraper(self.client, scraper_config.emedexpert_url)

    async def scrape_condition_info(self, key: str) -> ConditionInfo:
        infobox = await self.wikipedia.scrape_infobox(key)
        treatment, prevention, specialty = extract_fields(CONDITION_INFO_KEYS, infobox)
        return ConditionInfo(treatment=treatment, prevention=prevention, specialty=specialty)

    async def scrape_medication(self) -> str:
        return await self.emedexpert.fetch_page()

    def extract_medication(self, key: str, blob: str) -> str:
        return extract_medication_section(key, blob)

    async def close(self) -> None:
        await self.client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
