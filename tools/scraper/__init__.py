"""
Knowledge-source scrapers for condition and medication info
"""

from tools.scraper.models import CONDITION_INFO_KEYS, ConditionInfo
from tools.scraper.scrape_gateway import ScrapeGateway, WebScrapeGateway

__all__ = [
    "CONDITION_INFO_KEYS",
    "ConditionInfo",
    "ScrapeGateway",
    "WebScrapeGateway",
]
