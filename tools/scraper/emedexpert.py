"""
eMedExpert medication list scraper.

The source publishes one page listing conditions as headings, each followed
by the list of medications used for it. The page is fetched whole and the
section for a single condition is extracted on demand.
"""

import logging
import re

import httpx
from bs4 import BeautifulSoup

from core.error_handling import ScrapeError

logger = logging.getLogger(__name__)

HEADING_TAGS = ["h1", "h2", "h3", "h4", "dt"]
ITEM_TAGS = ("li", "dd")

_WHITESPACE_RE = re.compile(r"\s+")


def _normalize_label(text: str) -> str:
    return _WHITESPACE_RE.sub(" ", text).strip(" :").lower()


def _heading_matches(label: str, condition: str) -> bool:
    return label == condition or label.startswith(f"{condition} (")


def extract_medication_section(condition: str, page: str) -> str:
    """
    Return the medications listed under the heading for ``condition``.

    Items are joined with single spaces; an empty string means the page has
    no section for the condition.
    """
    condition = _normalize_label(condition)
    soup = BeautifulSoup(page, "html.parser")

    for heading in soup.find_all(HEADING_TAGS):
        if not _heading_matches(_normalize_label(heading.get_text(" ")), condition):
            continue
        items = []
        for element in heading.find_all_next(True):
            if element.name in HEADING_TAGS:
                break
            if element.name in ITEM_TAGS:
                items.append(element.get_text(" ", strip=True))
        return " ".join(item for item in items if item)

    logger.info(f"No medication section for '{condition}'")
    return ""


class EMedExpertScraper:
    """Downloads the condition/medication list page."""

    def __init__(self, client: httpx.AsyncClient, url: str):
        self.client = client
        self.url = url

    async def fetch_page(self) -> str:
        logger.info("Fetching medication list from emedexpert")
        try:
            response = await self.client.get(self.url)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise ScrapeError(
                f"eMedExpert returned {e.response.status_code}",
                details={"url": self.url, "status_code": e.response.status_code},
            ) from e
        except httpx.RequestError as e:
            raise ScrapeError(f"eMedExpert request failed: {e}", details={"url": self.url}) from e
        return response.text
