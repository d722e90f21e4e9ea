"""
Wikipedia condition article scraper.

Reads the infobox of a condition's article and pulls labelled rows
(Treatment, Prevention, Specialty, ...) out of it.
"""

import logging
import re
from typing import Dict, List, Optional
from urllib.parse import quote

import httpx
from bs4 import BeautifulSoup

from core.error_handling import ScrapeError

logger = logging.getLogger(__name__)

_CITATION_RE = re.compile(r"\[(?:\d+|[a-z]|citation needed|note \d+)\]", re.IGNORECASE)
_WHITESPACE_RE = re.compile(r"\s+")
_SPACE_BEFORE_PUNCT_RE = re.compile(r"\s+([,;.])")


def clean_text(text: str) -> str:
    """Strip citation markers and collapse whitespace."""
    text = _CITATION_RE.sub("", text)
    text = _WHITESPACE_RE.sub(" ", text)
    text = _SPACE_BEFORE_PUNCT_RE.sub(r"\1", text)
    return text.strip(" ,;")


def article_url(base_url: str, condition: str) -> str:
    title = condition.strip().replace(" ", "_")
    return f"{base_url.rstrip('/')}/{quote(title)}"


def parse_infobox(html: str) -> Dict[str, str]:
    """
    Parse the first infobox table of an article.

    Returns:
        Mapping of lower-cased row label to cleaned row text.
        Empty when the article has no infobox.
    """
    soup = BeautifulSoup(html, "html.parser")
    infobox = soup.find("table", class_="infobox")
    if infobox is None:
        return {}

    rows: Dict[str, str] = {}
    for tr in infobox.find_all("tr"):
        header = tr.find("th")
        value = tr.find("td")
        if header is None or value is None:
            continue
        for sup in value.find_all("sup"):
            sup.decompose()
        for br in value.find_all("br"):
            br.replace_with(", ")
        label = clean_text(header.get_text(" ")).lower()
        text = clean_text(value.get_text())
        if label and text:
            rows.setdefault(label, text)
    return rows


def extract_fields(keys: List[str], infobox: Dict[str, str]) -> List[Optional[str]]:
    """Pick the requested labels from a parsed infobox; missing labels map to None."""
    return [infobox.get(key.lower()) for key in keys]


class WikipediaScraper:
    """Fetches condition articles and returns their parsed infobox."""

    def __init__(self, client: httpx.AsyncClient, base_url: str):
        self.client = client
        self.base_url = base_url

    async def scrape_infobox(self, condition: str) -> Dict[str, str]:
        url = article_url(self.base_url, condition)
        logger.info(f"Searching for the condition '{condition}' on wikipedia")
        try:
            response = await self.client.get(url)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise ScrapeError(
                f"Wikipedia returned {e.response.status_code} for '{condition}'",
                details={"url": url, "status_code": e.response.status_code},
            ) from e
        except httpx.RequestError as e:
            raise ScrapeError(
                f"Wikipedia request failed for '{condition}': {e}",
                details={"url": url},
            ) from e

        infobox = parse_infobox(response.text)
        if not infobox:
            logger.warning(f"No infobox found for '{condition}'")
        return infobox
