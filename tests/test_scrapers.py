import httpx
import pytest

from core.config.app_config import ScraperConfig
from core.error_handling import ScrapeError
from tools.scraper.emedexpert import extract_medication_section
from tools.scraper.models import CONDITION_INFO_KEYS
from tools.scraper.scrape_gateway import WebScrapeGateway
from tools.scraper.wikipedia import article_url, clean_text, extract_fields, parse_infobox

PNEUMONIA_ARTICLE = """
<html><body>
<table class="infobox">
  <tr><th colspan="2">Pneumonia</th></tr>
  <tr><th>Specialty</th><td><a href="/wiki/Pulmonology">Pulmonology</a>, Infectious disease<sup>[1]</sup></td></tr>
  <tr><th>Symptoms</th><td>Cough, fever</td></tr>
  <tr><th>Prevention</th><td>Vaccines<br/>handwashing<br/>not smoking<sup class="reference">[2]</sup></td></tr>
  <tr><th>Frequency</th><td>450 million (4%) per year</td></tr>
</table>
<table class="infobox"><tr><th>Treatment</th><td>Not from the first infobox</td></tr></table>
</body></html>
"""

MEDICATION_PAGE = """
<html><body>
<h3>Gout</h3>
<ul><li>Allopurinol</li><li>Colchicine</li></ul>
<h3>Kidney Stones (Nephrolithiasis)</h3>
<ul>
  <li>Allopurinol</li>
  <li>Cellulose Sodium Phosphate</li>
  <li>Citrates</li>
</ul>
<p>Sponsored</p>
<h3>Kidney Transplant</h3>
<ul><li>Tacrolimus</li></ul>
</body></html>
"""


def _gateway(handler):
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    config = ScraperConfig(
        wikipedia_url="https://wiki.test/wiki/",
        emedexpert_url="https://meds.test/lists/conditions.shtml",
    )
    return WebScrapeGateway(config, client=client)


def test_clean_text_drops_citations_and_spacing():
    assert clean_text("  Vaccines [1] ,  handwashing[citation needed] ") == "Vaccines, handwashing"


def test_article_url_encodes_condition():
    assert article_url("https://wiki.test/wiki/", "kidney stones") == "https://wiki.test/wiki/kidney_stones"


def test_parse_infobox_reads_first_infobox():
    infobox = parse_infobox(PNEUMONIA_ARTICLE)

    assert infobox["specialty"] == "Pulmonology, Infectious disease"
    assert infobox["prevention"] == "Vaccines, handwashing, not smoking"
    assert "treatment" not in infobox


def test_parse_infobox_without_infobox():
    assert parse_infobox("<html><body><p>No table here</p></body></html>") == {}


def test_extract_fields_keeps_order_and_missing_keys():
    infobox = parse_infobox(PNEUMONIA_ARTICLE)

    assert extract_fields(CONDITION_INFO_KEYS, infobox) == [
        None,
        "Vaccines, handwashing, not smoking",
        "Pulmonology, Infectious disease",
    ]


def test_extract_medication_section_stops_at_next_heading():
    text = extract_medication_section("kidney stones", MEDICATION_PAGE)
    assert text == "Allopurinol Cellulose Sodium Phosphate Citrates"


def test_extract_medication_section_exact_heading():
    assert extract_medication_section("gout", MEDICATION_PAGE) == "Allopurinol Colchicine"


def test_extract_medication_section_unknown_condition():
    assert extract_medication_section("pneumonia", MEDICATION_PAGE) == ""


@pytest.mark.asyncio
async def test_gateway_scrapes_condition_info():
    requested = []

    def handler(request):
        requested.append(str(request.url))
        return httpx.Response(200, text=PNEUMONIA_ARTICLE)

    async with _gateway(handler) as gateway:
        info = await gateway.scrape_condition_info("pneumonia")

    assert requested == ["https://wiki.test/wiki/pneumonia"]
    assert info.treatment is None
    assert info.prevention == "Vaccines, handwashing, not smoking"
    assert info.specialty == "Pulmonology, Infectious disease"


@pytest.mark.asyncio
async def test_gateway_missing_article_raises_scrape_error():
    async with _gateway(lambda request: httpx.Response(404, text="Not found")) as gateway:
        with pytest.raises(ScrapeError) as exc_info:
            await gateway.scrape_condition_info("chronic boredom")

    assert exc_info.value.details["status_code"] == 404
    assert exc_info.value.http_status == 502


@pytest.mark.asyncio
async def test_gateway_connection_error_raises_scrape_error():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    async with _gateway(handler) as gateway:
        with pytest.raises(ScrapeError):
            await gateway.scrape_medication()


@pytest.mark.asyncio
async def test_gateway_medication_listing_and_extraction():
    async with _gateway(lambda request: httpx.Response(200, text=MEDICATION_PAGE)) as gateway:
        page = await gateway.scrape_medication()
        medication = gateway.extract_medication("gout", page)

    assert medication == "Allopurinol Colchicine"
