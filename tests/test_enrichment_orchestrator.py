import asyncio

import pytest

from conftest import CountingStore, FakeScrapeGateway
from core.database.storage_interface import EnrichmentState
from core.error_handling import InvalidInputError, PrerequisiteMissingError, ScrapeError
from core.services.enrichment_orchestrator import EnrichmentOrchestrator, sanitize_medication


class FailingScrapeGateway(FakeScrapeGateway):
    async def scrape_condition_info(self, key):
        self.condition_calls.append(key)
        raise ScrapeError(f"Wikipedia returned 404 for '{key}'")


def test_sanitize_strips_escapes_digits_and_brackets():
    raw = "Allopurinol [1]\\nCellulose Sodium Phosphate\nCitrates 2 Diuretics, Thiazide"
    assert sanitize_medication(raw) == "Allopurinol Cellulose Sodium PhosphateCitrates  Diuretics, Thiazide"
    assert sanitize_medication("") == ""


@pytest.mark.asyncio
async def test_condition_info_scraped_once_then_served_from_store(orchestrator, scrape_gateway, store):
    first = await orchestrator.ensure_condition_info("Pneumonia")
    second = await orchestrator.ensure_condition_info("  PNEUMONIA ")

    assert scrape_gateway.condition_calls == ["pneumonia"]
    assert first == second
    assert first.key == "pneumonia"
    assert first.treatment is None
    assert first.prevention == "Vaccines, handwashing, not smoking"
    assert first.specialty == "Pulmonology, Infectious disease"
    assert first.state is EnrichmentState.INFO_ONLY
    assert len(store) == 1


@pytest.mark.asyncio
async def test_unknown_condition_stores_empty_fields(orchestrator, scrape_gateway):
    record = await orchestrator.ensure_condition_info("Chronic Boredom")

    assert record.key == "chronic boredom"
    assert (record.treatment, record.prevention, record.specialty) == (None, None, None)

    await orchestrator.ensure_condition_info("chronic boredom")
    assert len(scrape_gateway.condition_calls) == 1


@pytest.mark.asyncio
async def test_scrape_failure_stores_nothing(store):
    gateway = FailingScrapeGateway()
    orchestrator = EnrichmentOrchestrator(store, gateway)

    with pytest.raises(ScrapeError):
        await orchestrator.ensure_condition_info("Pneumonia")

    assert await store.find("pneumonia") is None


@pytest.mark.asyncio
async def test_blank_condition_never_touches_store_or_scraper(store, scrape_gateway):
    counting = CountingStore(store)
    orchestrator = EnrichmentOrchestrator(counting, scrape_gateway)

    with pytest.raises(InvalidInputError):
        await orchestrator.ensure_condition_info("   ")
    with pytest.raises(InvalidInputError):
        await orchestrator.ensure_medication("")

    assert counting.calls == 0
    assert scrape_gateway.condition_calls == []
    assert scrape_gateway.medication_calls == 0


@pytest.mark.asyncio
async def test_medication_before_condition_info_is_prerequisite_error(orchestrator, scrape_gateway, store):
    with pytest.raises(PrerequisiteMissingError) as exc_info:
        await orchestrator.ensure_medication("Kidney Stones")

    assert exc_info.value.details == {"condition": "kidney stones"}
    assert scrape_gateway.medication_calls == 0
    assert len(store) == 0


@pytest.mark.asyncio
async def test_medication_scraped_once_and_sanitized(orchestrator, scrape_gateway):
    await orchestrator.ensure_condition_info("Kidney Stones")

    first = await orchestrator.ensure_medication("kidney stones")
    second = await orchestrator.ensure_medication("KIDNEY STONES ")

    assert scrape_gateway.medication_calls == 1
    assert first == second
    assert first.state is EnrichmentState.INFO_AND_MEDICATION
    assert first.medication.startswith("Allopurinol")
    assert not any(ch.isdigit() for ch in first.medication)
    assert "[" not in first.medication and "]" not in first.medication
    assert "\n" not in first.medication and "\\n" not in first.medication
    # Phase A fields survive the medication update
    assert first.specialty == "Urology, nephrology"


@pytest.mark.asyncio
async def test_missing_medication_section_is_stored_as_empty(orchestrator, scrape_gateway):
    await orchestrator.ensure_condition_info("Pneumonia")

    record = await orchestrator.ensure_medication("Pneumonia")
    await orchestrator.ensure_medication("Pneumonia")

    assert record.medication == ""
    assert scrape_gateway.medication_calls == 1


@pytest.mark.asyncio
async def test_condition_info_after_medication_keeps_medication(orchestrator, scrape_gateway):
    await orchestrator.ensure_condition_info("Kidney Stones")
    await orchestrator.ensure_medication("Kidney Stones")

    record = await orchestrator.ensure_condition_info("kidney stones")

    assert record.medication is not None
    assert scrape_gateway.condition_calls == ["kidney stones"]


@pytest.mark.asyncio
async def test_concurrent_condition_misses_produce_one_record(store, condition_infos):
    gateway = FakeScrapeGateway(infos=condition_infos, delay=0.01)
    orchestrator = EnrichmentOrchestrator(store, gateway)

    records = await asyncio.gather(
        *(orchestrator.ensure_condition_info(name) for name in ("Pneumonia", "pneumonia", " PNEUMONIA"))
    )

    assert len(store) == 1
    assert all(record == records[0] for record in records)
    assert records[0] == await store.find("pneumonia")


@pytest.mark.asyncio
async def test_concurrent_medication_misses_keep_first_write(store, condition_infos):
    gateway = FakeScrapeGateway(
        infos=condition_infos,
        medications=[{"kidney stones": "Allopurinol"}, {"kidney stones": "Citrates"}],
        delay=0.01,
    )
    orchestrator = EnrichmentOrchestrator(store, gateway)
    await orchestrator.ensure_condition_info("Kidney Stones")

    records = await asyncio.gather(
        orchestrator.ensure_medication("Kidney Stones"),
        orchestrator.ensure_medication("kidney stones"),
    )

    stored = await store.find("kidney stones")
    assert gateway.medication_calls == 2
    assert stored.medication in ("Allopurinol", "Citrates")
    assert [record.medication for record in records] == [stored.medication, stored.medication]
