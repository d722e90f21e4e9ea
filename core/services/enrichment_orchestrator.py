"""
Enrichment Orchestrator - cache/fetch/merge logic for condition knowledge

Each condition moves through ABSENT -> INFO_ONLY -> INFO_AND_MEDICATION:

- Phase A (ensure_condition_info) creates the record from the general
  condition scrape on a store miss and serves it from the store afterwards.
- Phase B (ensure_medication) adds medication to an existing record on its
  first call and serves it from the store afterwards. It requires phase A
  to have run for the same condition.

Both phases are idempotent: replaying them returns the current record
without any external call. No lock is held across awaits; concurrent phase A
misses are reconciled through the store's unique key, concurrent phase B
misses through its first-write-wins medication update.
"""

import logging
import re

from core.database.storage_interface import ConditionRecord, ConditionStore, DuplicateKeyError, RecordNotFoundError
from core.error_handling import PrerequisiteMissingError
from core.services.normalizer import normalize_condition
from tools.scraper.scrape_gateway import ScrapeGateway

logger = logging.getLogger(__name__)

# Literal "\n" escape sequences, digits, newlines and square brackets
_MEDICATION_NOISE_RE = re.compile(r"\\n|\d|\n|[\[\]]")


def sanitize_medication(text: str) -> str:
    """Remove escape sequences, digits and bracket characters from scraped medication text."""
    return _MEDICATION_NOISE_RE.sub("", text or "")


class EnrichmentOrchestrator:
    """Decides per condition whether to serve from the store or scrape."""

    def __init__(self, store: ConditionStore, scrape_gateway: ScrapeGateway):
        self.store = store
        self.scrape_gateway = scrape_gateway

    async def ensure_condition_info(self, raw_condition: str) -> ConditionRecord:
        """
        Phase A: return the stored record for a condition, creating it from
        the general condition scrape on first request.

        Raises:
            InvalidInputError: If the condition is blank
            ScrapeError / StorageException: On external or storage failure
        """
        key = normalize_condition(raw_condition)

        existing = await self.store.find(key)
        if existing is not None:
            logger.info(f"Condition info cache hit: {key}")
            return existing

        logger.info(f"Condition info cache miss: {key}, scraping")
        info = await self.scrape_gateway.scrape_condition_info(key)
        record = ConditionRecord(
            key=key,
            treatment=info.treatment,
            prevention=info.prevention,
            specialty=info.specialty,
        )

        try:
            created = await self.store.create(record)
        except DuplicateKeyError:
            # A concurrent miss stored the record first
            logger.info(f"Condition '{key}' stored concurrently, using stored record")
            winner = await self.store.find(key)
            if winner is None:
                raise RecordNotFoundError(
                    f"Condition '{key}' vanished after duplicate insert",
                    details={"condition": key},
                )
            return winner

        logger.info(f"Condition info stored: {key}")
        return created

    async def ensure_medication(self, raw_condition: str) -> ConditionRecord:
        """
        Phase B: return the stored record with medication, scraping and
        storing medication on first request.

        Raises:
            InvalidInputError: If the condition is blank
            PrerequisiteMissingError: If phase A never ran for the condition
            ScrapeError / StorageException: On external or storage failure
        """
        key = normalize_condition(raw_condition)

        existing = await self.store.find(key)
        if existing is None:
            logger.info(f"Medication requested before condition info: {key}")
            raise PrerequisiteMissingError(details={"condition": key})

        if existing.medication is not None:
            logger.info(f"Medication cache hit: {key}")
            return existing

        logger.info(f"Medication cache miss: {key}, scraping")
        blob = await self.scrape_gateway.scrape_medication()
        medication = sanitize_medication(self.scrape_gateway.extract_medication(key, blob))

        updated = await self.store.update_medication(key, medication)
        logger.info(f"Medication stored: {key}")
        return updated
