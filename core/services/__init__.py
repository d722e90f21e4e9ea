"""
Core services: condition normalization, two-phase enrichment, response shaping
"""

from .enrichment_orchestrator import EnrichmentOrchestrator, sanitize_medication
from .normalizer import normalize_condition
from .result_projector import project_condition_info, project_medication_info

__all__ = [
    "EnrichmentOrchestrator",
    "sanitize_medication",
    "normalize_condition",
    "project_condition_info",
    "project_medication_info",
]
