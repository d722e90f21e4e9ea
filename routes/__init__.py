"""
Routes module for the Condition Advisor service.

Provides REST API endpoints for:
- Symptom listing and diagnosis (diagnosis)
- Condition and medication knowledge (diagnosis)
"""

from .diagnosis import router as diagnosis_router

__all__ = [
    "diagnosis_router",
]
