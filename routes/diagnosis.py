"""
Diagnosis Routes - Symptom checker and condition knowledge endpoints

Endpoints:
    GET  /symptoms             - List all symptoms known to ApiMedic
    POST /diagnosis            - Diagnose a set of symptoms
    GET  /diagnosis/condition  - Treatment, prevention and specialty for a condition
    GET  /diagnosis/medication - Condition info plus medication (call /diagnosis/condition first)
"""

import json
import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from pydantic import BaseModel, Field, field_validator

from core.error_handling import InvalidGenderError, PrerequisiteMissingError
from core.services.enrichment_orchestrator import EnrichmentOrchestrator
from core.services.normalizer import normalize_condition
from core.services.result_projector import project_condition_info, project_medication_info
from tools.apimedic.api_client import ApiMedicClient

logger = logging.getLogger(__name__)

router = APIRouter(tags=["diagnosis"])

VALID_GENDERS = ("male", "female")


class DiagnosisRequest(BaseModel):
    """Request model for a symptom diagnosis."""
    symptoms: List[int] = Field(..., description="Symptom IDs to diagnose")
    # Checked in the handler so that any non-literal value answers 500
    gender: Optional[Any] = Field(None, description="'male' or 'female'")
    year_of_birth: int = Field(..., description="Year of birth of the patient")

    @field_validator("symptoms", mode="before")
    @classmethod
    def parse_symptom_list(cls, v):
        # Clients may send the ID list JSON-encoded, e.g. "[10,104]"
        if isinstance(v, str):
            try:
                return json.loads(v)
            except ValueError as e:
                raise ValueError("symptoms must be a list of symptom IDs") from e
        return v


def get_orchestrator(request: Request) -> EnrichmentOrchestrator:
    """Enrichment orchestrator built during app startup."""
    orchestrator = getattr(request.app.state, "orchestrator", None)
    if orchestrator is None:
        raise HTTPException(status_code=503, detail="Condition service not initialized")
    return orchestrator


def get_diagnosis_client(request: Request) -> ApiMedicClient:
    """ApiMedic client built during app startup."""
    client = getattr(request.app.state, "diagnosis_client", None)
    if client is None:
        raise HTTPException(status_code=503, detail="Diagnosis service not initialized")
    return client


@router.get("/symptoms")
async def list_symptoms(client: ApiMedicClient = Depends(get_diagnosis_client)) -> List[Dict[str, Any]]:
    """List all symptoms from ApiMedic as [{"ID": 10, "Name": "Abdominal pain"}, ...]."""
    token = await client.authenticate()
    return await client.fetch_symptom_list(token)


@router.post("/diagnosis")
async def diagnose(
    body: DiagnosisRequest,
    client: ApiMedicClient = Depends(get_diagnosis_client),
) -> List[Dict[str, Any]]:
    """
    List possible conditions for the given symptoms.

    Each entry holds the "Issue" (ID, Name, Accuracy, Icd, IcdName, ProfName,
    Ranking) and its "Specialisation" list.
    """
    if body.gender not in VALID_GENDERS:
        logger.info(f"Gender not valid: {body.gender!r}")
        raise InvalidGenderError(details={"field": "gender", "received": body.gender})

    token = await client.authenticate()
    return await client.fetch_diagnosis(token, body.symptoms, body.gender, body.year_of_birth)


@router.get("/diagnosis/condition")
async def condition_info(
    condition: Optional[str] = Query(None, description="Name of the condition, e.g. 'Pneumonia'"),
    orchestrator: EnrichmentOrchestrator = Depends(get_orchestrator),
) -> Dict[str, Any]:
    """Treatment, prevention and specialty for a condition, scraped once and then served from the store."""
    key = normalize_condition(condition)
    logger.info(f"Query condition found: {key}")

    record = await orchestrator.ensure_condition_info(key)
    return project_condition_info(record)


@router.get("/diagnosis/medication")
async def medication_info(
    condition: Optional[str] = Query(None, description="Name of the condition, e.g. 'Kidney Stones'"),
    orchestrator: EnrichmentOrchestrator = Depends(get_orchestrator),
) -> Dict[str, Any]:
    """
    Condition info plus medication.

    Requires GET /diagnosis/condition to have been called for the same
    condition; otherwise answers 200 with an {"Error": ...} body.
    """
    key = normalize_condition(condition)
    logger.info(f"Query condition found: {key}")

    try:
        record = await orchestrator.ensure_medication(key)
    except PrerequisiteMissingError as e:
        return {"Error": e.message}
    return project_medication_info(record)
