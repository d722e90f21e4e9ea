from typing import Any, Dict

from core.database.storage_interface import ConditionRecord


def project_condition_info(record: ConditionRecord) -> Dict[str, Any]:
    """Response body for GET /diagnosis/condition."""
    return {
        "Condition": record.key,
        "Treatment": record.treatment,
        "Prevention": record.prevention,
        "Specialty": record.specialty,
    }


def project_medication_info(record: ConditionRecord) -> Dict[str, Any]:
    """Response body for GET /diagnosis/medication."""
    body = project_condition_info(record)
    body["Medication"] = record.medication
    return body
