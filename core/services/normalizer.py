from typing import Optional

from core.error_handling import InvalidInputError


def normalize_condition(raw: Optional[str]) -> str:
    """
    Canonicalize a user-supplied condition name into its store key.

    Lower-cases and trims, so "  Kidney Stones " and "kidney stones" share
    one record. Idempotent.

    Raises:
        InvalidInputError: If raw is missing, not text, or blank
    """
    if not isinstance(raw, str) or not raw.strip():
        raise InvalidInputError(
            "Query parameter 'condition' is required",
            details={"field": "condition", "received": raw},
        )
    return raw.strip().lower()
