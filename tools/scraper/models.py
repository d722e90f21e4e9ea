from dataclasses import dataclass
from typing import Optional

# Infobox labels read from condition articles, in ConditionInfo field order
CONDITION_INFO_KEYS = ["Treatment", "Prevention", "Specialty"]


@dataclass(frozen=True)
class ConditionInfo:
    """General condition info scraped for phase A. Any field may be missing."""
    treatment: Optional[str] = None
    prevention: Optional[str] = None
    specialty: Optional[str] = None
