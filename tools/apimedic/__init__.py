"""
ApiMedic (priaid) symptom checker integration
"""

from tools.apimedic.api_client import ApiMedicClient, compute_auth_hash

__all__ = [
    "ApiMedicClient",
    "compute_auth_hash",
]
