import base64
import hashlib
import hmac
import json
import logging
from typing import Any, Dict, List, Optional

import httpx

from core.error_handling import UpstreamServiceError

logger = logging.getLogger(__name__)


def compute_auth_hash(secret_key: str, uri: str) -> str:
    """Base64 HMAC-MD5 of the login URI, keyed with the account secret."""
    digest = hmac.new(secret_key.encode("utf-8"), uri.encode("utf-8"), hashlib.md5).digest()
    return base64.b64encode(digest).decode("ascii")


class ApiMedicClient:
    """
    Client for the ApiMedic (priaid) symptom checker.

    Stateless: a token is requested for every call sequence, nothing is
    cached. Every failure surfaces as UpstreamServiceError.
    """

    def __init__(self, apimedic_config, proxy_url: Optional[str] = None, client: Optional[httpx.AsyncClient] = None):
        self.username = apimedic_config.username
        self.password = apimedic_config.password
        self.auth_url = apimedic_config.auth_url
        self.health_url = apimedic_config.health_url.rstrip("/")
        self.language = apimedic_config.language
        self.client = client or httpx.AsyncClient(
            timeout=apimedic_config.timeout_seconds,
            proxy=proxy_url,
        )

    async def close(self):
        """Close the async client."""
        await self.client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    def _auth_header(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.username}:{compute_auth_hash(self.password, self.auth_url)}"}

    async def _send(self, method: str, url: str, **kwargs) -> Any:
        """Execute a request and decode its JSON body."""
        try:
            response = await self.client.request(method, url, **kwargs)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as e:
            logger.error(f"ApiMedic returned {e.response.status_code} for {url}")
            raise UpstreamServiceError(
                f"ApiMedic returned {e.response.status_code}",
                details={"url": url, "status_code": e.response.status_code},
            ) from e
        except httpx.RequestError as e:
            logger.error(f"ApiMedic connection error: {str(e)}")
            raise UpstreamServiceError(f"ApiMedic connection error: {e}", details={"url": url}) from e
        except ValueError as e:
            raise UpstreamServiceError("ApiMedic returned a malformed body", details={"url": url}) from e

    async def authenticate(self) -> str:
        """Log in to the auth service and return a bearer token."""
        data = await self._send("POST", self.auth_url, headers=self._auth_header())
        token = data.get("Token") if isinstance(data, dict) else None
        if not token:
            raise UpstreamServiceError("ApiMedic login did not return a token")
        return token

    async def _get_health(self, endpoint: str, token: str, params: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        query = {"token": token, "language": self.language, "format": "json"}
        query.update(params or {})
        data = await self._send("GET", f"{self.health_url}{endpoint}", params=query, headers=self._auth_header())
        if not isinstance(data, list):
            raise UpstreamServiceError(
                f"ApiMedic {endpoint} returned an unexpected payload",
                details={"payload_type": type(data).__name__},
            )
        return data

    async def fetch_symptom_list(self, token: str) -> List[Dict[str, Any]]:
        """List all symptoms as [{"ID": ..., "Name": ...}]."""
        logger.info("Fetching symptoms")
        symptoms = await self._get_health("/symptoms", token)
        logger.info(f"Symptoms fetched ({len(symptoms)})")
        return symptoms

    async def fetch_diagnosis(
        self,
        token: str,
        symptom_ids: List[int],
        gender: str,
        year_of_birth: int,
    ) -> List[Dict[str, Any]]:
        """Diagnose a symptom set as [{"Issue": {...}, "Specialisation": [...]}]."""
        logger.info(
            f"Analyzing for diagnosis with symptoms={symptom_ids}, gender={gender}, "
            f"year_of_birth={year_of_birth}"
        )
        diagnosis = await self._get_health(
            "/diagnosis",
            token,
            {
                "symptoms": json.dumps(symptom_ids),
                "gender": gender,
                "year_of_birth": year_of_birth,
            },
        )
        logger.info("Diagnosis complete")
        return diagnosis
