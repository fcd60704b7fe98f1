"""
Hosted backend client

Thin HTTP client for the PostgREST endpoint of the hosted backend: table
reads/writes and stored-procedure calls. Every failure (transport, timeout,
HTTP error status, unreadable body) is raised as BackendError so callers deal
with a single error type.
"""

import logging
from typing import Any, Dict, List, Optional

import requests

from storefront.core.config import settings

logger = logging.getLogger(__name__)


class BackendError(Exception):
    """A remote call failed or returned something unusable."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def _error_message(response: requests.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"
    if isinstance(payload, dict):
        return payload.get("message") or payload.get("error") or str(payload)
    return str(payload)


class BackendClient:
    def __init__(
        self,
        rest_url: str,
        api_key: str,
        access_token: Optional[str] = None,
        timeout: float = 15.0,
        http_session: Optional[requests.Session] = None,
    ):
        """
        Args:
            rest_url: Base URL of the REST endpoint (".../rest/v1")
            api_key: Public API key sent with every request
            access_token: User JWT; the API key is used as bearer when absent
            timeout: Per-request timeout in seconds
            http_session: Shared requests session (connection pooling)
        """
        self.rest_url = rest_url.rstrip("/")
        self.api_key = api_key
        self.access_token = access_token
        self.timeout = timeout
        self._http = http_session or requests.Session()

    def with_token(self, access_token: str) -> "BackendClient":
        """Same endpoint, acting as the given authenticated user"""
        return BackendClient(
            self.rest_url,
            self.api_key,
            access_token=access_token,
            timeout=self.timeout,
            http_session=self._http,
        )

    def close(self) -> None:
        self._http.close()

    def _headers(self, prefer: Optional[str] = None) -> Dict[str, str]:
        headers = {
            "apikey": self.api_key,
            "Authorization": f"Bearer {self.access_token or self.api_key}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        if prefer:
            headers["Prefer"] = prefer
        return headers

    def _request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, str]] = None,
        body: Any = None,
        prefer: Optional[str] = None,
    ) -> Any:
        url = f"{self.rest_url}{path}"
        try:
            response = self._http.request(
                method,
                url,
                params=params,
                json=body,
                headers=self._headers(prefer),
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.error(f"Request {method} {url} failed: {e}")
            raise BackendError(f"Backend unreachable: {e}") from e

        if response.status_code >= 400:
            message = _error_message(response)
            logger.error(f"Request {method} {url} failed: {response.status_code} - {message}")
            raise BackendError(message, response.status_code)

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise BackendError("Backend returned an unreadable body", response.status_code) from e

    # ==================== Stored procedures ====================

    def rpc(self, function: str, params: Optional[Dict[str, Any]] = None) -> Any:
        return self._request("POST", f"/rpc/{function}", body=params or {})

    # ==================== Tables ====================

    def select(
        self,
        table: str,
        columns: str = "*",
        filters: Optional[Dict[str, str]] = None,
        order: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[dict]:
        """Read rows. Filters use PostgREST operators, e.g. {"id": "eq.42"}"""
        params = {"select": columns}
        params.update(filters or {})
        if order:
            params["order"] = order
        if limit is not None:
            params["limit"] = str(limit)
        return self._request("GET", f"/{table}", params=params) or []

    def insert(self, table: str, values: Any) -> List[dict]:
        return self._request("POST", f"/{table}", body=values, prefer="return=representation") or []

    def update(self, table: str, values: Dict[str, Any], filters: Dict[str, str]) -> List[dict]:
        """Update matching rows and return them; an empty list means nothing matched"""
        if not filters:
            raise ValueError("Refusing to update a whole table")
        return self._request(
            "PATCH", f"/{table}", params=filters, body=values, prefer="return=representation"
        ) or []

    def delete(self, table: str, filters: Dict[str, str]) -> List[dict]:
        if not filters:
            raise ValueError("Refusing to delete a whole table")
        return self._request("DELETE", f"/{table}", params=filters, prefer="return=representation") or []


def eq(value: Any) -> str:
    return f"eq.{value}"


# Singleton instance
backend = BackendClient(
    settings.REST_URL,
    settings.SUPABASE_ANON_KEY,
    timeout=settings.REMOTE_TIMEOUT_SECONDS,
)


def get_backend() -> BackendClient:
    return backend
