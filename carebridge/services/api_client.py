"""
HTTP client for the managed backend.

Every domain client goes through ``ApiClient.request``, which adds credentials,
unwraps the ``{"success": ..., "data": ...}`` envelope and turns transport and
HTTP failures into ``ApiError``. No call is ever retried.
"""
import json
import logging
import time
from typing import Any, Callable, Dict, List, Optional, TypeVar

import httpx
from pydantic import ValidationError

from carebridge.core.config import settings
from carebridge.core.exceptions import ApiError, ConfigurationError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ApiClient:
    """Thin async wrapper around the backend REST API."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        access_token: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url if base_url is not None else settings.api_base_url) or ""
        self.api_key = api_key if api_key is not None else settings.api_key
        self.access_token = access_token
        self.timeout = timeout if timeout is not None else settings.request_timeout_seconds
        self._transport = transport

    @property
    def configured(self) -> bool:
        return bool(self.base_url and self.api_key)

    def set_access_token(self, access_token: Optional[str]) -> None:
        self.access_token = access_token

    def _prepare_headers(self) -> Dict[str, str]:
        headers = {
            "apikey": self.api_key or "",
            "Accept": "application/json",
        }
        if self.access_token:
            headers["Authorization"] = f"Bearer {self.access_token}"
        return headers

    async def request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        json_body: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """
        Perform a backend call and return the unwrapped ``data`` payload.

        Raises:
            ConfigurationError: backend URL or key missing (raised before any I/O)
            ApiError: transport failure or non-2xx response
        """
        if not self.configured:
            raise ConfigurationError(
                "Backend is not configured. Please set API_BASE_URL and API_KEY."
            )

        start_time = time.time()
        try:
            async with httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                transport=self._transport,
            ) as client:
                response = await client.request(
                    method.upper(),
                    path,
                    params=params,
                    json=json_body,
                    headers=self._prepare_headers(),
                )
        except httpx.TimeoutException:
            raise ApiError(
                f"Request timed out after {self.timeout} seconds", status_code=408
            )
        except httpx.RequestError as e:
            logger.error(f"Request to {method.upper()} {path} failed: {e}")
            raise ApiError("Unable to reach the server. Please check your connection.", status_code=503)

        elapsed_ms = int((time.time() - start_time) * 1000)
        logger.debug(f"{method.upper()} {path} -> {response.status_code} in {elapsed_ms}ms")

        return self._process_response(response)

    def _process_response(self, response: httpx.Response) -> Any:
        if response.status_code == 204 or not response.content:
            if response.is_success:
                return None
            raise ApiError(f"Request failed with status {response.status_code}", response.status_code)

        try:
            body = response.json()
        except json.JSONDecodeError:
            if response.is_success:
                raise ApiError("Malformed response from server", status_code=502)
            raise ApiError(response.text or f"Request failed with status {response.status_code}",
                           response.status_code)

        if not response.is_success or (isinstance(body, dict) and body.get("success") is False):
            error = body.get("error") if isinstance(body, dict) else None
            if isinstance(error, dict):
                message = error.get("message") or "Request failed"
                details = error.get("details")
            else:
                message = error or (body.get("message") if isinstance(body, dict) else None) or "Request failed"
                details = None
            status_code = response.status_code if not response.is_success else 400
            raise ApiError(message, status_code=status_code, details=details)

        if isinstance(body, dict) and "data" in body:
            return body["data"]
        return body

    async def get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        return await self.request("GET", path, params=params)

    async def post(self, path: str, json_body: Optional[Dict[str, Any]] = None) -> Any:
        return await self.request("POST", path, json_body=json_body)

    async def put(self, path: str, json_body: Optional[Dict[str, Any]] = None) -> Any:
        return await self.request("PUT", path, json_body=json_body)

    async def delete(self, path: str) -> Any:
        return await self.request("DELETE", path)


def parse_row(row: Any, mapper: Callable[[Dict[str, Any]], T]) -> T:
    """Map one wire row to a domain model, surfacing bad rows as ``ApiError``."""
    try:
        return mapper(row)
    except (KeyError, TypeError, ValueError, ValidationError) as e:
        logger.error(f"Malformed row from server: {e}")
        raise ApiError("Malformed response from server", status_code=502)


def parse_rows(rows: Optional[List[Any]], mapper: Callable[[Dict[str, Any]], T]) -> List[T]:
    return [parse_row(row, mapper) for row in rows or []]


def extract(data: Any, key: str) -> Any:
    """Pull ``key`` out of an unwrapped payload such as ``{"chat": {...}}``."""
    if isinstance(data, dict) and key in data:
        return data[key]
    return data
