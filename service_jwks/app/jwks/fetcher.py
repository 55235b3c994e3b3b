"""
Retrieval of the raw JSON Web Key Set from the identity provider.
"""

from typing import Any, Dict, List, Mapping, Optional

import httpx

from shared.errors import TransportError
from shared.logging import get_logger
from shared.metrics import MetricsCollector

from .models import JWKS


class JWKSFetcher:
    """Performs a single GET against the JWKS endpoint per call.

    A fresh ``httpx.AsyncClient`` is opened for every fetch so no connection
    outlives the request. ``request_agent_options`` are passed straight to
    the client constructor (``cert``, ``proxy``, ``transport``, ...).
    No retries happen here; retry policy belongs to the caller.
    """

    def __init__(
        self,
        jwks_uri: str,
        *,
        request_headers: Optional[Mapping[str, str]] = None,
        strict_ssl: bool = True,
        timeout: float = 10.0,
        request_agent_options: Optional[Mapping[str, Any]] = None,
        metrics: Optional[MetricsCollector] = None,
    ) -> None:
        self.jwks_uri = jwks_uri
        self.request_headers = dict(request_headers or {})
        self.strict_ssl = strict_ssl
        self.timeout = timeout
        self.request_agent_options = dict(request_agent_options or {})
        self.metrics = metrics
        self.logger = get_logger("jwks.fetcher")

    def _client_kwargs(self) -> Dict[str, Any]:
        kwargs: Dict[str, Any] = {"verify": self.strict_ssl, "timeout": self.timeout}
        kwargs.update(self.request_agent_options)
        return kwargs

    async def fetch(self) -> JWKS:
        """Fetch the key set and return its ``keys`` array.

        Raises:
            TransportError: network failure, non-2xx status or a non-JSON body.
        """
        self.logger.debug("Fetching keys", jwks_uri=self.jwks_uri)
        headers = {"Accept": "application/json", **self.request_headers}

        try:
            if self.metrics:
                with self.metrics.time_operation("jwks_fetch_duration_seconds"):
                    response = await self._get(headers)
            else:
                response = await self._get(headers)
        except httpx.HTTPError as exc:
            self._record("network_error")
            self.logger.error("JWKS request failed", jwks_uri=self.jwks_uri, error=str(exc))
            raise TransportError(
                f"Unable to reach JWKS endpoint: {exc}",
                details={"jwks_uri": self.jwks_uri},
            ) from exc

        if not 200 <= response.status_code < 300:
            self._record("http_error")
            message = self._error_message(response)
            self.logger.error(
                "JWKS endpoint returned an error",
                jwks_uri=self.jwks_uri,
                status_code=response.status_code,
                error=message,
            )
            raise TransportError(message, status_code=response.status_code, details={"jwks_uri": self.jwks_uri})

        try:
            payload = response.json()
        except ValueError as exc:
            self._record("invalid_body")
            self.logger.error("JWKS response is not valid JSON", jwks_uri=self.jwks_uri)
            raise TransportError(
                "JWKS response is not valid JSON",
                status_code=response.status_code,
                details={"jwks_uri": self.jwks_uri},
            ) from exc

        keys = payload.get("keys") if isinstance(payload, dict) else None
        if not isinstance(keys, list):
            keys = []

        self._record("success")
        self.logger.info("Fetched JWKS", jwks_uri=self.jwks_uri, keys_count=len(keys))
        return keys

    async def _get(self, headers: Dict[str, str]) -> httpx.Response:
        async with httpx.AsyncClient(**self._client_kwargs()) as client:
            return await client.get(self.jwks_uri, headers=headers)

    def _record(self, status: str) -> None:
        if self.metrics:
            self.metrics.increment_counter("jwks_fetch_total", status=status)

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        """Pick the most descriptive failure text the provider gave us."""
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict):
            message = body.get("message")
            if isinstance(message, str) and message:
                return message

        text = response.text.strip() if response.content else ""
        if text:
            return text
        if response.reason_phrase:
            return response.reason_phrase
        return f"Http Error {response.status_code}"
