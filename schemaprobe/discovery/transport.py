"""HTTP transport for probe requests.

Sends JSON probes to the target endpoint with httpx and returns the raw
status, body and headers. One transport (and its connection pool) may be
shared by concurrent discovery runs.
"""

from __future__ import annotations

import json
import logging
import time
from typing import Any

import httpx

from .errors import ProbeTransportError
from .models import JsonValue, ProbeResponse
from .pacing import ProbePacer

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 10.0


class ProbeTransport:
    """Send probe requests to a target API.

    Provides:
    - JSON serialization with ``Content-Type: application/json``
    - Caller headers applied on top of the defaults
    - Fixed client-side timeout and per-host pacing
    - Transport failures raised as ProbeTransportError
    """

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        pacer: ProbePacer | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        verify: bool = True,
    ) -> None:
        """Initialize probe transport.

        Args:
            timeout: Request timeout in seconds
            pacer: Per-host probe pacing (defaults to ProbePacer())
            transport: Custom httpx transport (e.g. MockTransport in tests)
            verify: Verify TLS certificates
        """
        self.timeout = timeout
        self.pacer = pacer or ProbePacer()
        self._client = httpx.AsyncClient(
            timeout=timeout,
            transport=transport,
            verify=verify,
            follow_redirects=True,
        )

    @classmethod
    def from_config(
        cls,
        config: dict[str, Any],
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> ProbeTransport:
        """Build a transport from the ``probe`` config section."""
        return cls(
            timeout=config.get("timeout_seconds", DEFAULT_TIMEOUT_SECONDS),
            pacer=ProbePacer.from_config(config.get("rate_limit")),
            transport=transport,
            verify=config.get("verify_tls", True),
        )

    async def send(
        self,
        method: str,
        url: str,
        headers: dict[str, str] | None = None,
        body: JsonValue = None,
    ) -> ProbeResponse:
        """Send one probe.

        Args:
            method: HTTP method
            url: Target URL
            headers: Caller headers, override the defaults
            body: JSON payload, omitted when None

        Returns:
            ProbeResponse with status, raw body and headers

        Raises:
            ProbeTransportError: Invalid header or URL, serialization,
                connection or timeout failure
        """
        try:
            request_headers = httpx.Headers({"Content-Type": "application/json"})
            request_headers.update(headers or {})
        except UnicodeEncodeError as e:
            raise ProbeTransportError(f"invalid request header: {e}") from e

        content = None
        if body is not None:
            try:
                content = json.dumps(body).encode("utf-8")
            except (TypeError, ValueError) as e:
                raise ProbeTransportError(f"failed to marshal request body: {e}") from e

        waited = await self.pacer.wait(url)
        start = time.monotonic()
        try:
            response = await self._client.request(
                method,
                url,
                headers=request_headers,
                content=content,
            )
        except httpx.TimeoutException as e:
            raise ProbeTransportError(f"request timed out after {self.timeout} seconds") from e
        except httpx.InvalidURL as e:
            raise ProbeTransportError(f"invalid request URL: {e}") from e
        except httpx.RequestError as e:
            raise ProbeTransportError(f"failed to execute request: {e}") from e
        duration_ms = (time.monotonic() - start) * 1000

        response_headers: dict[str, list[str]] = {}
        for name, value in response.headers.multi_items():
            response_headers.setdefault(name, []).append(value)

        logger.debug("%s %s -> %d (%.0fms)", method, url, response.status_code, duration_ms)
        return ProbeResponse(
            status_code=response.status_code,
            body=response.content,
            headers=response_headers,
            duration_ms=duration_ms,
            wait_ms=waited * 1000,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> ProbeTransport:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()
