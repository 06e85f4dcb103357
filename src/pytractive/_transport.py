"""HTTP transport with bearer-token attachment and status mapping."""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Mapping
from typing import Any, Protocol

import aiohttp

from pytractive._constants import USER_AGENT
from pytractive._redact import redact_for_log
from pytractive.config import TractiveConfig
from pytractive.exceptions import TractiveSessionExpiredError, TractiveTransportError

_logger = logging.getLogger(__name__)


class Transport(Protocol):
    """Structural transport interface used by endpoint modules.

    Having a protocol here makes it easy to pass test doubles/mocks while
    keeping the production implementation (`HttpTransport`) concrete.
    """

    async def request_json(
        self,
        method: str,
        path: str,
        *,
        token: str | None = None,
        params: Mapping[str, Any] | None = None,
        json_body: Any = None,
    ) -> Any:
        ...


class HttpTransport:
    """aiohttp transport for the Tractive REST API and push channel."""

    def __init__(self, config: TractiveConfig, http_session: aiohttp.ClientSession) -> None:
        self._config = config
        self._http = http_session

    def _headers(self, token: str | None) -> dict[str, str]:
        headers: dict[str, str] = {
            "accept": "application/json",
            "user-agent": USER_AGENT,
            "x-tractive-client": self._config.client_id,
        }
        if token:
            headers["authorization"] = f"Bearer {token}"
        return headers

    def _url(self, path: str) -> str:
        if path.startswith("http://") or path.startswith("https://"):
            return path
        return f"{self._config.api_url}{path}"

    async def request_json(
        self,
        method: str,
        path: str,
        *,
        token: str | None = None,
        params: Mapping[str, Any] | None = None,
        json_body: Any = None,
    ) -> Any:
        """Send a request and return the decoded JSON body.

        Raises :class:`TractiveSessionExpiredError` on HTTP 401 and
        :class:`TractiveTransportError` on any other failure.
        """
        method = method.upper()
        url = self._url(path)
        timeout = aiohttp.ClientTimeout(total=self._config.request_timeout)

        _logger.debug("%s %s", method, path)
        if self._config.api_trace_enabled:
            _logger.debug("Request %s %s params=%s body=%s", method, path, redact_for_log(params), redact_for_log(json_body))

        try:
            async with self._http.request(
                method,
                url,
                headers=self._headers(token),
                params=dict(params) if params else None,
                json=json_body,
                timeout=timeout,
            ) as resp:
                text = await resp.text()
                if resp.status == 401:
                    raise TractiveSessionExpiredError(f"HTTP 401 from {path}")
                if resp.status < 200 or resp.status >= 300:
                    raise TractiveTransportError(
                        f"HTTP {resp.status} from {path}: {text[:200]}",
                        status_code=resp.status,
                        endpoint=path,
                    )
        except (TractiveTransportError, TractiveSessionExpiredError):
            raise
        except asyncio.TimeoutError as exc:
            raise TractiveTransportError(f"Request to {path} timed out", endpoint=path) from exc
        except aiohttp.ClientError as exc:
            raise TractiveTransportError(f"Request to {path} failed: {exc}", endpoint=path) from exc

        if not text.strip():
            return {}

        try:
            body = json.loads(text)
        except json.JSONDecodeError as exc:
            raise TractiveTransportError(
                f"Invalid JSON from {path}: {text[:200]}",
                status_code=resp.status,
                endpoint=path,
            ) from exc

        if self._config.api_trace_enabled:
            _logger.debug("Response %s %s: %s", method, path, redact_for_log(body))
        return body

    async def open_stream(self, url: str, *, token: str) -> aiohttp.ClientResponse:
        """Open the long-lived streaming POST and return the live response.

        The caller owns the response and must ``close()`` it.
        """
        _logger.debug("POST %s (stream)", url)
        try:
            resp = await self._http.post(
                url,
                headers=self._headers(token),
                timeout=aiohttp.ClientTimeout(total=None, sock_connect=self._config.request_timeout),
            )
        except asyncio.TimeoutError as exc:
            raise TractiveTransportError("Channel connection timed out", endpoint=url) from exc
        except aiohttp.ClientError as exc:
            raise TractiveTransportError(f"Channel connection failed: {exc}", endpoint=url) from exc

        if resp.status == 401:
            resp.close()
            raise TractiveSessionExpiredError("HTTP 401 from channel")
        if resp.status != 200:
            resp.close()
            raise TractiveTransportError(
                f"HTTP {resp.status} from channel",
                status_code=resp.status,
                endpoint=url,
            )
        return resp
