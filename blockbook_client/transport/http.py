"""HTTP client for Blockbook REST endpoints."""

from __future__ import annotations

import json
from collections.abc import Mapping
from typing import Any

import aiohttp

from ..config import USER_AGENT
from ..errors import (
    BlockbookConnectionError,
    BlockbookResponseError,
    BlockbookTimeout,
)


def _query_params(params: Mapping[str, Any] | None) -> dict[str, str]:
    """Drop unset options and render values the way Blockbook expects."""
    if not params:
        return {}
    query: dict[str, str] = {}
    for key, value in params.items():
        if value is None:
            continue
        if isinstance(value, bool):
            query[key] = "true" if value else "false"
        else:
            query[key] = str(value)
    return query


def _error_message(body: str) -> str | None:
    """Extract the `error` text Blockbook puts in failed responses."""
    try:
        data = json.loads(body)
    except ValueError:
        return body.strip() or None
    if isinstance(data, dict):
        error = data.get("error")
        if isinstance(error, dict):
            error = error.get("message")
        if error:
            return str(error)
    return None


class BlockbookHttpClient:
    """HTTP client wrapper for Blockbook node endpoints."""

    def __init__(
        self,
        session: aiohttp.ClientSession,
        *,
        user_agent: str = USER_AGENT,
    ) -> None:
        self._session = session
        self._user_agent = user_agent

    @staticmethod
    def _url(node: str, path: str) -> str:
        if not node.startswith(("http://", "https://")):
            node = f"https://{node}"
        return f"{node}{path}"

    def _headers(self, *, raw_body: bool = False) -> dict[str, str]:
        headers = {"User-Agent": self._user_agent}
        if raw_body:
            headers["Content-Type"] = "text/plain"
        return headers

    async def request(
        self,
        node: str,
        method: str,
        path: str,
        params: Mapping[str, Any] | None = None,
        body: Any = None,
        *,
        timeout: float,
        raw_body: str | None = None,
    ) -> Any:
        """Issue one request against a node and return the parsed JSON body.

        Args:
            node: Normalized node endpoint
            method: "GET" or "POST"
            path: Absolute API path, e.g. "/api/v2/tx/<txid>"
            params: Query options; None values are omitted
            body: JSON body for POST requests
            timeout: Total request timeout in seconds
            raw_body: Raw text body for POST requests, sent instead of JSON

        Raises:
            BlockbookResponseError: On non-2xx status or an unparseable body
            BlockbookTimeout: If the request times out
            BlockbookConnectionError: If the network request fails
        """
        url = self._url(node, path)
        query = _query_params(params)
        client_timeout = aiohttp.ClientTimeout(total=timeout)

        try:
            if method == "GET":
                response = self._session.get(
                    url,
                    params=query,
                    headers=self._headers(),
                    timeout=client_timeout,
                )
            elif method == "POST":
                kwargs: dict[str, Any] = {}
                if raw_body is not None:
                    kwargs["data"] = raw_body
                elif body is not None:
                    kwargs["json"] = body
                response = self._session.post(
                    url,
                    params=query,
                    headers=self._headers(raw_body=raw_body is not None),
                    timeout=client_timeout,
                    **kwargs,
                )
            else:
                raise ValueError(f"Unsupported HTTP method: {method}")

            async with response as resp:
                text = await resp.text()
                if not 200 <= resp.status < 300:
                    detail = _error_message(text) or "no error message"
                    raise BlockbookResponseError(
                        resp.status,
                        f"{method} {path} failed with status {resp.status}: {detail}",
                    )
                try:
                    return json.loads(text)
                except ValueError as err:
                    raise BlockbookResponseError(
                        resp.status, f"{method} {path} returned invalid JSON"
                    ) from err
        except TimeoutError as err:
            raise BlockbookTimeout(f"{method} {path} timed out") from err
        except aiohttp.ClientError as err:
            raise BlockbookConnectionError(f"{method} {path} failed: {err}") from err
