"""HTTP transport for ``http`` steps, built on httpx."""

import logging
from typing import Any, Optional

import httpx
from pydantic import BaseModel, Field

from agentflow.config import config
from agentflow.exceptions import TransientError
from agentflow.secrets.masking import sanitize_params

logger = logging.getLogger(__name__)

# Only these methods carry a request body.
BODY_METHODS: frozenset[str] = frozenset({"POST", "PUT", "PATCH"})


class HTTPResponse(BaseModel):
    """Status, headers, and parsed body (JSON value or text) of a response."""
    status_code: int
    headers: dict[str, str] = Field(default_factory=dict)
    body: Any = None
    url: str = ""


def _is_json(content_type: str) -> bool:
    media = content_type.split(";", 1)[0].strip().lower()
    return media == "application/json" or media.endswith("+json")


class HTTPTransport:
    """Issues one request per call and normalizes failures to :class:`TransientError`.

    Args:
        timeout_seconds: Client timeout. Defaults to ``config.http_timeout_seconds``.
        client: Optional shared ``httpx.AsyncClient``. When omitted a client
            is opened and closed per request.
    """

    def __init__(self, timeout_seconds: Optional[float] = None, client: Optional[httpx.AsyncClient] = None):
        self.timeout_seconds = config.http_timeout_seconds if timeout_seconds is None else timeout_seconds
        self._client = client

    async def request(
        self,
        method: str,
        url: str,
        headers: Optional[dict[str, Any]] = None,
        body: Any = None,
    ) -> HTTPResponse:
        """Send the request and parse the response body.

        Bodies are sent only for POST/PUT/PATCH: strings as-is, anything else
        as JSON. JSON content types are decoded, everything else is returned
        as text.

        Raises:
            TransientError: connection/timeout failure, status >= 400, or a
                JSON response that does not decode.
        """
        method = method.upper()
        request_kwargs: dict[str, Any] = {
            "headers": {k: str(v) for k, v in (headers or {}).items()},
        }
        if body is not None and method in BODY_METHODS:
            if isinstance(body, str):
                request_kwargs["content"] = body.encode()
            else:
                request_kwargs["json"] = body

        logger.debug(
            "[HTTP] %s %s headers=%s", method, url, sanitize_params(request_kwargs["headers"]),
        )

        try:
            if self._client is not None:
                response = await self._client.request(method, url, **request_kwargs)
            else:
                async with httpx.AsyncClient(timeout=self.timeout_seconds) as client:
                    response = await client.request(method, url, **request_kwargs)
        except httpx.HTTPError as exc:
            raise TransientError(
                f"HTTP request failed: {type(exc).__name__}: {exc}",
                details={"method": method, "url": url},
            ) from exc

        if response.status_code >= 400:
            raise TransientError(
                f"HTTP request failed: {response.status_code} {response.reason_phrase}",
                details={"method": method, "url": url, "status_code": response.status_code},
            )

        content_type = response.headers.get("content-type", "")
        if _is_json(content_type):
            try:
                parsed: Any = response.json()
            except ValueError as exc:
                raise TransientError(
                    f"Invalid JSON in response from {url}: {exc}",
                    details={"method": method, "url": url, "status_code": response.status_code},
                ) from exc
        else:
            parsed = response.text

        return HTTPResponse(
            status_code=response.status_code,
            headers=dict(response.headers),
            body=parsed,
            url=str(response.url),
        )
