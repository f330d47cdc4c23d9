"""Transport collaborator: posts a SOAP payload and returns the response text.

The orchestrator and client talk only to the ``Transport`` interface. A
per-call ``timeout`` is mandatory; when it expires the call is aborted
and reported as ``TransportTimeoutError``, never as a plain
``TransportError``. No retry or backoff happens at this layer.
"""

from __future__ import annotations

import abc
import logging
from typing import TYPE_CHECKING

import httpx

from rvo_connector.core.exceptions import TransportError, TransportTimeoutError

if TYPE_CHECKING:
    from collections.abc import Mapping

logger = logging.getLogger("rvo_connector.transport")

SOAP_CONTENT_TYPE = "text/xml; charset=utf-8"


class Transport(abc.ABC):
    """Abstract request/response transport."""

    @abc.abstractmethod
    def post(
        self,
        url: str,
        payload: bytes | str,
        *,
        headers: Mapping[str, str],
        timeout: float,
    ) -> str:
        """POST *payload* to *url* and return the response body.

        Args:
            url: Target endpoint.
            payload: Serialised SOAP envelope.
            headers: Request headers (content type, authorization, ...).
            timeout: Budget for the whole call, in seconds.

        Raises:
            TransportTimeoutError: If the call exceeded *timeout*.
            TransportError: On a non-2xx answer or a connection failure.
        """


class HttpxTransport(Transport):
    """``Transport`` backed by ``httpx.Client``.

    Args:
        client: Optional pre-configured client (connection pooling, proxies,
            mutual TLS, or an ``httpx.MockTransport`` in tests). When omitted,
            a short-lived client is opened per call.
    """

    def __init__(self, client: httpx.Client | None = None) -> None:
        self._client = client

    def post(
        self,
        url: str,
        payload: bytes | str,
        *,
        headers: Mapping[str, str],
        timeout: float,
    ) -> str:
        request_headers = {"Content-Type": SOAP_CONTENT_TYPE, **headers}
        logger.debug("POST started | url=%s | timeout_s=%.1f", url, timeout)

        try:
            if self._client is not None:
                response = self._client.post(
                    url, content=payload, headers=request_headers, timeout=timeout
                )
            else:
                with httpx.Client(timeout=timeout) as client:
                    response = client.post(url, content=payload, headers=request_headers)
        except httpx.TimeoutException as exc:
            msg = f"Request to {url} timed out after {timeout:.1f}s"
            raise TransportTimeoutError(msg, timeout_s=timeout, url=url) from exc
        except httpx.HTTPError as exc:
            msg = f"Request to {url} failed: {exc}"
            raise TransportError(msg, url=url) from exc

        if not response.is_success:
            logger.warning(
                "POST failed | url=%s | status=%d | bytes=%d",
                url,
                response.status_code,
                len(response.content),
            )
            msg = f"HTTP {response.status_code} from {url}"
            raise TransportError(
                msg, status_code=response.status_code, body=response.text, url=url
            )

        logger.debug("POST completed | url=%s | status=%d", url, response.status_code)
        return response.text
