"""HTTP transport used by the UFile request driver.

Dependencies:
    - requests
"""

from __future__ import annotations

from typing import Any, Mapping, Protocol

import requests

from ufile_tier.infra.storage.client import HttpResponse, TransportError


class HttpTransport(Protocol):
    """Sends one request and blocks until the response is complete."""

    def send(
        self,
        method: str,
        url: str,
        headers: Mapping[str, str],
        body: Any = None,
    ) -> HttpResponse:
        """Perform the exchange.

        ``body`` is None, bytes, or a file-like object exposing ``read`` and
        ``__len__``.

        Raises:
            TransportError: If no response could be obtained.
        """
        ...


class RequestsTransport:
    """HttpTransport backed by a ``requests.Session``."""

    def __init__(
        self,
        *,
        timeout: float | None = None,
        session: requests.Session | None = None,
    ) -> None:
        self._timeout = timeout
        self._session = session or requests.Session()

    def send(
        self,
        method: str,
        url: str,
        headers: Mapping[str, str],
        body: Any = None,
    ) -> HttpResponse:
        try:
            response = self._session.request(
                method,
                url,
                headers=dict(headers),
                data=body,
                timeout=self._timeout,
                allow_redirects=False,
            )
        except requests.RequestException as exc:
            raise TransportError(f"{method} {url} failed: {exc}") from exc

        return HttpResponse(
            status=response.status_code,
            headers=dict(response.headers),
            body=response.content,
        )

    def close(self) -> None:
        self._session.close()
