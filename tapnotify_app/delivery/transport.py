"""Blocking HTTP transport, run on a worker thread by async callers."""

import asyncio
import socket
from dataclasses import dataclass
from typing import Optional
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

from ..config.defaults import HttpParams
from ..errors import TransportError
from ..logging.config import get_delivery_logger


@dataclass(frozen=True)
class HttpResponse:
    """Status code and a truncated body of an HTTP response."""
    status_code: int
    body: str = ""

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


class HttpTransport:
    """urllib based transport; non-2xx answers are responses, not errors."""

    def __init__(self, params: Optional[HttpParams] = None):
        self.params = params or HttpParams()
        self.logger = get_delivery_logger("tapnotify.transport")

    def request(
        self,
        method: str,
        url: str,
        headers: Optional[dict[str, str]] = None,
        body: Optional[bytes] = None
    ) -> HttpResponse:
        """
        Issue one HTTP request.

        Raises:
            TransportError: on timeout, DNS, TLS or connection failure
        """
        request_headers = {"User-Agent": self.params.user_agent}
        if headers:
            request_headers.update(headers)
        if body is not None:
            request_headers["Content-Length"] = str(len(body))

        req = Request(url, data=body, headers=request_headers, method=method)

        try:
            with urlopen(req, timeout=self.params.timeout_seconds) as response:
                return HttpResponse(
                    status_code=response.getcode(),
                    body=response.read().decode("utf-8", errors="replace")[:200]
                )

        except HTTPError as e:
            self.logger.warning("HTTP error response", url=url, status_code=e.code)
            return HttpResponse(status_code=e.code, body=str(e.reason)[:200])

        except (URLError, socket.timeout, OSError, ValueError) as e:
            self.logger.warning("HTTP transport failure", url=url, error=str(e))
            raise TransportError(f"Network error: {e}", url=url) from e

    def post(
        self,
        url: str,
        headers: Optional[dict[str, str]] = None,
        body: Optional[bytes] = None
    ) -> HttpResponse:
        return self.request("POST", url, headers, body)

    async def arequest(
        self,
        method: str,
        url: str,
        headers: Optional[dict[str, str]] = None,
        body: Optional[bytes] = None
    ) -> HttpResponse:
        """request() on the default thread pool; cancelling the awaiting task
        abandons the result but cannot stop a call already in progress."""
        return await asyncio.to_thread(self.request, method, url, headers, body)

    async def apost(
        self,
        url: str,
        headers: Optional[dict[str, str]] = None,
        body: Optional[bytes] = None
    ) -> HttpResponse:
        return await self.arequest("POST", url, headers, body)
