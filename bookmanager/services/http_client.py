import logging
from typing import Optional

import httpx

from bookmanager.config import settings

logger = logging.getLogger(__name__)


class HTTPClient:
    """Synchronous HTTP client with pooled connections and a bounded timeout.

    Requests are never retried; a slow or unreachable upstream surfaces as an
    ``httpx.RequestError`` once the timeout expires.
    """

    def __init__(self, timeout: Optional[float] = None,
                 transport: Optional[httpx.BaseTransport] = None) -> None:
        total = timeout if timeout is not None else settings.openlibrary_timeout

        limits = httpx.Limits(
            max_keepalive_connections=10,
            max_connections=20,
            keepalive_expiry=30.0
        )

        # Connect and write stay short even when the read budget is larger
        self.timeout = httpx.Timeout(
            timeout=total,
            connect=min(5.0, total),
            write=min(5.0, total)
        )

        self._client = httpx.Client(
            limits=limits,
            timeout=self.timeout,
            follow_redirects=True,
            transport=transport
        )

    def get(self, url: str, **kwargs) -> httpx.Response:
        """GET request without retries"""
        logger.debug(f"GET {url}")
        return self._client.get(url, **kwargs)

    def close(self) -> None:
        self._client.close()
