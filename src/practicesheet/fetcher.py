"""Sheet source fetching over HTTP."""

from __future__ import annotations

import asyncio
import time
from typing import Any

import httpx

from practicesheet.config import Settings
from practicesheet.errors import TransportError
from practicesheet.logging import get_logger

logger = get_logger(__name__)

TRANSIENT_STATUS_CODES = frozenset({429, 500, 502, 503, 504})


class SheetFetcher:
    """Fetch raw sheet payloads, retrying transient failures."""

    def __init__(self, settings: Settings, *, transport: httpx.BaseTransport | None = None) -> None:
        self._max_retries = settings.http_max_retries
        self._backoff_s = settings.http_retry_backoff_s
        self._max_backoff_s = settings.http_retry_max_backoff_s
        self._client = httpx.Client(
            timeout=httpx.Timeout(settings.http_timeout_s),
            headers={"User-Agent": settings.http_user_agent, "Accept": "application/json"},
            follow_redirects=True,
            transport=transport,
        )

    def fetch(self, url: str) -> Any:
        """Fetch a URL and return its decoded JSON body.

        Raises:
            TransportError: On an unusable url, a non-2xx status, a body that is not JSON, or when
                retries for transient failures (429/5xx, connection errors, timeouts) run out.
        """

        last_err: Exception | None = None
        status_code: int | None = None
        started = time.monotonic()

        for attempt in range(self._max_retries + 1):
            try:
                resp = self._client.get(url)
                status_code = resp.status_code
                if status_code in TRANSIENT_STATUS_CODES:
                    raise httpx.HTTPStatusError(
                        f"transient status={status_code}",
                        request=resp.request,
                        response=resp,
                    )
                resp.raise_for_status()
            except (httpx.InvalidURL, httpx.UnsupportedProtocol) as e:
                raise TransportError(f"Cannot fetch {url}: {e}", url=url) from e
            except httpx.HTTPStatusError as e:
                if e.response.status_code not in TRANSIENT_STATUS_CODES:
                    raise TransportError(
                        f"Fetching {url} failed with status {e.response.status_code}",
                        url=url,
                        status_code=e.response.status_code,
                    ) from e
                last_err = e
            except httpx.TransportError as e:
                status_code = None
                last_err = e
            except httpx.HTTPError as e:
                raise TransportError(f"Fetching {url} failed: {e}", url=url, status_code=status_code) from e
            else:
                try:
                    data = resp.json()
                except ValueError as e:
                    raise TransportError(f"Response from {url} is not JSON", url=url, status_code=status_code) from e
                logger.info(
                    "Fetched sheet payload",
                    extra={
                        "url": url,
                        "attempt": attempt,
                        "status_code": status_code,
                        "latency_ms": int((time.monotonic() - started) * 1000),
                    },
                )
                return data

            if attempt < self._max_retries:
                retry_after_s = _retry_after(last_err)
                backoff = min(self._max_backoff_s, self._backoff_s * (2**attempt))
                delay = retry_after_s if retry_after_s is not None else backoff
                logger.warning(
                    "Sheet fetch attempt %d failed (%s); retrying in %.2fs",
                    attempt + 1,
                    last_err,
                    delay,
                )
                if delay > 0:
                    time.sleep(delay)

        raise TransportError(
            f"Fetching {url} failed after {self._max_retries + 1} attempt(s): {last_err}",
            url=url,
            status_code=status_code,
        ) from last_err

    async def fetch_async(self, url: str) -> Any:
        """Async variant of :meth:`fetch`."""

        return await asyncio.to_thread(self.fetch, url)

    def close(self) -> None:
        self._client.close()


def _retry_after(err: Exception | None) -> float | None:
    """Seconds requested by a 429 response's ``Retry-After`` header, if any."""

    if not isinstance(err, httpx.HTTPStatusError) or err.response.status_code != 429:
        return None
    value = err.response.headers.get("retry-after")
    if value is None:
        return None
    try:
        return max(0.0, float(value))
    except ValueError:
        # HTTP-date form is not supported; fall back to the backoff schedule.
        return None
