"""
Shared outbound HTTP helper with retry.

Both upstream services (USGS catalog, Nominatim) are free public APIs that
occasionally rate-limit or time out, so GETs are retried with linear
backoff. Client errors other than 429 are not retried.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Mapping, Optional

import httpx

from quakerisk.core.errors import ExternalServiceError

logger = logging.getLogger(__name__)

RETRYABLE_STATUS = frozenset({429, 500, 502, 503, 504})


async def get_json(
    client: httpx.AsyncClient,
    url: str,
    *,
    service: str,
    params: Optional[Mapping[str, Any]] = None,
    headers: Optional[Dict[str, str]] = None,
    max_retries: int = 3,
    retry_backoff: float = 1.5,
) -> Any:
    """
    GET ``url`` and decode the JSON body.

    Raises
    ------
    ExternalServiceError
        On a non-retryable HTTP status, or once all attempts are exhausted.
    """
    last_error: Optional[str] = None

    for attempt in range(1, max_retries + 1):
        try:
            response = await client.get(url, params=params, headers=headers)
            if response.status_code in RETRYABLE_STATUS:
                last_error = f"HTTP {response.status_code}"
            else:
                response.raise_for_status()
                return response.json()
        except httpx.HTTPStatusError as exc:
            raise ExternalServiceError(
                service,
                f"{exc.response.status_code} {exc.response.reason_phrase}",
                status_code=exc.response.status_code,
            ) from exc
        except (httpx.TransportError, ValueError) as exc:
            last_error = str(exc) or type(exc).__name__

        logger.warning(
            "%s request attempt %d/%d failed: %s",
            service, attempt, max_retries, last_error,
        )
        if attempt < max_retries:
            await asyncio.sleep(retry_backoff * attempt)

    raise ExternalServiceError(
        service,
        "All retry attempts exhausted",
        attempts=max_retries,
        last_error=last_error,
    )
