"""Shared JSON GET helper for the upstream clients."""

import logging
from typing import Any, Optional

import httpx

from ..errors import SourceError

logger = logging.getLogger(__name__)


async def get_json(
    client: httpx.AsyncClient,
    url: str,
    provider: str,
    params: Optional[dict] = None,
    headers: Optional[dict] = None,
) -> Any:
    """GET ``url`` and decode JSON, logging and wrapping any failure in SourceError."""
    try:
        response = await client.get(url, params=params, headers=headers)
        response.raise_for_status()
        return response.json()
    except httpx.TimeoutException as exc:
        logger.warning("%s request to %s timed out: %s", provider, url, exc)
        raise SourceError(provider, "request timed out") from exc
    except httpx.HTTPStatusError as exc:
        status = exc.response.status_code
        logger.warning("%s request to %s returned HTTP %s", provider, url, status)
        raise SourceError(provider, f"HTTP {status}") from exc
    except httpx.HTTPError as exc:
        logger.warning("%s request to %s failed: %s", provider, url, exc)
        raise SourceError(provider, str(exc)) from exc
    except ValueError as exc:
        logger.warning("%s returned invalid JSON from %s", provider, url)
        raise SourceError(provider, "invalid JSON") from exc
