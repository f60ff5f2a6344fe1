"""HTTP helpers shared by the strategies that talk to remote release sources."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Optional

import httpx
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from .config import SyndicationSettings
from .errors import NotFoundError, ServiceError

_LOGGER = logging.getLogger(__name__)


def build_http_client(
    settings: SyndicationSettings,
    *,
    auth: Optional[httpx.Auth] = None,
    transport: Optional[httpx.BaseTransport] = None,
) -> httpx.Client:
    return httpx.Client(
        timeout=settings.http_timeout_seconds,
        follow_redirects=True,
        auth=auth,
        transport=transport,
    )


def _raise_for_status(response: httpx.Response) -> None:
    try:
        response.raise_for_status()
    except httpx.HTTPStatusError as exc:
        message = f"{response.request.method} {response.request.url} failed with {response.status_code}"
        if response.status_code == 404:
            raise NotFoundError(message, status=404) from exc
        raise ServiceError(message, status=response.status_code) from exc


_retry_transport_errors = retry(
    reraise=True,
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=1, max=8),
    retry=retry_if_exception_type(httpx.TransportError),
)


@_retry_transport_errors
def get_text(client: httpx.Client, url: str) -> str:
    response = client.get(url)
    _raise_for_status(response)
    return response.text


@_retry_transport_errors
def get_json(client: httpx.Client, url: str, params: Optional[Dict[str, Any]] = None) -> Any:
    response = client.get(url, params=params, headers={"Accept": "application/json"})
    _raise_for_status(response)
    return response.json()


@_retry_transport_errors
def download(client: httpx.Client, url: str, destination: Path, *, chunk_size: int = 2_097_152) -> Path:
    """Stream ``url`` into ``destination``; a partial file is removed on failure."""

    destination.parent.mkdir(parents=True, exist_ok=True)
    _LOGGER.info("Downloading %s -> %s", url, destination)
    try:
        with client.stream("GET", url) as response:
            _raise_for_status(response)
            with destination.open("wb") as handle:
                for chunk in response.iter_bytes(chunk_size):
                    handle.write(chunk)
    except BaseException:
        destination.unlink(missing_ok=True)
        raise
    return destination


__all__ = ["build_http_client", "download", "get_json", "get_text"]
