"""HTTP session helpers."""

import asyncio
from typing import Optional

import aiohttp

from ..exceptions import NotFoundError, RegistryError
from .types import RegistryConfig

USER_AGENT = "registry-image-tools/0.1"


async def create_session(
    config: Optional[RegistryConfig] = None,
    connector: Optional[aiohttp.TCPConnector] = None,
) -> aiohttp.ClientSession:
    """Create an aiohttp session configured for registry access.

    Args:
        config: Registry configuration (timeout), defaults used when omitted
        connector: aiohttp connector for connection pooling

    Returns:
        New client session; the caller owns and must close it
    """
    config = config or RegistryConfig()
    return aiohttp.ClientSession(
        connector=connector,
        # Bounds connects and stalled reads, not the length of a transfer
        timeout=aiohttp.ClientTimeout(
            total=None, connect=config.timeout, sock_read=config.timeout
        ),
        headers={"User-Agent": USER_AGENT},
    )


def check_response_status(
    status: int,
    what: str,
    error_class: type[RegistryError] = RegistryError,
    expected: tuple[int, ...] = (200,),
) -> None:
    """Raise the matching registry error for an unexpected HTTP status.

    Args:
        status: HTTP status code received
        what: Description of the requested resource for the error message
        error_class: Error raised for statuses other than 404
        expected: Statuses treated as success

    Raises:
        NotFoundError: On 404
        RegistryError: ``error_class`` for any other unexpected status
    """
    if status in expected:
        return
    if status == 404:
        raise NotFoundError(f"{what} not found")
    raise error_class(f"Unexpected HTTP status {status} for {what}")


def describe_network_error(error: BaseException) -> str:
    """Human readable reason for a failed request, also for timeouts."""
    if isinstance(error, asyncio.TimeoutError):
        return "timed out"
    return str(error) or type(error).__name__
