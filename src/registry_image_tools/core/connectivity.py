"""Registry API v2 availability checks."""

import asyncio
from collections.abc import Mapping

import aiohttp

from ..exceptions import RegistryConnectionError, RegistryError
from .session import create_session, describe_network_error
from .types import RegistryConfig, RequestResult

API_VERSION_HEADER = "Docker-Distribution-Api-Version"


def check_api_version_header(headers: Mapping[str, str]) -> bool:
    """Check that a response advertises the registry/2.0 API."""
    return headers.get(API_VERSION_HEADER, "").startswith("registry/2.0")


def validate_connectivity_response(result: RequestResult) -> None:
    """Validate the response of a ``GET /v2/`` probe.

    401 counts as reachable: the registry speaks v2 but wants credentials.

    Raises:
        RegistryError: If the registry answered with an unexpected status
    """
    if result.status_code in (200, 401):
        return
    raise RegistryError(
        f"Registry v2 API check failed with HTTP status {result.status_code}"
    )


async def check_connectivity(config: RegistryConfig, registry: str) -> bool:
    """Probe ``/v2/`` on a registry host.

    Args:
        config: Registry configuration
        registry: Registry host (e.g., "localhost:5000")

    Returns:
        True when the registry answers the v2 probe

    Raises:
        RegistryConnectionError: If the registry cannot be reached
        RegistryError: If the registry answered with an unexpected status
    """
    url = f"{config.base_url(registry)}/v2/"
    session = await create_session(config)
    try:
        async with session.get(url) as resp:
            result = RequestResult(status_code=resp.status, headers=dict(resp.headers))
    except (aiohttp.ClientError, asyncio.TimeoutError) as e:
        raise RegistryConnectionError(
            f"Cannot connect to {url}: {describe_network_error(e)}"
        ) from e
    finally:
        await session.close()

    validate_connectivity_response(result)
    return True
