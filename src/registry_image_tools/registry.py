"""Async functional registry image operations.

Each function takes plain reference strings, opens a client for the duration
of the call and closes it again.
"""

from typing import Any, BinaryIO, Optional

from .core.connectivity import check_connectivity
from .core.reference import parse_reference
from .core.registry_client import RegistryClient
from .core.types import RegistryConfig
from .operations.blobs import pull_blob as _pull_blob
from .operations.copy import copy_image as _copy_image
from .operations.export import ExportResult
from .operations.export import export_image as _export_image
from .operations.inspect import inspect_image as _inspect_image
from .utils.progress import ProgressCallback


async def check_registry_connectivity(
    registry: str, config: Optional[RegistryConfig] = None
) -> bool:
    """Check that a registry answers the v2 API.

    Args:
        registry: Registry host (e.g., "localhost:5000", "ghcr.io")
        config: Client configuration, read from the environment when omitted

    Returns:
        bool: True if the registry is reachable

    Raises:
        RegistryConnectionError: If the registry cannot be reached
    """
    return await check_connectivity(config or RegistryConfig.from_env(), registry)


async def copy_image(
    source: str,
    target: str,
    config: Optional[RegistryConfig] = None,
    progress_callback: Optional[ProgressCallback] = None,
) -> str:
    """Copy an image between references, possibly across registries.

    Args:
        source: Source reference (e.g., "localhost:5000/app:v1")
        target: Target reference (e.g., "registry.example.com/team/app:v1")
        config: Client configuration, read from the environment when omitted
        progress_callback: Optional callback receiving (copied, total, message)

    Returns:
        str: Digest of the pushed manifest

    Examples:
        digest = await copy_image(
            "localhost:5000/nginx:alpine", "localhost:5000/mirror/nginx:alpine"
        )
    """
    source_ref = parse_reference(source)
    target_ref = parse_reference(target)
    async with RegistryClient(config or RegistryConfig.from_env()) as client:
        return await _copy_image(client, source_ref, target_ref, progress_callback)


async def export_image(
    reference: str,
    out: BinaryIO,
    config: Optional[RegistryConfig] = None,
    progress_callback: Optional[ProgressCallback] = None,
) -> ExportResult:
    """Write an image as a ``docker load`` compatible tar archive.

    Args:
        reference: Image reference with a tag (e.g., "localhost:5000/app:v1")
        out: Binary stream receiving the archive
        config: Client configuration, read from the environment when omitted
        progress_callback: Optional callback receiving (layers done, total, message)

    Returns:
        ExportResult: Config digest, diff IDs and archive manifest entry

    Examples:
        with open("app.tar", "wb") as f:
            await export_image("localhost:5000/app:v1", f)
    """
    ref = parse_reference(reference)
    async with RegistryClient(config or RegistryConfig.from_env()) as client:
        return await _export_image(
            client, ref, out, progress_callback=progress_callback
        )


async def inspect_image(
    reference: str, config: Optional[RegistryConfig] = None
) -> dict[str, Any]:
    """Fetch the decoded configuration of an image.

    Examples:
        image_config = await inspect_image("localhost:5000/app:v1")
        print(image_config["architecture"])
    """
    ref = parse_reference(reference)
    async with RegistryClient(config or RegistryConfig.from_env()) as client:
        return await _inspect_image(client, ref)


async def pull_blob(
    reference: str,
    digest: str,
    out: BinaryIO,
    config: Optional[RegistryConfig] = None,
) -> int:
    """Write the raw bytes of one blob of a repository to ``out``.

    Returns:
        int: Number of bytes written
    """
    ref = parse_reference(reference)
    async with RegistryClient(config or RegistryConfig.from_env()) as client:
        return await _pull_blob(client, ref, digest, out)
