"""Image configuration retrieval."""

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

from ..core.reference import Reference
from ..core.registry_client import RegistryClient
from ..core.types import IntegrityPolicy
from ..exceptions import ImageConfigError, RegistryError
from ..manifest import CONFIG_MEDIA_TYPES, Descriptor, Manifest
from ..tar.archive import parse_created
from ..utils.digest import calculate_digest, digest_algorithm
from .integrity import check_digest

logger = logging.getLogger(__name__)


@dataclass
class ImageConfig:
    """Commonly displayed fields of an image configuration."""

    architecture: str
    os: str
    created: datetime
    cmd: list[str] = field(default_factory=list)
    entrypoint: list[str] = field(default_factory=list)
    env: list[str] = field(default_factory=list)
    user: str = ""
    working_dir: Optional[str] = None
    exposed_ports: dict[str, Any] = field(default_factory=dict)
    labels: dict[str, str] = field(default_factory=dict)
    diff_ids: list[str] = field(default_factory=list)


def decode_image_config(data: bytes) -> dict[str, Any]:
    """Decode an image configuration blob.

    Raises:
        ImageConfigError: If the blob is not a JSON object
    """
    try:
        config = json.loads(data)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise ImageConfigError(f"Failed to decode image config: {e}") from e
    if not isinstance(config, dict):
        raise ImageConfigError("Image config must be a JSON object")
    return config


async def fetch_image_config(
    client: RegistryClient,
    ref: Reference,
    manifest: Manifest,
    policy: IntegrityPolicy,
) -> tuple[Descriptor, dict[str, Any]]:
    """Download, verify and decode the configuration blob of a manifest."""
    descriptor = manifest.config_descriptor()
    try:
        data = await client.read_blob(ref, descriptor.digest, CONFIG_MEDIA_TYPES)
    except RegistryError as e:
        logger.warning(f"Failed to get config {descriptor.digest} for {ref}: {e}")
        raise

    calculated = calculate_digest(data, digest_algorithm(descriptor.digest))
    check_digest("image config", descriptor.digest, calculated, policy)
    return descriptor, decode_image_config(data)


async def inspect_image(
    client: RegistryClient,
    ref: Reference,
    policy: Optional[IntegrityPolicy] = None,
) -> dict[str, Any]:
    """Fetch and decode the configuration of an image.

    Args:
        client: Registry client
        ref: Image reference
        policy: Integrity policy, defaults to the client's configured policy

    Returns:
        The decoded image configuration

    Raises:
        NotFoundError: If the manifest or config blob does not exist
        ImageConfigError: If the config is not valid JSON
        DigestMismatchError: On config digest mismatch under the STRICT policy
    """
    manifest = await client.get_manifest(ref)
    _, config = await fetch_image_config(
        client, ref, manifest, policy or client.config.verify
    )
    return config


def summarize_config(config: dict[str, Any]) -> ImageConfig:
    """Pick the commonly displayed fields out of an image configuration."""
    runtime_config = config.get("config") or {}
    rootfs = config.get("rootfs") or {}

    return ImageConfig(
        architecture=config.get("architecture", ""),
        os=config.get("os", ""),
        created=parse_created(config.get("created")),
        cmd=runtime_config.get("Cmd") or [],
        entrypoint=runtime_config.get("Entrypoint") or [],
        env=runtime_config.get("Env") or [],
        user=runtime_config.get("User", ""),
        working_dir=runtime_config.get("WorkingDir"),
        exposed_ports=runtime_config.get("ExposedPorts") or {},
        labels=runtime_config.get("Labels") or {},
        diff_ids=rootfs.get("diff_ids") or [],
    )
