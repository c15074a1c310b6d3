"""Read-only model of an image manifest."""

import json
from dataclasses import dataclass
from typing import Any

from .exceptions import ManifestError
from .utils.digest import TransportDigest, calculate_digest, validate_digest

MEDIA_TYPE_DOCKER_MANIFEST = "application/vnd.docker.distribution.manifest.v2+json"
MEDIA_TYPE_DOCKER_MANIFEST_LIST = (
    "application/vnd.docker.distribution.manifest.list.v2+json"
)
MEDIA_TYPE_OCI_MANIFEST = "application/vnd.oci.image.manifest.v1+json"
MEDIA_TYPE_OCI_INDEX = "application/vnd.oci.image.index.v1+json"

MEDIA_TYPE_DOCKER_CONFIG = "application/vnd.docker.container.image.v1+json"
MEDIA_TYPE_OCI_CONFIG = "application/vnd.oci.image.config.v1+json"

IMAGE_MANIFEST_MEDIA_TYPES = (MEDIA_TYPE_DOCKER_MANIFEST, MEDIA_TYPE_OCI_MANIFEST)
INDEX_MEDIA_TYPES = (MEDIA_TYPE_DOCKER_MANIFEST_LIST, MEDIA_TYPE_OCI_INDEX)
CONFIG_MEDIA_TYPES = (MEDIA_TYPE_DOCKER_CONFIG, MEDIA_TYPE_OCI_CONFIG)


@dataclass(frozen=True)
class Descriptor:
    """Blob descriptor from a manifest: digest, media type and size."""

    digest: TransportDigest
    media_type: str
    size: int

    @classmethod
    def from_dict(cls, data: Any) -> "Descriptor":
        if not isinstance(data, dict):
            raise ManifestError(f"Invalid descriptor: {data!r}")
        digest = data.get("digest")
        if not validate_digest(digest):
            raise ManifestError(f"Invalid digest in descriptor: {digest!r}")
        try:
            size = int(data.get("size", 0))
        except (TypeError, ValueError) as e:
            raise ManifestError(
                f"Invalid size in descriptor {digest}: {data.get('size')!r}"
            ) from e
        return cls(
            digest=TransportDigest(digest),
            media_type=data.get("mediaType", ""),
            size=size,
        )


class Manifest:
    """An image manifest as received from a registry.

    The raw bytes are kept so the manifest can be pushed elsewhere without
    re-serialization changing its digest.
    """

    def __init__(self, raw: bytes, media_type: str = "") -> None:
        try:
            data = json.loads(raw)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise ManifestError(f"Failed to decode manifest: {e}") from e
        if not isinstance(data, dict):
            raise ManifestError("Manifest must be a JSON object")

        self.raw = bytes(raw)
        self.data: dict[str, Any] = data
        self.media_type = media_type or data.get("mediaType", "")

        if self.media_type in INDEX_MEDIA_TYPES or "manifests" in data:
            raise ManifestError(
                f"Manifest lists are not supported (media type {self.media_type!r})"
            )
        if data.get("schemaVersion") != 2:
            raise ManifestError(
                f"Unsupported manifest schema version: {data.get('schemaVersion')!r}"
            )
        if not self.media_type:
            self.media_type = MEDIA_TYPE_OCI_MANIFEST

    @property
    def digest(self) -> str:
        """Digest of the raw manifest bytes."""
        return calculate_digest(self.raw)

    def config_descriptor(self) -> Descriptor:
        """Descriptor of the image configuration blob."""
        if "config" not in self.data:
            raise ManifestError("Manifest has no config descriptor")
        return Descriptor.from_dict(self.data["config"])

    def layers(self) -> list[Descriptor]:
        """Layer descriptors in application order (base layer first)."""
        layers = self.data.get("layers")
        if not isinstance(layers, list):
            raise ManifestError("Manifest has no layer list")
        return [Descriptor.from_dict(layer) for layer in layers]
