"""Registry Image Tools - copy, export and inspect images in Docker Registry API v2 registries."""

__version__ = "0.1.0"

from .core.reference import Reference, parse_reference
from .core.registry_client import RegistryClient
from .core.types import IntegrityPolicy, RegistryConfig
from .exceptions import (
    BlobTransferError,
    DigestMismatchError,
    ExportError,
    ImageConfigError,
    InvalidReferenceError,
    LayerDecompressionError,
    ManifestError,
    NotFoundError,
    RegistryConnectionError,
    RegistryError,
)
from .manifest import Descriptor, Manifest
from .operations.export import ExportResult
from .registry import (
    check_registry_connectivity,
    copy_image,
    export_image,
    inspect_image,
    pull_blob,
)

__all__ = [
    "RegistryClient",
    "RegistryConfig",
    "IntegrityPolicy",
    "Reference",
    "parse_reference",
    "Descriptor",
    "Manifest",
    "ExportResult",
    "check_registry_connectivity",
    "copy_image",
    "export_image",
    "inspect_image",
    "pull_blob",
    "RegistryError",
    "RegistryConnectionError",
    "InvalidReferenceError",
    "NotFoundError",
    "ManifestError",
    "BlobTransferError",
    "DigestMismatchError",
    "ImageConfigError",
    "LayerDecompressionError",
    "ExportError",
]
