"""Image operations built on the registry client."""

from .blobs import pull_blob
from .copy import copy_image
from .export import ExportResult, export_image
from .inspect import ImageConfig, inspect_image, summarize_config

__all__ = [
    "copy_image",
    "export_image",
    "ExportResult",
    "inspect_image",
    "ImageConfig",
    "summarize_config",
    "pull_blob",
]
