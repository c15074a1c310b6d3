"""Custom exceptions for registry image tools."""


class RegistryError(Exception):
    """Base exception for all registry-related errors."""

    pass


class RegistryConnectionError(RegistryError):
    """Raised when unable to connect to the registry."""

    pass


class InvalidReferenceError(RegistryError):
    """Raised when an image reference cannot be parsed or resolved."""

    pass


class NotFoundError(RegistryError):
    """Raised when a manifest, blob or image name does not exist."""

    pass


class ManifestError(RegistryError):
    """Raised when manifest operations fail."""

    pass


class BlobTransferError(RegistryError):
    """Raised when a blob download, upload or copy fails."""

    pass


class DigestMismatchError(RegistryError):
    """Raised when content does not hash to its declared digest."""

    def __init__(
        self, message: str, expected: str | None = None, actual: str | None = None
    ) -> None:
        super().__init__(message)
        self.expected = expected
        self.actual = actual


class ImageConfigError(RegistryError):
    """Raised when an image configuration cannot be decoded or encoded."""

    pass


class LayerDecompressionError(RegistryError):
    """Raised when a layer stream cannot be decompressed."""

    pass


class ExportError(RegistryError):
    """Raised when staging or packaging an export archive fails."""

    pass
