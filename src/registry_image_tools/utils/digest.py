"""Digest calculation and validation utilities."""

import hashlib
import re
from typing import NewType, Union

# Regex pattern for valid digest format (algorithm:hex)
DIGEST_PATTERN = re.compile(r"^[a-z0-9]+:[a-f0-9]+$")

CANONICAL_ALGORITHM = "sha256"

# Digest of blob bytes as stored and transferred by a registry (usually compressed)
TransportDigest = NewType("TransportDigest", str)

# Digest of decompressed layer content, as listed in rootfs.diff_ids
DiffID = NewType("DiffID", str)


def calculate_digest(data: Union[bytes, bytearray], algorithm: str = "sha256") -> str:
    """Calculate digest of data.

    Args:
        data: Data to hash
        algorithm: Hash algorithm (default: sha256)

    Returns:
        Digest string in format "algorithm:hex"

    Raises:
        ValueError: If algorithm is not supported
        ValueError: If data is not bytes-like
    """
    if not isinstance(data, (bytes, bytearray)):
        raise ValueError("Data must be bytes or bytearray")

    hasher = Digester(algorithm)
    hasher.update(data)
    return hasher.digest()


def validate_digest(digest: str) -> bool:
    """Validate digest format.

    Args:
        digest: Digest string to validate

    Returns:
        True if valid digest format
    """
    if not isinstance(digest, str):
        return False

    if not DIGEST_PATTERN.match(digest):
        return False

    # Check if algorithm is valid
    algorithm, _ = digest.split(":", 1)
    return algorithm in ["sha256", "sha512", "sha1", "md5"]


def verify_digest(data: Union[bytes, bytearray], expected_digest: str) -> bool:
    """Verify data matches expected digest.

    Args:
        data: Data to verify
        expected_digest: Expected digest string

    Returns:
        True if data matches digest

    Raises:
        ValueError: If digest format is invalid
    """
    if not validate_digest(expected_digest):
        raise ValueError(f"Invalid digest format: {expected_digest}")

    algorithm, _ = expected_digest.split(":", 1)
    actual_digest = calculate_digest(data, algorithm)
    return actual_digest == expected_digest


def digest_algorithm(digest: str) -> str:
    """Return the algorithm part of a digest ("sha256" for "sha256:ab12...")."""
    return digest.split(":", 1)[0]


def digest_hex(digest: str) -> str:
    """Return the encoded part of a digest ("ab12..." for "sha256:ab12...")."""
    if ":" not in digest:
        raise ValueError(f"Invalid digest format: {digest}")
    return digest.split(":", 1)[1]


class Digester:
    """Incremental digest over a byte stream.

    Feed chunks with :meth:`update` as they pass through, then read the
    result with :meth:`digest`. Keeps a running byte count so callers can
    report sizes without buffering the stream.
    """

    def __init__(self, algorithm: str = CANONICAL_ALGORITHM) -> None:
        if algorithm not in hashlib.algorithms_available:
            raise ValueError(f"Unsupported algorithm: {algorithm}")
        self.algorithm = algorithm
        self.size = 0
        self._hasher = hashlib.new(algorithm)

    def update(self, data: Union[bytes, bytearray]) -> None:
        self._hasher.update(data)
        self.size += len(data)

    def digest(self) -> str:
        return f"{self.algorithm}:{self._hasher.hexdigest()}"
