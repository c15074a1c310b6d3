"""Digest verification shared by the image operations."""

import logging

from ..core.types import IntegrityPolicy
from ..exceptions import DigestMismatchError

logger = logging.getLogger(__name__)


def check_digest(
    what: str, expected: str, actual: str, policy: IntegrityPolicy
) -> bool:
    """Compare a declared digest with the digest of the bytes actually received.

    Args:
        what: Description of the content, used in messages (e.g. "image config")
        expected: Digest declared by the manifest or requested by the caller
        actual: Digest calculated over the received bytes
        policy: WARN logs the mismatch and returns False, STRICT raises

    Returns:
        True if the digests match

    Raises:
        DigestMismatchError: On mismatch under the STRICT policy
    """
    if expected == actual:
        return True

    message = f"Digest for {what} does not match, pulled {expected}, calculated {actual}"
    if policy == IntegrityPolicy.STRICT:
        raise DigestMismatchError(message, expected=expected, actual=actual)

    logger.warning(message)
    return False
