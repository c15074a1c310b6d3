"""Single blob download."""

import logging
from contextlib import aclosing
from typing import BinaryIO, Optional

from ..core.reference import Reference
from ..core.registry_client import RegistryClient
from ..core.types import IntegrityPolicy
from ..utils.digest import Digester, digest_algorithm, validate_digest
from .integrity import check_digest

logger = logging.getLogger(__name__)


async def pull_blob(
    client: RegistryClient,
    ref: Reference,
    digest: str,
    out: BinaryIO,
    policy: Optional[IntegrityPolicy] = None,
) -> int:
    """Stream a blob's raw bytes into ``out``.

    The digest is checked once the stream ends; under the STRICT policy a
    mismatch raises after the bytes have already been written.

    Returns:
        Number of bytes written

    Raises:
        ValueError: If ``digest`` is not a valid digest
        NotFoundError: If the blob does not exist
        BlobTransferError: If the download fails
    """
    if not validate_digest(digest):
        raise ValueError(f"Invalid digest format: {digest}")

    logger.debug(f"Pulling blob {digest} from {ref.registry}/{ref.repository}")
    digester = Digester(digest_algorithm(digest))
    async with aclosing(client.iter_blob(ref, digest)) as chunks:
        async for chunk in chunks:
            digester.update(chunk)
            out.write(chunk)
    out.flush()

    check_digest(f"blob {digest}", digest, digester.digest(), policy or client.config.verify)
    return digester.size
