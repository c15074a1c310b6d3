"""Image copy between registry references."""

import logging
from typing import Optional

from ..core.reference import Reference
from ..core.registry_client import RegistryClient
from ..exceptions import RegistryError
from ..utils.progress import ProgressCallback, report_progress

logger = logging.getLogger(__name__)


async def copy_image(
    client: RegistryClient,
    source: Reference,
    target: Reference,
    progress_callback: Optional[ProgressCallback] = None,
) -> str:
    """Copy an image, config and layers first, manifest last.

    The manifest is pushed only after every blob it references has been
    copied, so the target never exposes a manifest with missing blobs.
    Blobs copied before a failure stay at the target.

    Args:
        client: Registry client used for both references
        source: Image to copy
        target: Destination reference (tag or digest)
        progress_callback: Optional callback receiving (copied, total, message)
            after each blob

    Returns:
        Digest of the pushed manifest

    Raises:
        NotFoundError: If the source manifest or a blob does not exist
        ManifestError: If the manifest cannot be fetched, decoded or pushed
        BlobTransferError: If a blob copy fails
    """
    try:
        manifest = await client.get_manifest(source)
    except RegistryError as e:
        logger.warning(f"Failed to get source manifest {source}: {e}")
        raise

    config = manifest.config_descriptor()
    layers = manifest.layers()
    total = len(layers) + 1

    logger.info(f"Copy config {config.digest}")
    try:
        await client.copy_blob(source, target, config.digest)
    except RegistryError as e:
        logger.warning(f"Failed to copy config {config.digest} to {target}: {e}")
        raise
    await report_progress(progress_callback, 1, total, f"Copied config {config.digest}")

    for index, layer in enumerate(layers, start=2):
        logger.info(f"Copy layer {layer.digest}")
        try:
            await client.copy_blob(source, target, layer.digest)
        except RegistryError as e:
            logger.warning(f"Failed to copy layer {layer.digest} to {target}: {e}")
            raise
        await report_progress(
            progress_callback, index, total, f"Copied layer {layer.digest}"
        )

    try:
        digest = await client.put_manifest(target, manifest)
    except RegistryError as e:
        logger.warning(f"Failed to push manifest to {target}: {e}")
        raise

    logger.info(f"Copied {source} to {target} ({digest})")
    return digest
