"""Export of a registry image as a ``docker load`` archive.

Registries address layers by the digest of the compressed blob, while the
archive format and ``rootfs.diff_ids`` use the digest of the decompressed
tar. Every layer is therefore downloaded, decompressed and rehashed, and
the image config is rewritten with the new diff IDs.

Archive layout::

    <config-hex>.json
    manifest.json
    <diffid-hex>/layer.tar
"""

import asyncio
import logging
import os
import shutil
import tarfile
import tempfile
from contextlib import aclosing
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, BinaryIO, Optional

import aiofiles

from ..core.reference import Reference
from ..core.registry_client import RegistryClient
from ..core.types import IntegrityPolicy
from ..exceptions import ExportError, ImageConfigError, NotFoundError, RegistryError
from ..manifest import Descriptor
from ..tar.archive import (
    EPOCH,
    dump_json,
    encode_archive_manifest,
    parse_created,
    set_mtime,
    write_directory_tar,
)
from ..tar.models import LAYER_FILENAME, MANIFEST_FILENAME, ArchiveManifestEntry
from ..utils.compression import StreamDecompressor
from ..utils.digest import DiffID, Digester, calculate_digest, digest_algorithm, digest_hex
from ..utils.progress import ProgressCallback, report_progress
from .inspect import fetch_image_config
from .integrity import check_digest

logger = logging.getLogger(__name__)

WORK_DIR_PREFIX = "regcli-export-"
LAYER_DIR_PREFIX = "layer-"


@dataclass
class ExportResult:
    """What an export wrote into the archive."""

    config_digest: str
    diff_ids: list[DiffID] = field(default_factory=list)
    entry: ArchiveManifestEntry = field(default_factory=ArchiveManifestEntry)


async def _stage_layer(
    client: RegistryClient,
    ref: Reference,
    layer: Descriptor,
    work_dir: Path,
    created: datetime,
    policy: IntegrityPolicy,
) -> DiffID:
    """Download one layer into ``<diffid-hex>/layer.tar`` under the work dir.

    The blob is decompressed and hashed in a single pass. It lands in a
    provisional directory first and is renamed once its diff ID is known.
    """
    staging_dir = Path(tempfile.mkdtemp(prefix=LAYER_DIR_PREFIX, dir=work_dir))

    transport = Digester(digest_algorithm(layer.digest))
    content = Digester()
    decompressor = StreamDecompressor()

    async with aiofiles.open(staging_dir / LAYER_FILENAME, "wb") as layer_file:
        async with aclosing(client.iter_blob(ref, layer.digest)) as chunks:
            async for chunk in chunks:
                transport.update(chunk)
                data = decompressor.decompress(chunk)
                if data:
                    content.update(data)
                    await layer_file.write(data)
        data = decompressor.finish()
        if data:
            content.update(data)
            await layer_file.write(data)

    check_digest(f"layer {layer.digest}", layer.digest, transport.digest(), policy)

    diff_id = DiffID(content.digest())
    layer_dir = work_dir / digest_hex(diff_id)
    if layer_dir.exists():
        # Same content appears twice in the image, keep the first copy
        shutil.rmtree(staging_dir)
    else:
        os.rename(staging_dir, layer_dir)
        set_mtime(layer_dir / LAYER_FILENAME, created)
        set_mtime(layer_dir, created)

    logger.debug(
        f"Layer {layer.digest} ({decompressor.compression}) has diff ID {diff_id}, "
        f"{content.size} bytes uncompressed"
    )
    return diff_id


def _encode_config(config: dict[str, Any]) -> bytes:
    try:
        return dump_json(config)
    except (TypeError, ValueError) as e:
        raise ImageConfigError(f"Failed to encode image config: {e}") from e


async def _write_file(path: Path, data: bytes, mtime: datetime) -> None:
    async with aiofiles.open(path, "wb") as f:
        await f.write(data)
    set_mtime(path, mtime)


async def export_image(
    client: RegistryClient,
    ref: Reference,
    out: BinaryIO,
    policy: Optional[IntegrityPolicy] = None,
    progress_callback: Optional[ProgressCallback] = None,
) -> ExportResult:
    """Export an image from a registry as an uncompressed ``docker load`` tar.

    Everything is staged in a temporary directory and only packaged into
    ``out`` once the whole image has been downloaded, so a failure part way
    leaves ``out`` untouched. The directory is removed on every exit path.

    Args:
        client: Registry client
        ref: Image reference; must carry a tag, which becomes the archive's RepoTag
        out: Binary stream receiving the tar archive
        policy: Integrity policy, defaults to the client's configured policy
        progress_callback: Optional callback receiving (layers done, total, message)

    Returns:
        ExportResult with the new config digest, diff IDs and archive entry

    Raises:
        NotFoundError: If the reference has no name or the image does not exist
        ImageConfigError: If the image config cannot be decoded or encoded
        LayerDecompressionError: If a layer cannot be decompressed
        DigestMismatchError: On digest mismatch under the STRICT policy
        ExportError: If staging or packaging the archive fails
    """
    name = ref.common_name()
    if not name:
        raise NotFoundError(f"Cannot export {ref} without a tag to name it by")
    policy = policy or client.config.verify

    try:
        manifest = await client.get_manifest(ref)
    except RegistryError as e:
        logger.warning(f"Failed to get manifest {ref}: {e}")
        raise

    try:
        with tempfile.TemporaryDirectory(prefix=WORK_DIR_PREFIX) as tmp:
            work_dir = Path(tmp)
            logger.debug(f"Using temp directory {work_dir} for export")

            _, config = await fetch_image_config(client, ref, manifest, policy)
            created = parse_created(config.get("created"))

            # diff_ids are rebuilt from the decompressed layers
            rootfs = config.get("rootfs")
            if not isinstance(rootfs, dict):
                rootfs = config["rootfs"] = {"type": "layers"}
            diff_ids: list[DiffID] = []
            rootfs["diff_ids"] = diff_ids

            entry = ArchiveManifestEntry(repo_tags=[name])
            layers = manifest.layers()
            for index, layer in enumerate(layers, start=1):
                logger.info(f"Export layer {layer.digest}")
                try:
                    diff_id = await _stage_layer(
                        client, ref, layer, work_dir, created, policy
                    )
                except RegistryError as e:
                    logger.warning(f"Failed to export layer {layer.digest}: {e}")
                    raise
                diff_ids.append(diff_id)
                entry.layers.append(f"{digest_hex(diff_id)}/{LAYER_FILENAME}")
                await report_progress(
                    progress_callback, index, len(layers), f"Exported layer {diff_id}"
                )

            config_bytes = _encode_config(config)
            config_digest = calculate_digest(config_bytes)
            entry.config = f"{digest_hex(config_digest)}.json"
            await _write_file(work_dir / entry.config, config_bytes, created)
            await _write_file(
                work_dir / MANIFEST_FILENAME, encode_archive_manifest([entry]), EPOCH
            )

            loop = asyncio.get_running_loop()
            await loop.run_in_executor(None, write_directory_tar, work_dir, out)
    except (OSError, tarfile.TarError) as e:
        raise ExportError(f"Failed to export {ref}: {e}") from e

    logger.info(f"Exported {name} with {len(diff_ids)} layers, config {config_digest}")
    return ExportResult(config_digest=config_digest, diff_ids=diff_ids, entry=entry)
