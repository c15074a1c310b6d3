"""Docker Registry API v2 async client implementation."""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Iterable, Optional, Union
from urllib.parse import urlencode, urljoin

import aiohttp

from ..exceptions import BlobTransferError, ManifestError
from ..manifest import IMAGE_MANIFEST_MEDIA_TYPES, INDEX_MEDIA_TYPES, Manifest
from ..utils.digest import validate_digest
from ..utils.progress import ProgressCallback, report_progress
from .connectivity import check_api_version_header
from .reference import Reference
from .session import check_response_status, create_session, describe_network_error
from .types import RegistryConfig

logger = logging.getLogger(__name__)

_NETWORK_ERRORS = (aiohttp.ClientError, asyncio.TimeoutError)


async def _rechunk(
    data: AsyncIterator[bytes], chunk_size: int
) -> AsyncIterator[bytes]:
    """Regroup an async byte stream into chunks of ``chunk_size`` bytes."""
    buffer = bytearray()
    async for piece in data:
        buffer.extend(piece)
        while len(buffer) >= chunk_size:
            yield bytes(buffer[:chunk_size])
            del buffer[:chunk_size]
    if buffer:
        yield bytes(buffer)


async def _iter_bytes(data: bytes, chunk_size: int) -> AsyncIterator[bytes]:
    for i in range(0, len(data), chunk_size):
        yield data[i : i + chunk_size]


class RegistryClient:
    """Docker Registry API v2 async client for unauthenticated registries.

    One client can talk to any number of registries; every call is addressed
    by a :class:`Reference` that carries its registry host.
    """

    def __init__(
        self,
        config: Optional[RegistryConfig] = None,
        connector: Optional[aiohttp.TCPConnector] = None,
    ) -> None:
        """Initialize the registry client.

        Args:
            config: Client configuration (timeouts, chunk sizes, plain HTTP hosts)
            connector: aiohttp connector for connection pooling
        """
        self.config = config or RegistryConfig()
        self.connector = connector
        self.session: Optional[aiohttp.ClientSession] = None

    async def __aenter__(self) -> "RegistryClient":
        """Enter async context manager."""
        await self._get_session()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Exit async context manager."""
        await self.close()

    async def close(self) -> None:
        """Close the client session."""
        if self.session and not self.session.closed:
            await self.session.close()
        self.session = None

    async def _get_session(self) -> aiohttp.ClientSession:
        if self.session is None or self.session.closed:
            self.session = await create_session(self.config, self.connector)
        return self.session

    def _url(self, ref: Reference, path: str) -> str:
        return f"{self.config.base_url(ref.registry)}/v2/{ref.repository}/{path}"

    def _absolute(self, ref: Reference, location: str) -> str:
        return urljoin(self.config.base_url(ref.registry) + "/", location)

    async def check_registry_v2(self, registry: str) -> bool:
        """Check if a registry supports the v2 API.

        Returns:
            True if v2 API is supported
        """
        session = await self._get_session()
        try:
            url = f"{self.config.base_url(registry)}/v2/"
            async with session.get(url) as resp:
                return resp.status in (200, 401) or check_api_version_header(
                    resp.headers
                )
        except _NETWORK_ERRORS:
            return False

    async def get_manifest(self, ref: Reference) -> Manifest:
        """Retrieve an image manifest from the registry.

        Args:
            ref: Image reference (tag or digest)

        Returns:
            Manifest with its raw bytes and content type

        Raises:
            NotFoundError: If the manifest does not exist
            ManifestError: If retrieval fails or the manifest is not an image manifest
        """
        accept = ", ".join(IMAGE_MANIFEST_MEDIA_TYPES + INDEX_MEDIA_TYPES)
        url = self._url(ref, f"manifests/{ref.manifest_reference}")
        session = await self._get_session()
        logger.debug(f"GET {url}")
        try:
            async with session.get(url, headers={"Accept": accept}) as resp:
                check_response_status(resp.status, f"Manifest {ref}", ManifestError)
                raw = await resp.read()
                content_type = resp.headers.get("Content-Type", "").split(";")[0]
        except _NETWORK_ERRORS as e:
            raise ManifestError(
                f"Failed to get manifest {ref}: {describe_network_error(e)}"
            ) from e

        return Manifest(raw, content_type.strip())

    async def put_manifest(self, ref: Reference, manifest: Manifest) -> str:
        """Upload a manifest to the registry, byte for byte.

        Args:
            ref: Target reference (tag or digest)
            manifest: Manifest to push

        Returns:
            Manifest digest reported by the registry

        Raises:
            ManifestError: If upload fails
        """
        url = self._url(ref, f"manifests/{ref.manifest_reference}")
        session = await self._get_session()
        logger.debug(f"PUT {url}")
        try:
            async with session.put(
                url,
                data=manifest.raw,
                headers={
                    "Content-Type": manifest.media_type,
                    "Content-Length": str(len(manifest.raw)),
                },
            ) as resp:
                check_response_status(
                    resp.status, f"Manifest {ref}", ManifestError, (200, 201, 202)
                )
                return resp.headers.get("Docker-Content-Digest", "") or manifest.digest
        except _NETWORK_ERRORS as e:
            raise ManifestError(
                f"Failed to upload manifest: {describe_network_error(e)}"
            ) from e

    async def blob_exists(self, ref: Reference, digest: str) -> bool:
        """Check if a blob exists in the registry.

        Args:
            ref: Repository reference
            digest: Blob digest

        Returns:
            True if blob exists
        """
        session = await self._get_session()
        try:
            async with session.head(self._url(ref, f"blobs/{digest}")) as resp:
                return resp.status == 200
        except _NETWORK_ERRORS:
            return False

    @asynccontextmanager
    async def open_blob(
        self, ref: Reference, digest: str, accept: Iterable[str] = ()
    ) -> AsyncIterator[aiohttp.ClientResponse]:
        """Open a blob for streaming.

        Args:
            ref: Repository reference
            digest: Blob digest
            accept: Accepted media types, sent as the Accept header

        Yields:
            The open response; read it through ``resp.content``

        Raises:
            NotFoundError: If the blob does not exist
            BlobTransferError: If the request fails
        """
        if not validate_digest(digest):
            raise ValueError(f"Invalid digest format: {digest}")

        headers = {}
        accept = list(accept)
        if accept:
            headers["Accept"] = ", ".join(accept)

        url = self._url(ref, f"blobs/{digest}")
        session = await self._get_session()
        logger.debug(f"GET {url}")
        try:
            async with session.get(url, headers=headers) as resp:
                check_response_status(resp.status, f"Blob {digest}", BlobTransferError)
                yield resp
        except _NETWORK_ERRORS as e:
            raise BlobTransferError(
                f"Failed to download blob {digest}: {describe_network_error(e)}"
            ) from e

    async def iter_blob(
        self, ref: Reference, digest: str, accept: Iterable[str] = ()
    ) -> AsyncIterator[bytes]:
        """Stream a blob's bytes in ``config.read_chunk_size`` pieces."""
        async with self.open_blob(ref, digest, accept) as resp:
            try:
                async for chunk in resp.content.iter_chunked(
                    self.config.read_chunk_size
                ):
                    yield chunk
            except _NETWORK_ERRORS as e:
                raise BlobTransferError(
                    f"Failed to download blob {digest}: {describe_network_error(e)}"
                ) from e

    async def read_blob(
        self, ref: Reference, digest: str, accept: Iterable[str] = ()
    ) -> bytes:
        """Download a whole blob into memory (config blobs and other small JSON)."""
        chunks = [chunk async for chunk in self.iter_blob(ref, digest, accept)]
        return b"".join(chunks)

    async def upload_blob(
        self,
        ref: Reference,
        data: Union[bytes, AsyncIterator[bytes]],
        digest: str,
        progress_callback: Optional[ProgressCallback] = None,
        total_size: int = 0,
    ) -> str:
        """Upload a blob to the registry.

        Args:
            ref: Target repository reference
            data: Blob data (bytes or async iterator)
            digest: Expected blob digest, verified by the registry on completion
            progress_callback: Optional progress callback
            total_size: Size used for progress reports when ``data`` is a stream

        Returns:
            Blob digest

        Raises:
            BlobTransferError: If upload fails
        """
        # Validate digest format
        if not validate_digest(digest):
            raise ValueError(f"Invalid digest format: {digest}")

        if isinstance(data, (bytes, bytearray)):
            total_size = len(data)
            chunks = _iter_bytes(bytes(data), self.config.chunk_size)
        else:
            chunks = _rechunk(data, self.config.chunk_size)

        session = await self._get_session()
        try:
            # Start upload session
            async with session.post(self._url(ref, "blobs/uploads/")) as resp:
                check_response_status(
                    resp.status, f"Upload to {ref.repository}", BlobTransferError, (202,)
                )
                upload_url = self._absolute(ref, resp.headers.get("Location", ""))

            # Upload data in chunks
            uploaded_bytes = 0
            async for chunk in chunks:
                async with session.patch(
                    upload_url,
                    data=chunk,
                    headers={
                        "Content-Type": "application/octet-stream",
                        "Content-Length": str(len(chunk)),
                    },
                ) as resp:
                    check_response_status(
                        resp.status, f"Blob upload {digest}", BlobTransferError, (202,)
                    )
                    upload_url = self._absolute(ref, resp.headers.get("Location", ""))

                uploaded_bytes += len(chunk)
                await report_progress(
                    progress_callback,
                    uploaded_bytes,
                    total_size,
                    f"Uploading {digest[:19]}...",
                )

            # Finalize upload
            separator = "&" if "?" in upload_url else "?"
            final_url = f"{upload_url}{separator}{urlencode({'digest': digest})}"
            async with session.put(final_url, headers={"Content-Length": "0"}) as resp:
                check_response_status(
                    resp.status, f"Blob upload {digest}", BlobTransferError, (201, 204)
                )

            return digest

        except _NETWORK_ERRORS as e:
            raise BlobTransferError(
                f"Failed to upload blob: {describe_network_error(e)}"
            ) from e

    async def mount_blob(self, source: Reference, target: Reference, digest: str) -> bool:
        """Try a cross-repository mount within one registry.

        Returns:
            True if the registry mounted the blob, False if it started a
            regular upload session instead (the caller must then upload)
        """
        query = urlencode({"mount": digest, "from": source.repository})
        url = f"{self._url(target, 'blobs/uploads/')}?{query}"
        session = await self._get_session()
        try:
            async with session.post(url) as resp:
                if resp.status == 201:
                    return True
                check_response_status(
                    resp.status, f"Mount of {digest}", BlobTransferError, (202,)
                )
                location = resp.headers.get("Location", "")
        except _NETWORK_ERRORS as e:
            raise BlobTransferError(
                f"Failed to mount blob {digest}: {describe_network_error(e)}"
            ) from e

        # Abandon the upload session the registry opened in place of the mount
        if location:
            try:
                async with session.delete(self._absolute(target, location)):
                    pass
            except _NETWORK_ERRORS:
                logger.debug(f"Could not cancel upload session for {digest}")
        return False

    async def copy_blob(
        self,
        source: Reference,
        target: Reference,
        digest: str,
        progress_callback: Optional[ProgressCallback] = None,
    ) -> None:
        """Copy a blob between repositories, possibly on different registries.

        Existing blobs are skipped. Within one registry a cross-repository
        mount is attempted first; otherwise the blob is streamed from the
        source straight into an upload at the target.

        Raises:
            NotFoundError: If the blob does not exist at the source
            BlobTransferError: If download or upload fails
        """
        if await self.blob_exists(target, digest):
            logger.debug(f"Blob {digest} already present in {target.repository}")
            return

        if source.registry == target.registry and source.repository != target.repository:
            if await self.mount_blob(source, target, digest):
                logger.debug(f"Mounted {digest} from {source.repository}")
                return

        stream = self.iter_blob(source, digest)
        try:
            await self.upload_blob(target, stream, digest, progress_callback)
        finally:
            await stream.aclose()
