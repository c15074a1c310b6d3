"""Streaming decompression of layer blobs.

Registries store layers as gzip (most common), zstd, or occasionally bzip2,
xz or uncompressed tar. The format is sniffed from the first bytes of the
stream so callers can push chunks through without knowing the media type.
"""

import bz2
import lzma
import zlib
from typing import Any

import zstandard

from ..exceptions import LayerDecompressionError

GZIP_MAGIC = b"\x1f\x8b\x08"
BZIP2_MAGIC = b"BZh"
XZ_MAGIC = b"\xfd7zXZ\x00"
ZSTD_MAGIC = b"\x28\xb5\x2f\xfd"

_MAGIC_LENGTH = max(len(GZIP_MAGIC), len(BZIP2_MAGIC), len(XZ_MAGIC), len(ZSTD_MAGIC))

_DECOMPRESSION_ERRORS = (
    zlib.error,
    lzma.LZMAError,
    zstandard.ZstdError,
    EOFError,
    OSError,
)


def detect_compression(header: bytes) -> str:
    """Return "gzip", "bzip2", "xz", "zstd" or "none" for a stream header."""
    if header.startswith(GZIP_MAGIC):
        return "gzip"
    if header.startswith(BZIP2_MAGIC):
        return "bzip2"
    if header.startswith(XZ_MAGIC):
        return "xz"
    if header.startswith(ZSTD_MAGIC):
        return "zstd"
    return "none"


def _new_decompressor(compression: str) -> Any:
    if compression == "gzip":
        return zlib.decompressobj(wbits=zlib.MAX_WBITS | 16)
    if compression == "bzip2":
        return bz2.BZ2Decompressor()
    if compression == "xz":
        return lzma.LZMADecompressor()
    if compression == "zstd":
        return zstandard.ZstdDecompressor().decompressobj()
    return None


class StreamDecompressor:
    """Incremental decompressor with format detection.

    Concatenated members (multi-member gzip, multiple zstd frames) are
    decoded back to back, matching what ``gzip -d`` produces.
    """

    def __init__(self) -> None:
        self.compression: str | None = None
        self._header = b""
        self._decompressor: Any = None

    def decompress(self, chunk: bytes) -> bytes:
        """Feed a chunk of compressed bytes, return the bytes it decoded to."""
        try:
            if self.compression is None:
                self._header += chunk
                if len(self._header) < _MAGIC_LENGTH:
                    return b""
                chunk, self._header = self._header, b""
                self._start(chunk)
            return self._feed(chunk)
        except _DECOMPRESSION_ERRORS as e:
            raise LayerDecompressionError(
                f"Failed to decompress {self.compression} stream: {e}"
            ) from e

    def finish(self) -> bytes:
        """Signal end of input; raises if the compressed stream was truncated."""
        output = b""
        try:
            if self.compression is None:
                header, self._header = self._header, b""
                self._start(header)
                output = self._feed(header)
        except _DECOMPRESSION_ERRORS as e:
            raise LayerDecompressionError(
                f"Failed to decompress {self.compression} stream: {e}"
            ) from e

        if self._decompressor is not None and not self._decompressor.eof:
            raise LayerDecompressionError(
                f"Unexpected end of {self.compression} stream"
            )
        return output

    def _start(self, header: bytes) -> None:
        self.compression = detect_compression(header)
        self._decompressor = _new_decompressor(self.compression)

    def _feed(self, data: bytes) -> bytes:
        if self._decompressor is None:
            return data

        output = []
        while data:
            if self._decompressor.eof:
                self._decompressor = _new_decompressor(self.compression)
            output.append(self._decompressor.decompress(data))
            data = self._decompressor.unused_data if self._decompressor.eof else b""
        return b"".join(output)
