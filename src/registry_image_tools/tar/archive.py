"""Helpers for writing docker-load archives."""

import json
import os
import re
import tarfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, BinaryIO, Union

from .models import ArchiveManifestEntry

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

_FRACTION = re.compile(r"\.(\d+)")


def parse_created(value: Any) -> datetime:
    """Parse an image config ``created`` timestamp (RFC 3339).

    Nanosecond precision is truncated to microseconds. Missing or invalid
    values map to the Unix epoch so archives stay reproducible.
    """
    if not isinstance(value, str) or not value:
        return EPOCH

    text = value.strip().replace("Z", "+00:00")
    text = _FRACTION.sub(lambda m: "." + (m.group(1) + "000000")[:6], text, count=1)
    try:
        created = datetime.fromisoformat(text)
    except ValueError:
        return EPOCH

    if created.tzinfo is None:
        created = created.replace(tzinfo=timezone.utc)
    return created


def set_mtime(path: Union[str, Path], when: datetime) -> None:
    """Set access and modification time of a file or directory."""
    timestamp = when.timestamp()
    os.utime(path, (timestamp, timestamp))


def dump_json(data: Any) -> bytes:
    """Compact JSON encoding used for every file written into an archive."""
    return json.dumps(data, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


def encode_archive_manifest(entries: list[ArchiveManifestEntry]) -> bytes:
    return dump_json([entry.to_dict() for entry in entries])


def _normalize_member(info: tarfile.TarInfo) -> tarfile.TarInfo:
    info.uid = info.gid = 0
    info.uname = info.gname = ""
    info.mode = 0o755 if info.isdir() else 0o644
    # Whole seconds keep the headers plain ustar without pax mtime records
    info.mtime = int(info.mtime)
    return info


def write_directory_tar(directory: Union[str, Path], out: BinaryIO) -> None:
    """Write the contents of a directory as an uncompressed tar stream.

    Members are added in sorted path order with ownership cleared, so the
    same directory contents always produce the same archive bytes. The
    directory itself is not included, only what is inside it.
    """
    root = Path(directory)
    with tarfile.open(fileobj=out, mode="w|") as tar:
        for path in sorted(root.rglob("*")):
            tar.add(
                path,
                arcname=path.relative_to(root).as_posix(),
                recursive=False,
                filter=_normalize_member,
            )

