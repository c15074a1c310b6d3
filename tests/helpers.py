"""Test helpers for building images and isolating integration runs."""

import gzip
import hashlib
import io
import json
import os
import tarfile
import time
import uuid

from registry_image_tools.manifest import (
    MEDIA_TYPE_DOCKER_CONFIG,
    MEDIA_TYPE_DOCKER_MANIFEST,
)

LAYER_MEDIA_TYPE = "application/vnd.docker.image.rootfs.diff.tar.gzip"
CREATED = "2024-01-15T10:30:45.123456789Z"


def sha256_digest(data: bytes) -> str:
    return f"sha256:{hashlib.sha256(data).hexdigest()}"


def make_layer_tar(files: dict[str, bytes]) -> bytes:
    """Create an uncompressed layer tar containing the given files."""
    buffer = io.BytesIO()
    with tarfile.open(fileobj=buffer, mode="w") as tar:
        for name, content in files.items():
            info = tarfile.TarInfo(name)
            info.size = len(content)
            info.mtime = 1700000000
            tar.addfile(info, fileobj=io.BytesIO(content))
    return buffer.getvalue()


def compress_layer(layer_tar: bytes) -> bytes:
    return gzip.compress(layer_tar, mtime=0)


def make_config(created: str = CREATED, diff_ids: list[str] | None = None) -> dict:
    return {
        "architecture": "amd64",
        "os": "linux",
        "created": created,
        "config": {
            "Cmd": ["/bin/sh"],
            "Env": ["PATH=/usr/local/sbin:/usr/local/bin:/usr/sbin:/usr/bin:/sbin:/bin"],
            "WorkingDir": "/app",
            "Labels": {"maintainer": "test@example.com"},
        },
        "rootfs": {
            "type": "layers",
            # Registries often hold configs whose diff_ids are stale or
            # compressed digests; export must replace them
            "diff_ids": diff_ids if diff_ids is not None else ["sha256:" + "0" * 64],
        },
    }


def make_manifest(config_blob: bytes, layer_blobs: list[bytes]) -> dict:
    return {
        "schemaVersion": 2,
        "mediaType": MEDIA_TYPE_DOCKER_MANIFEST,
        "config": {
            "mediaType": MEDIA_TYPE_DOCKER_CONFIG,
            "size": len(config_blob),
            "digest": sha256_digest(config_blob),
        },
        "layers": [
            {
                "mediaType": LAYER_MEDIA_TYPE,
                "size": len(blob),
                "digest": sha256_digest(blob),
            }
            for blob in layer_blobs
        ],
    }


def encode_json(data: dict) -> bytes:
    return json.dumps(data, separators=(",", ":")).encode("utf-8")


def read_archive(data: bytes) -> dict[str, tarfile.TarInfo]:
    """Index an exported archive's members by name."""
    with tarfile.open(fileobj=io.BytesIO(data), mode="r") as tar:
        return {member.name: member for member in tar.getmembers()}


def read_archive_file(data: bytes, name: str) -> bytes:
    with tarfile.open(fileobj=io.BytesIO(data), mode="r") as tar:
        member = tar.extractfile(name)
        assert member is not None, f"{name} missing from archive"
        return member.read()


def generate_test_id() -> str:
    """Generate unique test identifier."""
    timestamp = int(time.time() * 1000) % 10000  # Last 4 digits of ms timestamp
    uuid_part = str(uuid.uuid4())[:8]
    worker_id = os.getenv("PYTEST_XDIST_WORKER", "main")
    return f"{worker_id}-{timestamp}-{uuid_part}"


def make_repo_name(base_name: str, test_id: str) -> str:
    """Create isolated repository name."""
    return f"test-{test_id}-{base_name}"
