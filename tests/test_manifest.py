"""Tests for the manifest model."""

import json

import pytest

from registry_image_tools.exceptions import ManifestError
from registry_image_tools.manifest import (
    MEDIA_TYPE_DOCKER_MANIFEST,
    MEDIA_TYPE_OCI_INDEX,
    MEDIA_TYPE_OCI_MANIFEST,
    Descriptor,
    Manifest,
)

from .helpers import encode_json, make_manifest, sha256_digest


@pytest.fixture
def manifest_bytes():
    return encode_json(make_manifest(b'{"os":"linux"}', [b"layer-one", b"layer-two"]))


def test_manifest_exposes_config_and_ordered_layers(manifest_bytes):
    """Test config descriptor and layer order."""
    manifest = Manifest(manifest_bytes, MEDIA_TYPE_DOCKER_MANIFEST)

    config = manifest.config_descriptor()
    assert config.digest == sha256_digest(b'{"os":"linux"}')
    assert config.size == len(b'{"os":"linux"}')

    layers = manifest.layers()
    assert [layer.digest for layer in layers] == [
        sha256_digest(b"layer-one"),
        sha256_digest(b"layer-two"),
    ]


def test_manifest_keeps_raw_bytes(manifest_bytes):
    """Test raw bytes and digest are preserved for re-pushing."""
    # Pretty printed manifests must keep their exact bytes
    pretty = json.dumps(json.loads(manifest_bytes), indent=3).encode()
    manifest = Manifest(pretty)

    assert manifest.raw == pretty
    assert manifest.digest == sha256_digest(pretty)
    assert manifest.media_type == MEDIA_TYPE_DOCKER_MANIFEST


def test_manifest_without_media_type_defaults_to_oci():
    """Test OCI manifests may omit mediaType."""
    data = make_manifest(b"{}", [])
    del data["mediaType"]
    manifest = Manifest(encode_json(data))
    assert manifest.media_type == MEDIA_TYPE_OCI_MANIFEST
    assert manifest.layers() == []


def test_manifest_list_rejected():
    """Test manifest lists are refused."""
    index = {"schemaVersion": 2, "mediaType": MEDIA_TYPE_OCI_INDEX, "manifests": []}
    with pytest.raises(ManifestError, match="not supported"):
        Manifest(encode_json(index), MEDIA_TYPE_OCI_INDEX)


@pytest.mark.parametrize(
    "raw",
    [b"not json", b"[1, 2]", b'{"schemaVersion": 1, "fsLayers": []}'],
)
def test_invalid_manifests(raw):
    """Test undecodable or unsupported manifests."""
    with pytest.raises(ManifestError):
        Manifest(raw)


def test_missing_config_and_layers():
    """Test structural errors surface when accessed."""
    manifest = Manifest(b'{"schemaVersion": 2}')
    with pytest.raises(ManifestError, match="config"):
        manifest.config_descriptor()
    with pytest.raises(ManifestError, match="layer"):
        manifest.layers()


@pytest.mark.parametrize("size", [None, "large", [1]])
def test_descriptor_rejects_bad_size(size):
    """Test malformed sizes surface as ManifestError."""
    data = make_manifest(b"{}", [])
    data["config"]["size"] = size
    manifest = Manifest(encode_json(data))
    with pytest.raises(ManifestError, match="Invalid size"):
        manifest.config_descriptor()


def test_descriptor_rejects_bad_digest():
    """Test descriptors validate their digest."""
    with pytest.raises(ManifestError, match="Invalid digest"):
        Descriptor.from_dict({"digest": "sha256:nothex", "size": 1})
