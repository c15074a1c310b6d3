"""Data models for docker-load archives."""

from dataclasses import dataclass, field
from typing import Any, List

MANIFEST_FILENAME = "manifest.json"
LAYER_FILENAME = "layer.tar"


@dataclass
class ArchiveManifestEntry:
    """One image entry of an archive's manifest.json."""

    config: str = ""
    repo_tags: List[str] = field(default_factory=list)
    layers: List[str] = field(default_factory=list)  # Paths within the archive

    def to_dict(self) -> dict[str, Any]:
        return {
            "Config": self.config,
            "RepoTags": list(self.repo_tags),
            "Layers": list(self.layers),
        }

