"""Image reference parsing."""

import re
from dataclasses import dataclass

from ..exceptions import InvalidReferenceError
from ..utils.digest import validate_digest
from .types import DOCKER_HUB_API_HOST, DOCKER_HUB_REGISTRY

DEFAULT_TAG = "latest"

_PATH_COMPONENT = re.compile(r"^[a-z0-9]+(?:(?:[._]|__|-+)[a-z0-9]+)*$")
_TAG_PATTERN = re.compile(r"^[A-Za-z0-9_][A-Za-z0-9_.-]{0,127}$")


@dataclass(frozen=True)
class Reference:
    """A parsed image reference: registry, repository and tag and/or digest."""

    registry: str
    repository: str
    tag: str = ""
    digest: str = ""

    @property
    def manifest_reference(self) -> str:
        """Tag or digest used to address the manifest (digest wins)."""
        return self.digest or self.tag

    def common_name(self) -> str:
        """Return the human readable ``name:tag`` form, or "" without a tag.

        Docker Hub images drop the registry and the ``library/`` prefix,
        matching the names ``docker images`` shows.
        """
        if not self.tag:
            return ""
        if self.registry == DOCKER_HUB_REGISTRY:
            repository = self.repository.removeprefix("library/")
            return f"{repository}:{self.tag}"
        return f"{self.registry}/{self.repository}:{self.tag}"

    def __str__(self) -> str:
        name = f"{self.registry}/{self.repository}"
        if self.tag:
            name += f":{self.tag}"
        if self.digest:
            name += f"@{self.digest}"
        return name


def _is_registry_host(component: str) -> bool:
    return "." in component or ":" in component or component == "localhost"


def parse_reference(reference: str) -> Reference:
    """Parse an image reference string.

    Args:
        reference: Reference such as "nginx", "nginx:alpine",
            "localhost:5000/team/app:v1" or "ghcr.io/org/app@sha256:..."

    Returns:
        Reference with Docker Hub defaults applied

    Raises:
        InvalidReferenceError: If the reference is malformed

    Examples:
        >>> parse_reference("nginx")
        Reference(registry='docker.io', repository='library/nginx', tag='latest', digest='')
    """
    if not reference or reference != reference.strip():
        raise InvalidReferenceError(f"Invalid reference: {reference!r}")

    remainder = reference
    digest = ""
    if "@" in remainder:
        remainder, digest = remainder.split("@", 1)
        if not validate_digest(digest):
            raise InvalidReferenceError(f"Invalid digest in reference: {reference}")

    tag = ""
    last_slash = remainder.rfind("/")
    last_colon = remainder.rfind(":")
    if last_colon > last_slash:
        remainder, tag = remainder[:last_colon], remainder[last_colon + 1 :]
        if not _TAG_PATTERN.match(tag):
            raise InvalidReferenceError(f"Invalid tag in reference: {reference}")

    parts = remainder.split("/")
    if len(parts) > 1 and _is_registry_host(parts[0]):
        registry, path = parts[0], parts[1:]
    else:
        registry, path = DOCKER_HUB_REGISTRY, parts

    if registry in ("index.docker.io", DOCKER_HUB_API_HOST):
        registry = DOCKER_HUB_REGISTRY
    if registry == DOCKER_HUB_REGISTRY and len(path) == 1:
        path = ["library", *path]

    if not path or not all(_PATH_COMPONENT.match(part) for part in path):
        raise InvalidReferenceError(f"Invalid repository name in reference: {reference}")

    if not tag and not digest:
        tag = DEFAULT_TAG

    return Reference(registry=registry, repository="/".join(path), tag=tag, digest=digest)
