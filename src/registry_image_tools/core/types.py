"""Core data types shared by the client and the image operations."""

import os
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

DOCKER_HUB_REGISTRY = "docker.io"
DOCKER_HUB_API_HOST = "registry-1.docker.io"

# Hosts that are always reached over plain HTTP
LOCAL_HOSTS = ("localhost", "127.0.0.1", "[::1]")


class IntegrityPolicy(str, Enum):
    """What to do when downloaded content does not match its declared digest."""

    WARN = "warn"
    STRICT = "strict"


def _parse_host_list(value: str) -> frozenset[str]:
    return frozenset(host.strip() for host in value.split(",") if host.strip())


@dataclass(frozen=True)
class RegistryConfig:
    """Client settings applied to every registry the client talks to.

    Args:
        timeout: Seconds allowed to connect and between reads of a response
        chunk_size: Upload chunk size in bytes
        read_chunk_size: Download chunk size in bytes
        plain_http: Registry hosts reached over ``http://`` instead of ``https://``
        verify: Integrity policy for downloaded blobs
    """

    timeout: int = 300
    chunk_size: int = 5 * 1024 * 1024
    read_chunk_size: int = 64 * 1024
    plain_http: frozenset[str] = field(default_factory=frozenset)
    verify: IntegrityPolicy = IntegrityPolicy.WARN

    def __post_init__(self) -> None:
        if self.timeout <= 0:
            raise ValueError(f"timeout must be positive, got {self.timeout}")
        if self.chunk_size <= 0 or self.read_chunk_size <= 0:
            raise ValueError("chunk sizes must be positive")

    @classmethod
    def from_env(cls, **overrides: Any) -> "RegistryConfig":
        """Build a configuration from ``REGISTRY_*`` environment variables.

        Recognized variables: ``REGISTRY_TIMEOUT``, ``REGISTRY_PLAIN_HTTP``
        (comma separated hosts) and ``REGISTRY_VERIFY`` (``warn`` or ``strict``).
        Keyword overrides that are not ``None`` win over the environment.
        """
        values: dict[str, Any] = {}
        if os.getenv("REGISTRY_TIMEOUT"):
            values["timeout"] = int(os.environ["REGISTRY_TIMEOUT"])
        if os.getenv("REGISTRY_PLAIN_HTTP"):
            values["plain_http"] = _parse_host_list(os.environ["REGISTRY_PLAIN_HTTP"])
        if os.getenv("REGISTRY_VERIFY"):
            values["verify"] = IntegrityPolicy(os.environ["REGISTRY_VERIFY"].lower())

        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)

    def is_plain_http(self, registry: str) -> bool:
        if registry.startswith("["):
            host = registry.split("]", 1)[0] + "]"
        else:
            host = registry.split(":", 1)[0]
        return registry in self.plain_http or host in LOCAL_HOSTS

    def base_url(self, registry: str) -> str:
        """Map a registry host to the base URL of its API."""
        if registry == DOCKER_HUB_REGISTRY:
            registry = DOCKER_HUB_API_HOST
        scheme = "http" if self.is_plain_http(registry) else "https"
        return f"{scheme}://{registry}"


@dataclass
class RequestResult:
    """Status and headers of a finished HTTP request."""

    status_code: int
    headers: dict[str, str]
