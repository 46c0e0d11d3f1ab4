"""Normalize registry references into auth-file keys."""

from __future__ import annotations

# Hostnames that all address Docker Hub.
_DOCKER_HUB_ALIASES: dict[str, str] = {
    "index.docker.io": "docker.io",
    "registry-1.docker.io": "docker.io",
}

_SCHEMES = ("https://", "http://")


def convert_to_hostname(value: str) -> str:
    """Strip the scheme and any path from a registry reference.

    ``https://example.org/v1/`` becomes ``example.org``. Ports are kept.
    """
    for scheme in _SCHEMES:
        if value.startswith(scheme):
            value = value[len(scheme):]
            break
    return value.split("/", 1)[0]


def normalize_registry(value: str) -> str:
    """Return the canonical auth-file key for *value*.

    Applies :func:`convert_to_hostname`, then folds the Docker Hub index
    hostnames into ``docker.io``. The result is otherwise opaque: no case
    folding, no port stripping. Normalizing a normalized key is a no-op.

    Args:
        value: A hostname, ``host:port`` or URL as typed by a user or
            stored in an auth file.

    Returns:
        The normalized key.
    """
    hostname = convert_to_hostname(value)
    return _DOCKER_HUB_ALIASES.get(hostname, hostname)
