"""Locate the primary auth file."""

from __future__ import annotations

from pathlib import Path

from regcred.registry.context import ResolutionContext

# Platforms that keep the auth file under the home directory.
_NON_LINUX = frozenset({"darwin", "win32", "windows"})

_XDG_RUNTIME_AUTH = Path("containers", "auth.json")
_NON_LINUX_AUTH = Path(".config", "containers", "auth.json")
_DOCKER_CONFIG = Path(".docker", "config.json")
_DOCKER_LEGACY_CONFIG = Path(".dockercfg")


class PathResolutionError(Exception):
    """Raised when the configured runtime directory does not exist."""


def _per_uid_path(uid: int) -> Path:
    return Path("run", "containers", str(uid), "auth.json")


def resolve_auth_path(context: ResolutionContext) -> tuple[Path, bool]:
    """Return the primary auth file path and whether it is in legacy format.

    Order of precedence:
    1. Explicit legacy-format path
    2. Explicit auth file path
    3. Linux: ``$XDG_RUNTIME_DIR/containers/auth.json`` when the runtime
       directory is set, otherwise ``<root>/run/containers/<uid>/auth.json``
    4. macOS / Windows: ``~/.config/containers/auth.json``

    The returned file need not exist.

    Raises:
        PathResolutionError: If the runtime directory is set but missing.
    """
    if context.legacy_auth_file_path is not None:
        return Path(context.legacy_auth_file_path), True
    if context.auth_file_path is not None:
        return Path(context.auth_file_path), False

    if context.os_name in _NON_LINUX:
        return Path(context.home_dir) / _NON_LINUX_AUTH, False

    if context.runtime_dir is not None:
        runtime_dir = Path(context.runtime_dir)
        if not runtime_dir.exists():
            raise PathResolutionError(
                f"{str(runtime_dir)!r} directory set by $XDG_RUNTIME_DIR does not exist. "
                "Either create the directory or unset $XDG_RUNTIME_DIR."
            )
        return runtime_dir / _XDG_RUNTIME_AUTH, False

    root = Path(context.root_prefix) if context.root_prefix else Path("/")
    return root / _per_uid_path(context.uid), False


def docker_config_path(context: ResolutionContext) -> Path:
    """Return ``~/.docker/config.json`` for the context's home directory."""
    return Path(context.home_dir) / _DOCKER_CONFIG


def docker_legacy_path(context: ResolutionContext) -> Path:
    """Return ``~/.dockercfg`` for the context's home directory."""
    return Path(context.home_dir) / _DOCKER_LEGACY_CONFIG
