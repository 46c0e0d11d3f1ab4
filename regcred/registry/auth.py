"""Credential resolution for container registries."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from regcred.registry.authfile import (
    decode_auth,
    encode_auth,
    read_auth_file,
    write_auth_file,
)
from regcred.registry.context import CredentialEntry, ResolutionContext
from regcred.registry.hostname import normalize_registry
from regcred.registry.paths import (
    docker_config_path,
    docker_legacy_path,
    resolve_auth_path,
)

logger = logging.getLogger(__name__)


class NotLoggedInError(Exception):
    """Raised when removing credentials that are not stored."""


class LegacyFormatWriteError(Exception):
    """Raised when a write targets a legacy-format auth file."""


class UnsupportedCredentialsError(Exception):
    """Raised when an identity token is requested as username/password."""


@dataclass(frozen=True)
class ResolvedCredentials:
    """Credentials together with the source they were found in.

    Attributes:
        entry: The credentials (empty when nothing matched).
        path: File the entry was read from, ``None`` for in-memory
            credentials or when nothing matched.
        legacy_format: Whether *path* is a legacy ``.dockercfg`` file.
    """

    entry: CredentialEntry
    path: Path | None = None
    legacy_format: bool = False


_Lookup = Callable[[ResolutionContext, str], "ResolvedCredentials | None"]


def _find_in_auths(
    auths: dict[str, Any], registry: str, path: Path | None = None
) -> CredentialEntry:
    """Look *registry* up in an ``auths`` mapping.

    Both sides are normalized and compared exactly. Keys that normalize to
    the same host resolve to the last one in the file.
    """
    normalized = {normalize_registry(key): value for key, value in auths.items()}
    wanted = normalize_registry(registry)
    if wanted in normalized:
        return decode_auth(normalized[wanted], path)
    return CredentialEntry()


def _file_lookup(
    path: Path, legacy_format: bool, registry: str
) -> ResolvedCredentials | None:
    document = read_auth_file(path, legacy_format)
    entry = _find_in_auths(document["auths"], registry, path)
    if not entry.is_set:
        return None
    return ResolvedCredentials(entry, path, legacy_format)


def _from_context(context: ResolutionContext, registry: str) -> ResolvedCredentials | None:
    if context.credentials is None:
        return None
    return ResolvedCredentials(context.credentials)


def _from_auth_file(context: ResolutionContext, registry: str) -> ResolvedCredentials | None:
    path, legacy_format = resolve_auth_path(context)
    return _file_lookup(path, legacy_format, registry)


def _from_docker_config(context: ResolutionContext, registry: str) -> ResolvedCredentials | None:
    return _file_lookup(docker_config_path(context), False, registry)


def _from_dockercfg(context: ResolutionContext, registry: str) -> ResolvedCredentials | None:
    return _file_lookup(docker_legacy_path(context), True, registry)


# Evaluated in order; the first source that yields credentials wins.
_LOOKUPS: tuple[_Lookup, ...] = (
    _from_context,
    _from_auth_file,
    _from_docker_config,
    _from_dockercfg,
)


def lookup_credentials(context: ResolutionContext, registry: str) -> ResolvedCredentials:
    """Resolve credentials for *registry* and report where they came from.

    Order of precedence:
    1. In-memory credentials on the context
    2. The primary auth file (see :func:`resolve_auth_path`)
    3. ``~/.docker/config.json``
    4. ``~/.dockercfg``

    Args:
        context: Resolution inputs.
        registry: Hostname, ``host:port`` or URL of the registry.

    Returns:
        The first match, or an empty entry when no source has credentials.

    Raises:
        PathResolutionError: If the runtime directory is set but missing.
        CredentialParseError: If a consulted file is malformed. Lower
            precedence files are not tried.
    """
    for lookup in _LOOKUPS:
        found = lookup(context, registry)
        if found is not None:
            logger.debug(
                "Using credentials for %s from %s",
                registry,
                found.path or "the resolution context",
            )
            return found

    logger.debug("No credentials found for %s", registry)
    return ResolvedCredentials(CredentialEntry())


def get_credentials(context: ResolutionContext, registry: str) -> CredentialEntry:
    """Return the credentials stored for *registry* (empty if none)."""
    return lookup_credentials(context, registry).entry


def get_authentication(context: ResolutionContext, registry: str) -> tuple[str, str]:
    """Return ``(username, password)`` for *registry*.

    Raises:
        UnsupportedCredentialsError: If the stored credentials are an
            identity token.
    """
    entry = get_credentials(context, registry)
    if entry.identity_token:
        raise UnsupportedCredentialsError(
            f"Non-empty identity token found for {registry} and this API doesn't support it"
        )
    return entry.username, entry.password


def _iter_aliases(auths: dict[str, Any], registry: str) -> Iterator[str]:
    """Yield every stored key that normalizes to the same host as *registry*."""
    wanted = normalize_registry(registry)
    for key in list(auths):
        if normalize_registry(key) == wanted:
            yield key


def _modify(
    context: ResolutionContext, editor: Callable[[dict[str, Any]], None]
) -> Path:
    """Read-modify-write the primary auth file.

    Not locked: concurrent writers race and the last one wins.
    """
    path, legacy_format = resolve_auth_path(context)
    if legacy_format:
        raise LegacyFormatWriteError(
            f"Writes to {path} using legacy format are not supported"
        )
    document = read_auth_file(path)
    editor(document["auths"])
    write_auth_file(path, document)
    return path


def set_authentication(
    context: ResolutionContext, registry: str, username: str, password: str
) -> None:
    """Store *username* and *password* for *registry* in the primary auth file.

    Entries whose key normalizes to the same host are replaced, so
    ``index.docker.io`` and ``docker.io`` never hold diverging credentials.

    Raises:
        PathResolutionError: If the runtime directory is set but missing.
        CredentialParseError: If the existing file is malformed.
        LegacyFormatWriteError: If the auth file is in legacy format.
    """

    def _set(auths: dict[str, Any]) -> None:
        for key in list(_iter_aliases(auths, registry)):
            del auths[key]
        auths[normalize_registry(registry)] = encode_auth(username, password)

    path = _modify(context, _set)
    logger.debug("Stored credentials for %s in %s", registry, path)


def remove_authentication(context: ResolutionContext, registry: str) -> None:
    """Remove the stored credentials for *registry*.

    Raises:
        NotLoggedInError: If neither the raw nor the normalized key exists.
    """

    def _remove(auths: dict[str, Any]) -> None:
        normalized = normalize_registry(registry)
        if registry in auths:
            del auths[registry]
        elif normalized in auths:
            del auths[normalized]
        else:
            raise NotLoggedInError(f"Not logged into {registry}")

    _modify(context, _remove)


def remove_all_authentication(context: ResolutionContext) -> None:
    """Remove every credential from the primary auth file."""
    _modify(context, dict.clear)


def get_all_credentials(context: ResolutionContext) -> dict[str, CredentialEntry]:
    """Return every entry of the primary auth file, keyed as stored.

    ``~/.docker/config.json`` and ``~/.dockercfg`` are not consulted.
    """
    path, legacy_format = resolve_auth_path(context)
    auths = read_auth_file(path, legacy_format)["auths"]
    return {key: decode_auth(value, path) for key, value in auths.items()}
