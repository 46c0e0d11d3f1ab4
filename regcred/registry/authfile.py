"""Read and write auth files.

Two on-disk shapes are supported:

* modern (``auth.json``, ``~/.docker/config.json``)::

      {"auths": {"example.org": {"auth": "<base64 user:pass>"}}}

* legacy (``~/.dockercfg``)::

      {"example.org": {"auth": "<base64 user:pass>"}}

Both are returned in the modern shape so callers only deal with one layout.
The base64 ``user:pass`` packing never leaves this module.
"""

from __future__ import annotations

import base64
import binascii
import json
import logging
import os
import tempfile
from importlib import resources
from pathlib import Path
from typing import Any

import jsonschema

from regcred.registry.context import CredentialEntry

logger = logging.getLogger(__name__)

_AUTH_SCHEMA = "auth.schema.json"
_LEGACY_AUTH_SCHEMA = "legacy-auth.schema.json"


class CredentialParseError(Exception):
    """Raised when an auth file cannot be parsed.

    The underlying ``json.JSONDecodeError``, ``jsonschema.ValidationError``
    or ``binascii.Error`` is available as ``__cause__``.
    """

    def __init__(self, message: str, path: Path | None = None) -> None:
        super().__init__(message)
        self.path = path


def _load_schema(schema_file: str) -> dict[str, Any]:
    """Load a JSON Schema file from the ``regcred.schemas`` package."""
    schema_ref = resources.files("regcred.schemas").joinpath(schema_file)
    schema_text = schema_ref.read_text(encoding="utf-8")
    return json.loads(schema_text)  # type: ignore[no-any-return]


def read_auth_file(path: Path, legacy_format: bool = False) -> dict[str, Any]:
    """Read an auth file into a modern-shaped document.

    Args:
        path: File to read.
        legacy_format: Parse *path* as a flat ``.dockercfg`` mapping.

    Returns:
        The parsed document with an ``auths`` mapping always present. A
        missing file yields ``{"auths": {}}``.

    Raises:
        CredentialParseError: If the file is not valid JSON or does not
            have the expected shape.
    """
    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return {"auths": {}}

    logger.debug("Reading auth file %s (legacy=%s)", path, legacy_format)
    try:
        data = json.loads(raw)
    except ValueError as exc:
        raise CredentialParseError(
            f"Error unmarshaling JSON at {str(path)!r}: {exc}", path
        ) from exc

    schema = _load_schema(_LEGACY_AUTH_SCHEMA if legacy_format else _AUTH_SCHEMA)
    try:
        jsonschema.validate(instance=data, schema=schema)
    except jsonschema.ValidationError as exc:
        raise CredentialParseError(
            f"Auth file {str(path)!r} has an unexpected layout: {exc.message}", path
        ) from exc

    if legacy_format:
        return {"auths": data}
    if data.get("auths") is None:
        data["auths"] = {}
    return data  # type: ignore[no-any-return]


def decode_auth(config: dict[str, Any], path: Path | None = None) -> CredentialEntry:
    """Decode one ``{"auth": ..., "identitytoken": ...}`` record.

    An ``auth`` value without a ``:`` separator is ignored, as docker does.

    Raises:
        CredentialParseError: If ``auth`` is not valid base64 text.
    """
    identity_token = config.get("identitytoken") or ""
    encoded = config.get("auth") or ""
    try:
        decoded = base64.b64decode(encoded, validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError) as exc:
        raise CredentialParseError(
            f"Invalid base64 credentials in {str(path)!r}: {exc}", path
        ) from exc

    if ":" not in decoded:
        return CredentialEntry(identity_token=identity_token)

    username, password = decoded.split(":", 1)
    return CredentialEntry(
        username=username,
        password=password.rstrip("\x00"),
        identity_token=identity_token,
    )


def encode_auth(username: str, password: str) -> dict[str, str]:
    """Pack *username* and *password* into an auth-file record."""
    creds = f"{username}:{password}".encode("utf-8")
    return {"auth": base64.b64encode(creds).decode("ascii")}


def write_auth_file(path: Path, document: dict[str, Any]) -> None:
    """Replace *path* with *document*, creating parent directories.

    The file is written to a temporary sibling and renamed into place, so
    readers see either the old or the new content. OS errors propagate.
    """
    path.parent.mkdir(mode=0o700, parents=True, exist_ok=True)
    data = json.dumps(document, indent="\t")

    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(data)
        os.chmod(tmp_name, 0o600)
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise
    logger.debug("Wrote auth file %s", path)
