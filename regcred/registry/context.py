"""Inputs and outputs of credential resolution."""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any


@dataclass(frozen=True)
class CredentialEntry:
    """Decoded credentials for one registry.

    Attributes:
        username: Login name (may accompany an identity token).
        password: Plain-text password.
        identity_token: Opaque bearer token used instead of a password.
    """

    username: str = ""
    password: str = ""
    identity_token: str = ""

    @property
    def is_set(self) -> bool:
        """Return True when the entry carries usable credentials."""
        return bool((self.username and self.password) or self.identity_token)


@dataclass(frozen=True)
class ResolutionContext:
    """Everything that decides where credentials are looked up.

    Process state (environment, home directory, platform, uid) is captured
    here once so that the resolution functions never read it themselves.

    Attributes:
        auth_file_path: Explicit modern-format auth file.
        legacy_auth_file_path: Explicit legacy-format auth file.
        root_prefix: Prefix applied to the implicit ``/run/containers`` path.
        runtime_dir: Value of ``$XDG_RUNTIME_DIR``, if any.
        home_dir: The user's home directory.
        os_name: Platform identifier as in ``sys.platform``.
        uid: Numeric user id used in the per-uid default path.
        credentials: In-memory credentials that bypass every file.
    """

    auth_file_path: Path | None = None
    legacy_auth_file_path: Path | None = None
    root_prefix: Path | None = None
    runtime_dir: Path | None = None
    home_dir: Path = field(default_factory=Path.home)
    os_name: str = "linux"
    uid: int = 0
    credentials: CredentialEntry | None = None

    @classmethod
    def from_environment(cls, **overrides: Any) -> ResolutionContext:
        """Build a context from the current process state.

        Reads ``REGISTRY_AUTH_FILE``, ``XDG_RUNTIME_DIR``, the home directory,
        ``sys.platform`` and the current uid. Keyword arguments replace any of
        the resulting fields.
        """
        auth_file = os.environ.get("REGISTRY_AUTH_FILE")
        runtime_dir = os.environ.get("XDG_RUNTIME_DIR")
        fields: dict[str, Any] = {
            "auth_file_path": Path(auth_file) if auth_file else None,
            "runtime_dir": Path(runtime_dir) if runtime_dir else None,
            "os_name": sys.platform,
            "uid": os.getuid() if hasattr(os, "getuid") else 0,
        }
        fields.update(overrides)
        if "home_dir" not in fields:
            fields["home_dir"] = Path.home()
        return cls(**fields)
