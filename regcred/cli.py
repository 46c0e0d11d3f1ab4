"""CLI entry point for regcred."""

from __future__ import annotations

import json
import logging
import sys
from dataclasses import asdict, replace
from pathlib import Path

import click

from regcred.registry.auth import (
    LegacyFormatWriteError,
    NotLoggedInError,
    get_all_credentials,
    lookup_credentials,
    remove_all_authentication,
    remove_authentication,
    set_authentication,
)
from regcred.registry.authfile import CredentialParseError
from regcred.registry.context import CredentialEntry, ResolutionContext
from regcred.registry.hostname import normalize_registry
from regcred.registry.paths import PathResolutionError, resolve_auth_path

logger = logging.getLogger(__name__)

# Library errors reported as a plain CLI failure.
_CREDENTIAL_ERRORS = (
    PathResolutionError,
    CredentialParseError,
    NotLoggedInError,
    LegacyFormatWriteError,
)


def _auth_override(auths: tuple[str, ...], registry: str) -> CredentialEntry | None:
    """Pick the ``registry=user:pass`` override matching *registry*, if any."""
    wanted = normalize_registry(registry)
    for auth_override in auths:
        if "=" not in auth_override:
            raise click.BadParameter(
                f"Expected registry=user:pass, got '{auth_override}'",
                param_hint="--auth",
            )
        domain, creds = auth_override.split("=", 1)
        if normalize_registry(domain) == wanted and ":" in creds:
            user, pwd = creds.split(":", 1)
            logger.debug("Using CLI override credentials for %s", registry)
            return CredentialEntry(username=user, password=pwd)
    return None


@click.group()
@click.version_option(package_name="regcred")
@click.option(
    "-v",
    "--verbose",
    is_flag=True,
    default=False,
    help="Enable verbose (DEBUG) logging.",
)
@click.option(
    "--authfile",
    type=click.Path(dir_okay=False, path_type=Path),
    envvar="REGISTRY_AUTH_FILE",
    help="Path of the auth file. Also read from $REGISTRY_AUTH_FILE.",
)
@click.option(
    "--legacy-authfile",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Path of a legacy (.dockercfg format) auth file. Read-only.",
)
@click.option(
    "--root",
    "root_prefix",
    type=click.Path(file_okay=False, path_type=Path),
    help="Prefix for the default /run/containers/<uid>/auth.json path.",
)
@click.pass_context
def main(
    ctx: click.Context,
    verbose: bool,
    authfile: Path | None,
    legacy_authfile: Path | None,
    root_prefix: Path | None,
) -> None:
    """regcred — container registry credential resolver."""
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )
    ctx.obj = ResolutionContext.from_environment(
        auth_file_path=authfile,
        legacy_auth_file_path=legacy_authfile,
        root_prefix=root_prefix,
    )


@main.command(name="path")
@click.pass_obj
def show_path(context: ResolutionContext) -> None:
    """Print the auth file used for reads and writes."""
    try:
        path, legacy_format = resolve_auth_path(context)
    except PathResolutionError as exc:
        raise click.ClickException(str(exc)) from exc
    fmt = "legacy" if legacy_format else "auths"
    click.echo(f"{path} ({fmt})")


@main.command()
@click.argument("registry")
@click.option(
    "--json",
    "as_json",
    is_flag=True,
    help="Print the whole entry as JSON, including the secret.",
)
@click.option(
    "--auth",
    "auth",
    multiple=True,
    help="Credentials in registry.domain=user:pass format. Can be repeated.",
)
@click.pass_obj
def get(
    context: ResolutionContext,
    registry: str,
    as_json: bool,
    auth: tuple[str, ...],
) -> None:
    """Print the username stored for REGISTRY.

    REGISTRY can be a hostname, host:port or URL (e.g. https://docker.io/v1).
    """
    override = _auth_override(auth, registry)
    if override is not None:
        context = replace(context, credentials=override)

    try:
        resolved = lookup_credentials(context, registry)
    except _CREDENTIAL_ERRORS as exc:
        raise click.ClickException(str(exc)) from exc

    if not resolved.entry.is_set:
        raise click.ClickException(f"not logged into {registry}")

    if as_json:
        payload = {
            **asdict(resolved.entry),
            "source": str(resolved.path) if resolved.path else None,
            "legacy_format": resolved.legacy_format,
        }
        click.echo(json.dumps(payload, indent=2))
    else:
        click.echo(resolved.entry.username)


@main.command()
@click.argument("registry")
@click.option("-u", "--username", prompt=True, help="Registry username.")
@click.option("-p", "--password", help="Registry password. Prompted when omitted.")
@click.option(
    "--password-stdin",
    is_flag=True,
    help="Read the password from standard input.",
)
@click.pass_obj
def login(
    context: ResolutionContext,
    registry: str,
    username: str,
    password: str | None,
    password_stdin: bool,
) -> None:
    """Store credentials for REGISTRY in the auth file."""
    if password_stdin:
        if password is not None:
            raise click.UsageError("--password and --password-stdin are mutually exclusive")
        password = click.get_text_stream("stdin").read().rstrip("\r\n")
    elif password is None:
        password = click.prompt("Password", hide_input=True)

    if not password:
        raise click.UsageError("password must not be empty")

    try:
        set_authentication(context, registry, username, password)
    except _CREDENTIAL_ERRORS as exc:
        raise click.ClickException(str(exc)) from exc
    click.echo("Login Succeeded!", err=True)


@main.command()
@click.argument("registry", required=False)
@click.option("-a", "--all", "remove_all", is_flag=True, help="Remove every stored credential.")
@click.pass_obj
def logout(context: ResolutionContext, registry: str | None, remove_all: bool) -> None:
    """Remove the credentials stored for REGISTRY."""
    if remove_all == bool(registry):
        raise click.UsageError("Specify either a REGISTRY or --all")

    try:
        if remove_all:
            remove_all_authentication(context)
            click.echo("Removed login credentials for all registries", err=True)
        else:
            remove_authentication(context, registry)
            click.echo(f"Removed login credentials for {registry}", err=True)
    except _CREDENTIAL_ERRORS as exc:
        raise click.ClickException(str(exc)) from exc


@main.command(name="list")
@click.option("--json", "as_json", is_flag=True, help="Print usernames as a JSON object.")
@click.pass_obj
def list_credentials(context: ResolutionContext, as_json: bool) -> None:
    """List every registry stored in the auth file."""
    try:
        entries = get_all_credentials(context)
    except _CREDENTIAL_ERRORS as exc:
        raise click.ClickException(str(exc)) from exc

    if as_json:
        click.echo(
            json.dumps({key: entry.username for key, entry in sorted(entries.items())}, indent=2)
        )
        return

    if not entries:
        click.echo("No credentials stored.")
        return

    for key, entry in sorted(entries.items()):
        user = entry.username or "<identity token>"
        click.echo(f"  {key:30s}  {user}")


if __name__ == "__main__":
    main()
