from __future__ import annotations
"""Command line access to S3 listings, ranged reads and compression checks."""

import logging
import sys
from typing import Optional

import click

from .errors import DataIntegrityError, UsageError
from .models import Credential
from .profiles import CredentialProfile, ProfileStorage, credential_from_environment
from .services import S3AccessService
from .settings import SettingsStorage


LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def _configure_logging(verbose: bool, quiet: bool) -> None:
    level = logging.INFO
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.ERROR
    logging.basicConfig(level=level, format=LOG_FORMAT, stream=sys.stderr)


def _connection(ctx: click.Context) -> tuple[S3AccessService, str, Optional[Credential]]:
    """Return ``(service, region, credential)`` for the current invocation."""
    obj = ctx.obj
    region = obj["region"]
    profile_name = obj["profile"]
    if profile_name:
        try:
            profile = obj["profiles"].get(profile_name)
        except KeyError as exc:
            raise click.UsageError(str(exc.args[0]))
        credential = profile.credential()
        region = region or profile.region
    else:
        credential = obj["environment_credential"]()
    if "service" not in obj:
        service = obj["service_factory"](settings=obj["settings"].load())
        ctx.call_on_close(service.close)
        obj["service"] = service
    return obj["service"], region or "us-east-1", credential


@click.group()
@click.option("--settings", "settings_path", default=None, type=click.Path(dir_okay=False),
              help="Path of the JSON settings file.")
@click.option("--profile", default=None, type=str, help="Saved credential profile to use.")
@click.option("--region", default=None, type=str, help="Region of the bucket.")
@click.option("-v", "--verbose", is_flag=True, default=False)
@click.option("-q", "--quiet", is_flag=True, default=False)
@click.pass_context
def cli(
    ctx: click.Context,
    settings_path: Optional[str],
    profile: Optional[str],
    region: Optional[str],
    verbose: bool,
    quiet: bool,
) -> None:
    """Read external table data from an S3-compatible object store."""
    _configure_logging(verbose, quiet)
    ctx.ensure_object(dict)
    ctx.obj.setdefault("settings", SettingsStorage(settings_path))
    ctx.obj.setdefault("profiles", ProfileStorage())
    ctx.obj.setdefault("environment_credential", credential_from_environment)
    ctx.obj.setdefault("service_factory", S3AccessService)
    ctx.obj["profile"] = profile
    ctx.obj["region"] = region


@cli.command("ls")
@click.argument("bucket")
@click.option("--prefix", default="", type=str)
@click.option("--schema", default=None, type=click.Choice(["https", "http"]))
@click.pass_context
def list_command(ctx: click.Context, bucket: str, prefix: str, schema: Optional[str]) -> None:
    """List every non-empty object under PREFIX."""
    service, region, credential = _connection(ctx)
    if schema is None and ctx.obj["profile"]:
        schema = ctx.obj["profiles"].get(ctx.obj["profile"]).schema
    try:
        listing = service.list_objects(schema or "https", region, bucket, prefix, credential)
    except UsageError as exc:
        raise click.UsageError(str(exc))
    if listing is None:
        click.echo(f"Could not list s3://{bucket}/{prefix}", err=True)
        ctx.exit(1)
    for entry in listing:
        click.echo(f"{entry.size}\t{entry.key}")
    click.echo(f"{len(listing)} objects, {listing.total_size} bytes", err=True)


@cli.command("cat")
@click.argument("url")
@click.option("--offset", default=0, type=int)
@click.option("--length", required=True, type=int)
@click.option("-o", "--output", default="-", type=click.Path(dir_okay=False, allow_dash=True))
@click.pass_context
def cat_command(ctx: click.Context, url: str, offset: int, length: int, output: str) -> None:
    """Write LENGTH bytes of URL starting at OFFSET."""
    service, region, credential = _connection(ctx)
    try:
        data = service.fetch_range(offset, length, url, region, credential)
    except UsageError as exc:
        raise click.UsageError(str(exc))
    except DataIntegrityError as exc:
        click.echo(f"Read failed: {exc}", err=True)
        ctx.exit(1)
    with click.open_file(output, "wb") as stream:
        stream.write(data)


@cli.command("get")
@click.argument("url")
@click.option("--size", required=True, type=int, help="Object size in bytes.")
@click.option("--chunk-size", default=None, type=int)
@click.option("--workers", default=None, type=int)
@click.option("-o", "--output", default="-", type=click.Path(dir_okay=False, allow_dash=True))
@click.pass_context
def get_command(
    ctx: click.Context,
    url: str,
    size: int,
    chunk_size: Optional[int],
    workers: Optional[int],
    output: str,
) -> None:
    """Read a whole object as parallel ranged fetches."""
    service, region, credential = _connection(ctx)
    try:
        data = service.fetch_object(url, region, credential, size, chunk_size=chunk_size, workers=workers)
    except UsageError as exc:
        raise click.UsageError(str(exc))
    except DataIntegrityError as exc:
        click.echo(f"Read failed: {exc}", err=True)
        ctx.exit(1)
    with click.open_file(output, "wb") as stream:
        stream.write(data)


@cli.command("sniff")
@click.argument("url")
@click.pass_context
def sniff_command(ctx: click.Context, url: str) -> None:
    """Print whether URL holds plain or gzip data."""
    service, region, credential = _connection(ctx)
    try:
        compression = service.detect_compression(url, region, credential)
    except DataIntegrityError as exc:
        click.echo(f"Compression check failed: {exc}", err=True)
        ctx.exit(1)
    click.echo(compression.value)


@cli.group("profile")
def profile_group() -> None:
    """Manage saved credential profiles."""


@profile_group.command("add")
@click.argument("name")
@click.option("--region", required=True, type=str)
@click.option("--access-key", required=True, type=str)
@click.option("--secret-key", required=True, type=str)
@click.option("--schema", default="https", type=click.Choice(["https", "http"]))
@click.option("--session-token", default="", type=str, help="Session token of temporary credentials.")
@click.pass_context
def profile_add(
    ctx: click.Context,
    name: str,
    region: str,
    access_key: str,
    secret_key: str,
    schema: str,
    session_token: str,
) -> None:
    """Create or replace profile NAME."""
    ctx.obj["profiles"].upsert(
        CredentialProfile(
            name=name,
            region=region,
            access_key=access_key,
            secret_key=secret_key,
            schema=schema,
            session_token=session_token,
        )
    )
    click.echo(f"Saved profile {name}")


@profile_group.command("list")
@click.pass_context
def profile_list(ctx: click.Context) -> None:
    """Show saved profiles without their secrets."""
    for profile in ctx.obj["profiles"].load():
        click.echo(f"{profile.name}\t{profile.region}\t{profile.schema}\t{profile.access_key}")


@profile_group.command("remove")
@click.argument("name")
@click.pass_context
def profile_remove(ctx: click.Context, name: str) -> None:
    """Delete profile NAME and its stored secret."""
    try:
        ctx.obj["profiles"].remove(name)
    except KeyError as exc:
        raise click.UsageError(str(exc.args[0]))
    click.echo(f"Removed profile {name}")


def main() -> None:
    cli(prog_name="s3-access")
