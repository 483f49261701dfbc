"""
ZureBlob Command-Line Interface

Upload, download, list and delete blobs, and generate shared access URLs.

Author: ZureBlob Team
Date: 2026-10-19
"""

import sys
import logging
from pathlib import Path
from typing import Optional

import click

from zureblob import __version__
from zureblob.blob.client import BlobClient
from zureblob.core.config_manager import ConfigManager
from zureblob.core.logging_config import setup_logging
from zureblob.exceptions import StorageError

logger = logging.getLogger("zureblob.cli")


def _client(ctx: click.Context) -> BlobClient:
    """Build (once) the client for the loaded configuration."""
    if "client" not in ctx.obj:
        ctx.obj["client"] = BlobClient.from_config(ctx.obj["config"], transport=ctx.obj.get("transport"))
    return ctx.obj["client"]


def _fail(error: Exception) -> None:
    click.echo(f"[ERROR] {error}", err=True)
    sys.exit(1)


@click.group()
@click.version_option(version=__version__, prog_name="zureblob")
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Path to configuration file",
)
@click.option(
    "--log-level",
    default=None,
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"], case_sensitive=False),
    help="Logging level",
)
@click.pass_context
def cli(ctx, config: Optional[Path], log_level: Optional[str]):
    """
    ZureBlob - Blob Storage Client

    Account settings come from the configuration file and ZUREBLOB_*
    environment variables; the local emulator account is used by default.
    """
    ctx.ensure_object(dict)

    overrides = {"logging": {"level": log_level.upper()}} if log_level else None
    try:
        loaded = ConfigManager().load(str(config) if config else None, overrides)
    except (ValueError, FileNotFoundError) as e:
        _fail(e)

    setup_logging(
        loaded.logging.level,
        loaded.logging.format,
        loaded.logging.file,
        loaded.logging.rotation_size,
        loaded.logging.rotation_count,
        loaded.logging.module_levels,
    )
    ctx.obj["config"] = loaded
    ctx.call_on_close(lambda: ctx.obj["client"].close() if "client" in ctx.obj else None)


@cli.command()
@click.argument("container")
@click.argument("blob")
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--content-type", default=None, help="Content type stored with the blob")
@click.option("--create-container", is_flag=True, help="Create the container if it does not exist")
@click.pass_context
def put(ctx, container: str, blob: str, file: Path, content_type: Optional[str], create_container: bool):
    """
    Upload FILE as CONTAINER/BLOB.

    Examples:
        zureblob put photos cat.jpg ./cat.jpg
        zureblob put photos 2026/cat.jpg ./cat.jpg --content-type image/jpeg
    """
    try:
        client = _client(ctx)
        if create_container:
            client.create_container_if_not_exists(container)
        result = client.put_blob(container, blob, str(file), content_type=content_type)
    except StorageError as e:
        _fail(e)
    click.echo(f"[OK] Uploaded {result.size} bytes to {container}/{blob} (etag {result.etag})")


@cli.command()
@click.argument("container")
@click.argument("blob")
@click.argument("file", type=click.Path(dir_okay=False, path_type=Path))
@click.pass_context
def get(ctx, container: str, blob: str, file: Path):
    """Download CONTAINER/BLOB into FILE."""
    try:
        _client(ctx).get_blob(container, blob, str(file))
    except (StorageError, OSError) as e:
        _fail(e)
    click.echo(f"[OK] Downloaded {container}/{blob} to {file}")


@cli.command(name="ls")
@click.argument("container", required=False)
@click.option("--prefix", default=None, help="Only names beginning with this prefix")
@click.option("--delimiter", default=None, help="Group names into virtual directories")
@click.option("--max-results", type=int, default=None, help="Maximum number of entries")
@click.pass_context
def list_command(ctx, container: Optional[str], prefix: Optional[str], delimiter: Optional[str],
                 max_results: Optional[int]):
    """
    List blobs in CONTAINER, or the containers of the account.

    Examples:
        zureblob ls
        zureblob ls photos --prefix 2026/ --delimiter /
    """
    try:
        client = _client(ctx)
        if container is None:
            for entry in client.list_containers(prefix=prefix, max_results=max_results):
                click.echo(entry.name)
            return
        for blob in client.list_blobs(container, prefix=prefix, delimiter=delimiter, max_results=max_results):
            if blob.is_prefix:
                click.echo(f"{'<DIR>':>12}  {blob.name}")
            else:
                click.echo(f"{blob.size:>12}  {blob.name}")
    except StorageError as e:
        _fail(e)


@cli.command(name="rm")
@click.argument("container")
@click.argument("blob")
@click.pass_context
def remove(ctx, container: str, blob: str):
    """Delete CONTAINER/BLOB."""
    try:
        _client(ctx).delete_blob(container, blob)
    except StorageError as e:
        _fail(e)
    click.echo(f"[OK] Deleted {container}/{blob}")


@cli.command()
@click.argument("container")
@click.argument("blob", required=False, default="")
@click.option("--expiry", required=True, help="ISO 8601 expiry time, e.g. 2026-12-31T00:00:00Z")
@click.option("--start", default="", help="ISO 8601 start time")
@click.option("--permissions", default="r", show_default=True, help="Any of r, w, d, l")
@click.option(
    "--resource",
    default="b",
    type=click.Choice(["b", "c"]),
    show_default=True,
    help="b for a blob, c for the whole container",
)
@click.pass_context
def sas(ctx, container: str, blob: str, expiry: str, start: str, permissions: str, resource: str):
    """
    Print a shared access URL for CONTAINER[/BLOB].

    Examples:
        zureblob sas photos cat.jpg --expiry 2026-12-31T00:00:00Z
        zureblob sas photos --resource c --permissions rl --expiry 2026-12-31T00:00:00Z
    """
    try:
        url = _client(ctx).generate_shared_access_url(
            container, blob, resource=resource, permissions=permissions, start=start, expiry=expiry
        )
    except StorageError as e:
        _fail(e)
    click.echo(url)


def main():
    cli(obj={})


if __name__ == "__main__":
    main()
