"""
Command-line interface for S3Storage SDK.

Thin front end over S3StorageClient: one command per client operation,
with a rich progress bar for uploads.
"""

import logging
import sys
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.progress import Progress, SpinnerColumn, TextColumn, BarColumn, DownloadColumn, TransferSpeedColumn

from .client import S3StorageClient
from .exceptions import PartialCompletionError, StorageClientError
from .models import ObjectACL, ObjectConfig, Region, ServerSideEncryption, UploadConfig, UploadProgress
from .utils import format_file_size


# Initialize Rich console
console = Console(stderr=True)


class CLIContext:
    """CLI context object to share state between commands."""

    def __init__(self, client: Optional[S3StorageClient] = None):
        self.client = client
        self.region: Optional[str] = None
        self.endpoint_url: Optional[str] = None

    def get_client(self) -> S3StorageClient:
        """Get a client built from the global options and environment."""
        if self.client is None:
            overrides = {}
            if self.endpoint_url:
                overrides["endpoint_url"] = self.endpoint_url
            self.client = S3StorageClient(region=self.region, **overrides)
        return self.client


def configure_logging(debug: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def fail(error: StorageClientError) -> None:
    """Report a client error and exit non-zero."""
    console.print(f"❌ {escape(str(error))}")
    if isinstance(error, PartialCompletionError):
        console.print(
            f"⚠️ '{error.completed_step}' took effect; re-run '{error.failed_step}' or fix it manually."
        )
    sys.exit(1)


@click.group()
@click.option('--region', type=click.Choice([r.value for r in Region]), help='Storage region')
@click.option('--endpoint-url', help='S3-compatible endpoint URL')
@click.option('--debug', is_flag=True, help='Enable debug logging')
@click.pass_context
def cli(ctx, region, endpoint_url, debug):
    """S3Storage CLI - bucket and object operations."""
    cli_context = ctx.ensure_object(CLIContext)
    cli_context.region = region
    cli_context.endpoint_url = endpoint_url

    configure_logging(debug)


@cli.command('create-bucket')
@click.argument('bucket')
@click.pass_obj
def create_bucket(cli_context, bucket):
    """Create a bucket and remove its public access block."""
    try:
        cli_context.get_client().create_bucket(bucket)
    except StorageClientError as e:
        fail(e)
    console.print(f"✅ Created bucket: {bucket}")


@cli.command('delete-bucket')
@click.argument('bucket')
@click.pass_obj
def delete_bucket(cli_context, bucket):
    """Delete an empty bucket."""
    try:
        cli_context.get_client().delete_bucket(bucket)
    except StorageClientError as e:
        fail(e)
    console.print(f"✅ Deleted bucket: {bucket}")


@cli.command()
@click.argument('file', type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option('--bucket', required=True, help='Target bucket')
@click.option('--key', help='Object key (defaults to the file name)')
@click.option('--acl', type=click.Choice([a.value for a in ObjectACL]), default=ObjectACL.PRIVATE.value,
              show_default=True, help='Canned ACL applied after upload')
@click.option('--sse', type=click.Choice([s.value for s in ServerSideEncryption]),
              default=ServerSideEncryption.AES256.value, show_default=True, help='Server-side encryption')
@click.option('--content-type', help='Content type of the object')
@click.pass_obj
def upload(cli_context, file, bucket, key, acl, sse, content_type):
    """Upload FILE to a bucket."""
    key = key or file.name

    try:
        client = cli_context.get_client()
        with open(file, "rb") as body, Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            DownloadColumn(),
            TransferSpeedColumn(),
            console=console
        ) as progress:
            task = progress.add_task(f"Uploading {file.name}", total=file.stat().st_size)

            def progress_callback(prog: UploadProgress):
                progress.update(task, completed=prog.loaded_bytes)

            result = client.upload(
                UploadConfig(
                    bucket=bucket,
                    key=key,
                    body=body,
                    acl=acl,
                    server_side_encryption=sse,
                    content_type=content_type,
                ),
                progress_callback=progress_callback,
            )
    except StorageClientError as e:
        fail(e)

    console.print(f"✅ Uploaded: s3://{result.bucket}/{result.key} ({result.acl.value})")


@cli.command()
@click.argument('bucket')
@click.argument('key')
@click.option('--output', '-o', type=click.Path(dir_okay=False, path_type=Path),
              help='Write the content here instead of stdout')
@click.pass_obj
def download(cli_context, bucket, key, output):
    """Download the object KEY from BUCKET."""
    try:
        content = cli_context.get_client().download(ObjectConfig(bucket=bucket, key=key))
    except StorageClientError as e:
        fail(e)

    write_content(content, output)
    if output:
        console.print(f"✅ Downloaded {format_file_size(len(content))} to {output}")


@cli.command()
@click.argument('bucket')
@click.argument('key')
@click.option('--output', '-o', type=click.Path(dir_okay=False, path_type=Path),
              help='Keep the deleted content in this file')
@click.pass_obj
def delete(cli_context, bucket, key, output):
    """Delete the object KEY from BUCKET, printing what it held."""
    try:
        content = cli_context.get_client().delete(ObjectConfig(bucket=bucket, key=key))
    except StorageClientError as e:
        fail(e)

    write_content(content, output)
    console.print(f"✅ Deleted s3://{bucket}/{key} ({format_file_size(len(content))})")


def write_content(content: bytes, output: Optional[Path]) -> None:
    if output:
        output.write_bytes(content)
    else:
        click.get_binary_stream('stdout').write(content)


def main():
    """Main CLI entry point."""
    cli()


if __name__ == '__main__':
    main()
