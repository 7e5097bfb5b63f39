# cli.py
import asyncio
import logging
from pathlib import Path

import click

from media_api.client import MediaClient, MediaClientError, UploadStatus
from media_api.config.settings import get_settings
from media_api.gallery import PREVIEW_WIDTH, Gallery, format_file_size

# Configure logging
logger = logging.getLogger(__name__)


def _default_api_url() -> str:
    return f"http://localhost:{get_settings().port}"


api_url_option = click.option(
    "--api-url",
    default=_default_api_url,
    show_default="http://localhost:<PORT>",
    help="Base URL of a running Wedding Media API",
)


@click.group()
def cli():
    """CLI commands for the Wedding Media API server and its gallery"""
    pass


@cli.command()
@click.option("--host", default=None, help="Interface to bind (default: HOST setting)")
@click.option("--port", default=None, type=int, help="Port to listen on (default: PORT setting)")
def serve(host, port):
    """Run the API server"""
    import uvicorn
    from media_api.main import create_app

    settings = get_settings()
    uvicorn.run(create_app(settings), host=host or settings.host, port=port or settings.port)


@cli.command()
def show_config():
    """Show current configuration"""
    settings = get_settings()

    print("Current Configuration:")
    for key, value in settings.masked_items():
        print(f"  {key}: {value}")
    print(f"  cloudinary_configured: {settings.cloudinary_configured}")


@cli.command()
@api_url_option
@click.argument("paths", nargs=-1, required=True, type=click.Path(exists=True, dir_okay=False, path_type=Path))
def upload(api_url, paths):
    """Upload one or more photos or videos"""

    async def run():
        failures = 0
        async with MediaClient(api_url) as client:
            async for event in client.upload_many(paths):
                if event.status is UploadStatus.SUCCESS:
                    print(f"✅ {event.name} ({format_file_size(event.size)}) -> {event.file_url}")
                elif event.status is UploadStatus.ERROR:
                    failures += 1
                    print(f"❌ {event.name}: {event.error}")
                else:
                    logger.debug("%s %d%%", event.name, event.progress)
        return failures

    failures = asyncio.run(run())
    if failures:
        raise click.exceptions.Exit(1)


@cli.command("list")
@api_url_option
@click.option("--view", type=click.Choice(["table", "grid"]), default="table", help="Presentation")
@click.option("--columns", default=3, show_default=True, help="Columns in grid view")
def list_files(api_url, view, columns):
    """List the gallery"""

    async def run():
        async with MediaClient(api_url) as client:
            gallery = Gallery(client)
            await gallery.refresh()
            return gallery.render_grid(columns) if view == "grid" else gallery.render_table()

    try:
        print(asyncio.run(run()))
    except MediaClientError as e:
        raise click.ClickException(str(e))


@cli.command()
@api_url_option
@click.argument("storage_id")
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
def delete(api_url, storage_id, yes):
    """Delete a file from the gallery"""

    def confirm(record):
        return yes or click.confirm(f"Delete {record.original_name}?", default=False)

    async def run():
        async with MediaClient(api_url) as client:
            gallery = Gallery(client)
            await gallery.refresh()
            if gallery.find(storage_id) is None:
                raise click.ClickException(f"File not found: {storage_id}")
            deleted = await gallery.delete(storage_id, confirm)
            return deleted, gallery.summary()

    try:
        deleted, summary = asyncio.run(run())
    except MediaClientError as e:
        raise click.ClickException(str(e))
    print(f"Deleted {storage_id}. {summary}" if deleted else "Aborted.")


@cli.command()
@api_url_option
@click.argument("storage_id")
@click.option("--width", type=int, default=None)
@click.option("--height", type=int, default=None)
def preview(api_url, storage_id, width, height):
    """Print a display URL for a gallery item"""

    async def run():
        async with MediaClient(api_url) as client:
            gallery = Gallery(client)
            await gallery.refresh()
            if gallery.find(storage_id) is None:
                raise click.ClickException(f"File not found: {storage_id}")
            return await gallery.preview(storage_id, width=width or PREVIEW_WIDTH, height=height)

    try:
        shown = asyncio.run(run())
    except MediaClientError as e:
        raise click.ClickException(str(e))
    print(shown.display_url)


if __name__ == "__main__":
    cli()
