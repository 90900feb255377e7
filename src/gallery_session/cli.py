"""
CLI for the gallery session engine.

Commands:
- info: Show configuration
- login: Obtain a session token
- search: Load pages of a search and print the masonry layout
- upload: Upload files through the worker pool
- tag: Add or remove tags on images
"""

import asyncio
from pathlib import Path

import typer
from loguru import logger
from rich.console import Console
from rich.progress import BarColumn, Progress, SpinnerColumn, TaskProgressColumn, TextColumn
from rich.table import Table

from .catalog.base import UploadFile, UploadStatus
from .client import GalleryServiceError, HttpImageService, SessionExpiredError, create_image_service
from .config import settings
from .logging import setup_logging
from .session import GallerySession
from .upload import UploadPipeline

app = typer.Typer(
    name="gallery-session",
    help="Browse, tag and upload photos on a gallery server",
)
console = Console()


def _expired_exit() -> None:
    console.print("[red]Session expired. Run 'gallery-session login' and set SESSION_TOKEN.[/]")
    raise typer.Exit(1)


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
):
    """Gallery Session - photo gallery client."""
    log_level = "DEBUG" if verbose else settings.log_level
    setup_logging(level=log_level, json_output=settings.log_json)
    logger.debug("CLI initialized with log level: {}", log_level)


@app.command()
def info():
    """Show configuration."""
    console.print("[bold blue]Gallery Session Configuration[/]")

    table = Table(title="Settings")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("API Base URL", settings.api_base_url)
    table.add_row("Session Token", "***" if settings.session_token else "[red]NOT SET[/]")
    table.add_row("Request Timeout", f"{settings.request_timeout}s")
    table.add_row("Page Size", str(settings.page_size))
    table.add_row("Search Debounce", f"{settings.search_debounce}s")
    table.add_row("Prefetch Threshold", str(settings.prefetch_threshold))
    table.add_row("Columns", str(settings.column_count))
    table.add_row("Default Quality", settings.default_quality)
    table.add_row("Upload Concurrency", str(settings.upload_concurrency))

    console.print(table)


@app.command()
def login(
    username: str = typer.Option(..., "--username", "-u", prompt=True, help="Account name"),
    password: str = typer.Option(..., "--password", prompt=True, hide_input=True, help="Password"),
):
    """Log in and print the session token."""

    async def run_login() -> str:
        service = HttpImageService(
            base_url=settings.api_base_url,
            timeout=settings.request_timeout,
        )
        try:
            return await service.login(username, password)
        finally:
            await service.close()

    try:
        token = asyncio.run(run_login())
    except ValueError as e:
        console.print(f"[red]{e}[/]")
        raise typer.Exit(1)
    except GalleryServiceError as e:
        logger.error("Login failed: {}", e)
        console.print(f"[red]Login failed: {e}[/]")
        raise typer.Exit(1)

    console.print("[green]Logged in.[/]")
    console.print(f"export SESSION_TOKEN={token}")


@app.command()
def search(
    term: str = typer.Argument("", help="Search text; empty lists every image"),
    pages: int = typer.Option(1, "--pages", "-p", min=1, help="Number of pages to load"),
    columns: int = typer.Option(settings.column_count, "--columns", "-c", min=1, help="Masonry columns"),
):
    """Load pages of a search and print the masonry layout."""
    logger.info("Searching '{}' ({} pages)", term[:50], pages)

    async def run_search():
        async with GallerySession.from_settings(settings) as session:
            await session.start(term)
            for _ in range(pages - 1):
                if session.expired or not session.pagination.has_more:
                    break
                await session.pagination.advance()
            return session.expired, session.layout(columns), len(session.store), session.pagination.has_more

    expired, layout, total, has_more = asyncio.run(run_search())
    if expired:
        _expired_exit()

    table = Table(title=f"Results for '{term}'" if term else "All images")
    for i in range(len(layout)):
        table.add_column(f"Column {i + 1}", style="cyan")
    for row in range(max((len(column) for column in layout), default=0)):
        table.add_row(*[column[row].id if row < len(column) else "" for column in layout])
    console.print(table)
    console.print(f"Loaded: {total} images" + (" (more available)" if has_more else ""))


@app.command()
def upload(
    paths: list[Path] = typer.Argument(..., exists=True, dir_okay=False, help="Files to upload"),
    concurrency: int = typer.Option(
        settings.upload_concurrency, "--concurrency", "-j", min=1, help="Parallel uploads"
    ),
):
    """Upload files through the bounded worker pool."""
    files = [UploadFile.from_path(path) for path in paths]
    logger.info("Uploading {} files with concurrency {}", len(files), concurrency)

    async def run_upload():
        expired = []
        service = create_image_service(
            base_url=settings.api_base_url,
            token=settings.session_token,
            timeout=settings.request_timeout,
        )
        pipeline = UploadPipeline(service, concurrency=concurrency, on_session_expired=lambda: expired.append(True))
        try:
            items = pipeline.prepare(files)
            with Progress(
                SpinnerColumn(),
                TextColumn("[progress.description]{task.description}"),
                BarColumn(),
                TaskProgressColumn(),
                console=console,
            ) as progress:
                task = progress.add_task("Uploading...", total=len(items))
                runner = asyncio.create_task(pipeline.run())
                while not runner.done():
                    finished = sum(1 for item in items if item.status in (UploadStatus.DONE, UploadStatus.FAILED))
                    progress.update(task, completed=finished)
                    await asyncio.sleep(0.1)
                await runner
                progress.update(task, completed=len(items))
        finally:
            await service.close()
        return bool(expired), items

    expired, items = asyncio.run(run_upload())

    failed = [item for item in items if item.status != UploadStatus.DONE]
    if failed:
        table = Table(title="Not uploaded")
        table.add_column("File", style="cyan")
        table.add_column("Status", style="yellow")
        table.add_column("Error", style="red")
        for item in failed:
            table.add_row(item.filename, item.status.value, item.error or "")
        console.print(table)
    console.print(f"[green]Uploaded {len(items) - len(failed)} / {len(items)}[/]")
    if expired:
        _expired_exit()
    if failed:
        raise typer.Exit(1)


@app.command()
def tag(
    image_ids: list[str] = typer.Argument(..., help="Images to edit"),
    tags: list[str] = typer.Option(..., "--tag", "-t", help="Tag to add or remove (repeatable)"),
    remove: bool = typer.Option(False, "--remove", help="Remove the tags instead of adding"),
):
    """Add or remove tags on images."""
    tags = [t.strip() for t in tags if t.strip()]
    if not tags:
        console.print("[red]At least one non-empty --tag is required[/]")
        raise typer.Exit(1)

    async def run_tag():
        service = HttpImageService(
            base_url=settings.api_base_url,
            token=settings.session_token,
            timeout=settings.request_timeout,
        )
        try:
            if remove:
                await service.remove_tags(image_ids, tags)
            else:
                await service.add_tags(image_ids, tags)
        finally:
            await service.close()

    try:
        asyncio.run(run_tag())
    except SessionExpiredError:
        _expired_exit()
    except GalleryServiceError as e:
        logger.error("Tag edit failed: {}", e)
        console.print(f"[red]Tag edit failed: {e}[/]")
        raise typer.Exit(1)

    action = "Removed" if remove else "Added"
    console.print(f"[green]{action} {', '.join(tags)} on {len(image_ids)} images[/]")


if __name__ == "__main__":
    app()
