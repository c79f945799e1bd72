"""mxcontent CLI - Main commands."""
import asyncio
import logging
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.progress import Progress, SpinnerColumn, TextColumn, BarColumn, TaskProgressColumn

app = typer.Typer(
    name="mxcontent",
    help="Matrix content repository CLI",
    add_completion=False
)
console = Console()


def run_async(coro):
    """Run async function."""
    return asyncio.run(coro)


def build_config(
    base_url: str,
    token: str,
    query_token: bool,
    delegated: bool,
    timeout: float,
    verbose: bool = False
):
    from mxcontent import setup_logging
    from mxcontent.core.api import HttpApiConfig

    try:
        config = HttpApiConfig.default(
            base_url,
            token or None,
            use_authorization_header=not query_token,
            streaming=not delegated,
            upload_timeout=timeout,
            log_level=logging.DEBUG if verbose else logging.WARNING
        )
    except ValueError as e:
        console.print(f"[red]Invalid configuration: {escape(str(e))}[/red]")
        raise typer.Exit(1)
    if verbose:
        logging.basicConfig(format="%(message)s", handlers=[RichHandler(console=console, show_path=False)])
    setup_logging(config.log_level)
    return config


@app.command()
def upload(
    file_path: Path = typer.Argument(..., help="Local file to upload", exists=True, dir_okay=False),
    name: str = typer.Option(None, "--name", "-n", help="File name sent to the server"),
    content_type: str = typer.Option(None, "--content-type", "-c", help="Content type (guessed from the name)"),
    no_filename: bool = typer.Option(False, "--no-filename", help="Do not send the file name"),
    base_url: str = typer.Option(..., "--base-url", "-b", envvar="MXCONTENT_BASE_URL", help="Homeserver URL"),
    token: str = typer.Option("", "--token", "-t", envvar="MXCONTENT_ACCESS_TOKEN", help="Access token"),
    query_token: bool = typer.Option(False, "--query-token", help="Send the token as a query parameter"),
    delegated: bool = typer.Option(False, "--delegated", help="Use the request-based transport"),
    timeout: float = typer.Option(30.0, "--timeout", help="Abort after this many seconds without progress"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logs"),
):
    """Upload a file and print its content URI."""
    from mxcontent import ContentRepoClient, UploadOptions, UploadProgress
    from mxcontent.core.exceptions import MatrixHttpError

    config = build_config(base_url, token, query_token, delegated, timeout, verbose)

    async def do_upload():
        async with ContentRepoClient(config) as client:
            with Progress(
                SpinnerColumn(),
                TextColumn("[progress.description]{task.description}"),
                BarColumn(),
                TaskProgressColumn(),
                console=console
            ) as progress:
                task = progress.add_task(f"Uploading {file_path.name}", total=None)

                def on_progress(p: UploadProgress):
                    progress.update(task, completed=p.loaded, total=p.total or None)

                future = client.upload_content(
                    file_path,
                    UploadOptions(
                        name=name,
                        include_filename=not no_filename,
                        content_type=content_type,
                        progress_handler=on_progress,
                        only_content_uri=True
                    )
                )
                try:
                    return await future
                except MatrixHttpError as e:
                    console.print(f"[red]Upload failed ({e.name}): {escape(str(e))}[/red]")
                    raise typer.Exit(1)

    content_uri = run_async(do_upload())
    console.print(f"[green]Uploaded:[/green] {content_uri}")


@app.command("content-uri")
def content_uri(
    base_url: str = typer.Option(..., "--base-url", "-b", envvar="MXCONTENT_BASE_URL", help="Homeserver URL"),
    token: str = typer.Option("", "--token", "-t", envvar="MXCONTENT_ACCESS_TOKEN", help="Access token"),
):
    """Show the upload endpoint and its query parameters."""
    from mxcontent import ContentRepoClient

    config = build_config(base_url, token, False, False, 30.0)
    locator = ContentRepoClient(config).get_content_uri()
    console.print(f"[bold]Base:[/bold] {locator.base}")
    console.print(f"[bold]Path:[/bold] {locator.path}")
    for key in locator.params:
        console.print(f"[bold]Param:[/bold] {key}=***")


def main():
    """Entry point."""
    app()


if __name__ == "__main__":
    main()
