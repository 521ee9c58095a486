"""CLI entry point for safevibes."""

import asyncio
import json
import logging
from pathlib import Path

# Load .env file if it exists
from dotenv import load_dotenv
load_dotenv()

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from safevibes.adapters.base import ScanError
from safevibes.config import ScanConfig
from safevibes.models.schemas import Category, DetailStatus, ScanResult

app = typer.Typer(help="Repository security hygiene scanner.")

console = Console()

STATUS_STYLES = {
    DetailStatus.GOOD: ("green", "+"),
    DetailStatus.WARN: ("yellow", "!"),
    DetailStatus.BAD: ("red", "x"),
}


def _setup_logging(verbose: bool) -> None:
    """Route library logging through rich when verbose."""
    if not verbose:
        return
    logging.basicConfig(
        level=logging.DEBUG,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
        force=True,
    )
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)


@app.command()
def scan(
    url: str = typer.Argument(..., help="GitHub repository URL, e.g. https://github.com/owner/repo"),
    as_json: bool = typer.Option(False, "--json", help="Print the result as JSON"),
    output: Path | None = typer.Option(None, "--output", "-o", help="Output JSON file"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging"),
) -> None:
    """Scan a repository and print its security, quality and dependency scores."""
    _setup_logging(verbose)
    asyncio.run(_scan(url, as_json, output))


async def _scan(url: str, as_json: bool, output: Path | None) -> None:
    """Async implementation of scan."""
    from safevibes.analyzers.pipeline import ScanPipeline

    config = ScanConfig.from_env()

    try:
        if as_json:
            async with ScanPipeline(config) as pipeline:
                result = await pipeline.scan(url)
        else:
            with Progress(
                SpinnerColumn(),
                TextColumn("[progress.description]{task.description}"),
                console=console,
                transient=True,
            ) as progress:
                progress.add_task(f"Scanning {url}...", total=None)
                async with ScanPipeline(config) as pipeline:
                    result = await pipeline.scan(url)
    except ScanError as e:
        console.print(f"[red]{e.message}[/red]")
        raise typer.Exit(1)

    data = result.to_json_dict()

    if as_json:
        typer.echo(json.dumps(data, indent=2))
    else:
        _print_result(result)

    if output:
        output.write_text(json.dumps(data, indent=2))
        if not as_json:
            console.print(f"\n[green]Saved to {output}[/green]")


def _print_result(result: ScanResult) -> None:
    """Render a scan result as rich panels and tables."""
    console.print()
    console.print(f"[bold cyan]{result.repo_url}[/bold cyan]")
    console.print()

    score_color = _score_color(result.total_score)
    console.print(
        Panel(
            f"[bold][{score_color}]{result.total_score}[/{score_color}][/bold] / 100  Grade: [bold]{result.grade}[/bold]",
            title="SafeVibes Score",
            expand=False,
        )
    )
    console.print()

    scores_table = Table(title="Category Scores", show_header=True)
    scores_table.add_column("Category", style="bold")
    scores_table.add_column("Score", justify="right")
    scores_table.add_column("Weight", justify="right", style="dim")
    scores_table.add_column("Bar", width=20)

    categories = [
        ("Security", result.security, 40),
        ("Quality", result.quality, 35),
        ("Dependency Risk", result.dependency_risk, 25),
    ]
    for name, score, weight in categories:
        color = _score_color(score)
        scores_table.add_row(name, f"[{color}]{score}[/{color}]", f"{weight}%", _score_bar(score))

    console.print(scores_table)

    for category in Category:
        details = [d for d in result.details if d.category == category]
        if not details:
            continue
        console.print()
        console.print(f"[bold]{category.value.title()}[/bold]")
        for detail in details:
            color, mark = STATUS_STYLES[detail.status]
            value = f" [dim]{detail.value}[/dim]" if detail.value else ""
            console.print(f"  [{color}]{mark}[/{color}] {detail.id}{value}")


def _score_color(score: float) -> str:
    return "green" if score >= 80 else "yellow" if score >= 60 else "red"


def _score_bar(score: float, width: int = 20) -> str:
    """Create a visual score bar."""
    filled = int(score / 100 * width)
    empty = width - filled
    color = _score_color(score)
    return f"[{color}]{'█' * filled}[/{color}][dim]{'░' * empty}[/dim]"


@app.command()
def version() -> None:
    """Show version information."""
    from safevibes import __version__

    console.print(f"safevibes v{__version__}")


if __name__ == "__main__":
    app()
