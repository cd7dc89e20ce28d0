"""
Campaign redirector CLI.

Usage:
    redirector serve --port 8080
    redirector show spring-sale
    redirector put ./campaigns/spring-sale.json
    redirector simulate ./campaigns/spring-sale.json --hits 500
"""

import asyncio
from collections import Counter
from pathlib import Path
from typing import Optional

import typer
from dotenv import load_dotenv
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .config import get_settings
from .dispatch import dispatch
from .errors import PersistenceFailure
from .infrastructure.campaign_store import CampaignStore
from .infrastructure.schemas import Campaign
from .logging_config import configure_logging

app = typer.Typer(
    name="redirector",
    help="Campaign traffic-splitting redirector",
    add_completion=False,
)
console = Console()


@app.callback()
def main():
    """Load .env before any command reads settings."""
    load_dotenv()


def _read_campaign_file(path: Path) -> Campaign:
    try:
        return Campaign.from_record(path.read_text(encoding="utf-8"))
    except ValidationError as e:
        console.print(f"[red]Invalid campaign file {path}:[/red]\n{escape(str(e))}")
        raise typer.Exit(code=1)


def _pages_table(campaign: Campaign, served: Optional[Counter] = None) -> Table:
    table = Table(title=f"{escape(campaign.name or campaign.key)} (cycles done: {campaign.cycles_done})")
    table.add_column("ID", justify="right")
    table.add_column("Name")
    table.add_column("URL")
    table.add_column("Hits done", justify="right")
    table.add_column("Quota", justify="right")
    if served is not None:
        table.add_column("Served", justify="right")

    for page in campaign.pages:
        row = [
            str(page.id),
            escape(page.name),
            escape(page.url),
            str(page.cycle_hits_done),
            str(page.cycle_hits_todo),
        ]
        if served is not None:
            row.append(str(served.get(page.id, 0)))
        table.add_row(*row)
    return table


@app.command()
def serve(
    host: Optional[str] = typer.Option(None, "--host", help="Bind address (default: HTTP_HOST)"),
    port: Optional[int] = typer.Option(None, "--port", "-p", help="Bind port (default: HTTP_PORT)"),
    reload: bool = typer.Option(False, "--reload", help="Reload on code changes"),
):
    """Run the HTTP redirector."""
    from .server import run_server

    settings = get_settings()
    run_server(
        host=host or settings.http_host,
        port=port or settings.http_port,
        reload=reload,
    )


@app.command()
def show(key: str = typer.Argument(..., help="Campaign key")):
    """Print a stored campaign."""
    settings = get_settings()
    configure_logging(settings.log_level, json_logs=settings.log_json)

    async def _load() -> Optional[Campaign]:
        async with CampaignStore.from_settings(settings) as store:
            return await store.load(key)

    campaign = asyncio.run(_load())
    if campaign is None:
        console.print(f"[red]Campaign not found:[/red] {escape(key)}")
        raise typer.Exit(code=1)

    console.print(_pages_table(campaign))


@app.command()
def put(path: Path = typer.Argument(..., exists=True, dir_okay=False, help="Campaign JSON file")):
    """Validate a campaign file and write it to the store."""
    settings = get_settings()
    configure_logging(settings.log_level, json_logs=settings.log_json)
    campaign = _read_campaign_file(path)

    async def _save() -> None:
        async with CampaignStore.from_settings(settings) as store:
            await store.save(campaign)

    try:
        asyncio.run(_save())
    except PersistenceFailure as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        raise typer.Exit(code=1)

    console.print(
        f"[green]Saved[/green] campaign [bold]{campaign.key}[/bold] "
        f"with {len(campaign.pages)} pages"
    )


@app.command()
def simulate(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="Campaign JSON file"),
    hits: int = typer.Option(100, "--hits", "-n", min=1, help="Number of requests to simulate"),
):
    """Run the dispatch protocol offline and show how traffic splits."""
    campaign = _read_campaign_file(path)
    served: Counter = Counter()
    unserved = 0

    for _ in range(hits):
        outcome = dispatch(campaign)
        campaign = outcome.campaign
        if outcome.page is None:
            unserved += 1
        else:
            served[outcome.page.id] += 1

    console.print(_pages_table(campaign, served))
    console.print(f"Requests: {hits}  Served: {hits - unserved}  No destination: {unserved}")


if __name__ == "__main__":
    app()
