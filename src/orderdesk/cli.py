"""Typer CLI for OrderDesk."""

import asyncio
from typing import Optional

import typer
from rich.console import Console

app = typer.Typer(name="orderdesk", help="OrderDesk: order back office with webhook notifications")
console = Console()


@app.command()
def serve(
    host: Optional[str] = typer.Option(None, help="Bind host (defaults to ORDERDESK_HOST)"),
    port: Optional[int] = typer.Option(None, help="Bind port (defaults to ORDERDESK_PORT)"),
):
    """Start the OrderDesk API server."""
    import uvicorn
    from orderdesk.app import create_app
    from orderdesk.common.config import get_settings

    settings = get_settings()
    host = host or settings.host
    port = port or settings.port
    console.print(f"[bold green]Starting OrderDesk on {host}:{port}[/bold green]")
    uvicorn.run(create_app(settings), host=host, port=port)


@app.command()
def seed():
    """Load demo customers, products and orders into an empty database."""
    from orderdesk.common.config import get_settings
    from orderdesk.deps import build_container
    from orderdesk.seed import seed_demo_data

    async def _run() -> bool:
        container = build_container(get_settings())
        await container.startup()
        try:
            async with container.db.get_session() as session:
                return await seed_demo_data(session, container.catalog, container.orders)
        finally:
            await container.shutdown()

    if asyncio.run(_run()):
        console.print("[bold green]Seeded demo data[/bold green]")
    else:
        console.print("[yellow]Orders already exist, nothing seeded[/yellow]")


@app.command()
def health(
    url: str = typer.Option("http://localhost:3000/api", help="API base URL"),
):
    """Check OrderDesk server health."""
    import httpx

    try:
        resp = httpx.get(f"{url}/health", timeout=5)
        data = resp.json()
        console.print(f"[bold green]{data['status']}[/bold green] v{data['version']}")
    except (httpx.HTTPError, ValueError, KeyError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
