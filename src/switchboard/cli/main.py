"""Switchboard CLI — talk to a running Switchboard server."""

from __future__ import annotations

import json
from typing import Any

import httpx
import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

app = typer.Typer(
    name="switchboard",
    help="Switchboard — event-driven agent core",
    no_args_is_help=True,
    add_completion=False,
)

console = Console()

DEFAULT_URL = "http://localhost:8000"

UrlOption = typer.Option(DEFAULT_URL, "--url", "-u", envvar="SWITCHBOARD_URL")
ApiKeyOption = typer.Option("", "--api-key", "-k", envvar="SWITCHBOARD_API_KEY")


def _get_client(base_url: str, api_key: str | None) -> httpx.Client:
    headers = {}
    if api_key:
        headers["X-API-Key"] = api_key
    return httpx.Client(base_url=base_url, headers=headers, timeout=120.0)


def _request(base_url: str, api_key: str, method: str, path: str, **kwargs: Any) -> Any:
    client = _get_client(base_url, api_key or None)
    try:
        resp = client.request(method, path, **kwargs)
        resp.raise_for_status()
    except httpx.ConnectError:
        console.print(f"[red]✗[/red] Switchboard is not running at {base_url}")
        raise typer.Exit(1)
    except httpx.HTTPStatusError as e:
        console.print(f"[red]Error {e.response.status_code}:[/red] {e.response.text}")
        raise typer.Exit(1)
    return resp.json()


@app.command()
def serve(
    host: str = typer.Option("0.0.0.0", "--host"),
    port: int = typer.Option(8000, "--port"),
    reload: bool = typer.Option(False, "--reload"),
) -> None:
    """Start the Switchboard server."""
    import uvicorn

    console.print(Panel("Starting Switchboard server...", border_style="blue"))
    uvicorn.run(
        "switchboard.main:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
    )


@app.command()
def status(base_url: str = UrlOption, api_key: str = ApiKeyOption) -> None:
    """Check Switchboard's status."""
    data = _request(base_url, api_key, "GET", "/health")

    table = Table(title="Switchboard Status", show_header=False, border_style="blue")
    table.add_column("Key", style="bold")
    table.add_column("Value")

    table.add_row("Status", f"[green]{data['status']}[/green]")
    table.add_row("Version", data.get("version", "?"))
    table.add_row("Uptime", f"{data.get('uptime_seconds', '?')}s")
    table.add_row("Master model", "yes" if data.get("master_model") else "no")
    table.add_row("Capabilities", ", ".join(data.get("capabilities", [])) or "-")

    stats = data.get("llm_stats")
    if stats:
        table.add_row("Requests", str(stats.get("request_count", 0)))
        table.add_row("Tokens Used", str(stats.get("total_tokens", 0)))
        table.add_row("Cost", stats.get("total_cost", "$0"))

    jobs = data.get("jobs")
    if jobs:
        counts = ", ".join(f"{k}={v}" for k, v in sorted(jobs.get("counts", {}).items()))
        table.add_row("Jobs", counts or "none")

    console.print()
    console.print(table)
    console.print()


@app.command()
def send(
    event_type: str = typer.Argument(..., help="Event type, e.g. function:execute"),
    payload: str = typer.Option("{}", "--payload", "-p", help="JSON payload"),
    reply: bool = typer.Option(False, "--reply", help="Ask for a response message"),
    base_url: str = UrlOption,
    api_key: str = ApiKeyOption,
) -> None:
    """Send an event and print the dispatch outcome."""
    try:
        body_payload = json.loads(payload)
    except json.JSONDecodeError as e:
        console.print(f"[red]Invalid JSON payload:[/red] {e}")
        raise typer.Exit(2)

    body = {"type": event_type, "payload": body_payload}
    if reply:
        body["reply_to"] = "cli"
    data = _request(base_url, api_key, "POST", "/v1/events", json=body)

    style = "green" if data.get("ack_status") == "success" else "red"
    console.print(f"[{style}]{data.get('ack_status')}[/{style}]  [dim]{data.get('state')}[/dim]")
    if data.get("used_master_model"):
        console.print("[dim]decided by master model[/dim]")
    elif data.get("fell_back"):
        console.print("[yellow]master model failed; routed by type[/yellow]")
    console.print_json(json.dumps(data.get("result"), default=str))


@app.command()
def capabilities(base_url: str = UrlOption, api_key: str = ApiKeyOption) -> None:
    """List registered capabilities."""
    data = _request(base_url, api_key, "GET", "/v1/capabilities")
    items = data.get("capabilities", [])
    if not items:
        console.print("[dim]No capabilities registered.[/dim]")
        return

    table = Table(title="Capabilities", border_style="blue")
    table.add_column("Name", style="cyan")
    table.add_column("Description")
    table.add_column("Credential", style="dim")
    table.add_column("Preferred model", style="dim")
    for item in items:
        table.add_row(
            item["name"],
            item.get("description", ""),
            item.get("credential_name") or "-",
            item.get("preferred_model_id") or "-",
        )
    console.print()
    console.print(table)
    console.print()


@app.command()
def models(base_url: str = UrlOption, api_key: str = ApiKeyOption) -> None:
    """List registered models."""
    data = _request(base_url, api_key, "GET", "/v1/models")
    registered = data.get("models", {})
    if not registered:
        console.print("[dim]No models registered.[/dim]")
        return

    table = Table(title="Models", border_style="blue")
    table.add_column("Id", style="cyan")
    table.add_column("Provider")
    table.add_column("Model")
    table.add_column("Temperature", justify="right")
    for model_id, cfg in sorted(registered.items()):
        table.add_row(model_id, cfg.get("provider", "?"), cfg.get("model", "?"), str(cfg.get("temperature")))
    console.print()
    console.print(table)
    console.print()


@app.command()
def job(
    job_id: str = typer.Argument(..., help="Job id"),
    base_url: str = UrlOption,
    api_key: str = ApiKeyOption,
) -> None:
    """Show a job's status and result."""
    data = _request(base_url, api_key, "GET", f"/v1/jobs/{job_id}")
    console.print(f"[cyan]{data['id']}[/cyan]  {data.get('status')}")
    if data.get("error"):
        console.print(f"[red]{data['error']}[/red]")
    if data.get("result") is not None:
        console.print_json(json.dumps(data["result"], default=str))


@app.command()
def version() -> None:
    """Show Switchboard version."""
    from switchboard import __version__

    console.print(f"Switchboard v{__version__}")


if __name__ == "__main__":
    app()
