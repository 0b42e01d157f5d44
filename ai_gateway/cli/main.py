"""
CLI interface for AI Gateway.

Runs the server and reads the usage ledger from the command line.
"""

import sys
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from ai_gateway.config.loader import load_pricing_config
from ai_gateway.config.settings import get_settings
from ai_gateway.core.pricing import PRICING_TABLE, calculate_cost
from ai_gateway.core.token_counter import TokenUsage
from ai_gateway.demo.seed_demo_data import seed_demo_data
from ai_gateway.storage.reports import aggregate_totals, usage_summary
from ai_gateway.storage.repository import MAX_RECENT_LOG_HOURS, get_store

app = typer.Typer()
console = Console()

EXIT_CODE_OK = 0
EXIT_CODE_FAIL = 1

LogsDirOption = typer.Option(
    None,
    "--logs-dir",
    "-d",
    help="Ledger directory (defaults to LOGS_DIR)"
)


def _store(logs_dir: Optional[str]):
    return get_store(logs_dir or get_settings().LOGS_DIR)


def _format_currency(amount: float) -> str:
    """Format currency with enough precision for per-call costs."""
    return f"${amount:,.4f}"


@app.callback(invoke_without_command=True)
def main(ctx: typer.Context):
    """AI Gateway CLI."""
    if ctx.invoked_subcommand is None:
        console.print("AI Gateway - Use --help to see available commands")


@app.command()
def serve(
    host: Optional[str] = typer.Option(None, "--host", help="Bind address (defaults to HOST)"),
    port: Optional[int] = typer.Option(None, "--port", "-p", help="Port (defaults to PORT)")
):
    """Run the gateway HTTP server."""
    import uvicorn

    from ai_gateway.api import create_app

    settings = get_settings()
    uvicorn.run(create_app(settings), host=host or settings.HOST, port=port or settings.PORT)


@app.command()
def users(logs_dir: Optional[str] = LogsDirOption):
    """List every user's usage summary."""
    summaries = _store(logs_dir).get_all_user_stats()
    if not summaries:
        console.print("[bold yellow]No usage recorded yet[/]")
        sys.exit(EXIT_CODE_OK)

    table = Table(title="Usage by user")
    table.add_column("User")
    table.add_column("Requests", justify="right")
    table.add_column("Tokens", justify="right")
    table.add_column("Cost", justify="right")
    table.add_column("Last seen")
    for user_id, summary in sorted(summaries.items(), key=lambda kv: kv[1].total_cost, reverse=True):
        table.add_row(
            user_id,
            str(summary.total_requests),
            f"{summary.total_tokens:,}",
            _format_currency(summary.total_cost),
            summary.last_seen,
        )
    console.print(table)

    totals = aggregate_totals(summaries)
    console.print(
        f"Total: {totals['users']} users, {totals['totalRequests']} requests, "
        f"{totals['totalTokens']:,} tokens, {_format_currency(totals['totalCost'])}"
    )


@app.command()
def stats(user_id: str, logs_dir: Optional[str] = LogsDirOption):
    """Show one user's usage summary."""
    summary = _store(logs_dir).get_user_stats(user_id)
    if summary is None:
        console.print(f"[red]No usage recorded for user:[/] {user_id}")
        sys.exit(EXIT_CODE_FAIL)

    console.print(f"\n[bold]User:[/bold] {user_id}")
    console.print(f"First seen: {summary.first_seen}")
    console.print(f"Last seen: {summary.last_seen}")
    console.print(f"Requests: {summary.total_requests}")
    console.print(f"Tokens: {summary.total_tokens:,}")
    console.print(f"Cost: {_format_currency(summary.total_cost)}")

    for title, counts in (
        ("Endpoints", summary.endpoint_counts),
        ("Models", summary.model_counts),
        ("Providers", summary.provider_counts),
    ):
        table = Table(title=title)
        table.add_column("Name")
        table.add_column("Calls", justify="right")
        for name, count in sorted(counts.items(), key=lambda kv: kv[1], reverse=True):
            table.add_row(name, str(count))
        console.print(table)


@app.command()
def logs(
    hours: float = typer.Option(24, "--hours", help="Maximum entry age in hours (at most 72 are covered)"),
    logs_dir: Optional[str] = LogsDirOption
):
    """Show recent usage log entries, newest first."""
    if not hours > 0:
        console.print("[red]Error:[/] --hours must be > 0")
        sys.exit(EXIT_CODE_FAIL)
    hours = min(hours, MAX_RECENT_LOG_HOURS)

    entries = _store(logs_dir).get_recent_logs(hours)
    if not entries:
        console.print(f"[dim]No usage in the last {hours:g} hours.[/]")
        sys.exit(EXIT_CODE_OK)

    table = Table(title=f"Usage in the last {hours:g} hours")
    table.add_column("Timestamp")
    table.add_column("User")
    table.add_column("Endpoint")
    table.add_column("Model")
    table.add_column("Tokens", justify="right")
    table.add_column("Cost", justify="right")
    table.add_column("OK")
    for entry in entries:
        row = entry.to_dict()
        table.add_row(
            row["timestamp"],
            entry.user_id,
            entry.endpoint,
            f"{entry.provider}/{entry.model}",
            str(entry.usage.total_tokens),
            _format_currency(entry.cost),
            "[green]✓[/]" if entry.success else "[red]✗[/]",
        )
    console.print(table)


@app.command()
def summary(logs_dir: Optional[str] = LogsDirOption):
    """Show totals, last-24h activity and per-model call counts."""
    report = usage_summary(_store(logs_dir))
    totals = report["totals"]
    recent = report["last24Hours"]

    console.print("\n[bold]AI Gateway Usage Summary[/bold]")
    console.print("-" * 40)
    console.print(f"Users: {totals['users']}")
    console.print(f"Requests: {totals['totalRequests']}")
    console.print(f"Tokens: {totals['totalTokens']:,}")
    console.print(f"Cost: {_format_currency(totals['totalCost'])}")
    console.print(
        f"\n[bold]Last 24 hours:[/bold] {recent['requests']} requests "
        f"({recent['failures']} failed), {recent['tokens']:,} tokens, "
        f"{_format_currency(recent['cost'])}, {recent['activeUsers']} active users"
    )

    if report["modelCounts"]:
        table = Table(title="Calls by model")
        table.add_column("Model")
        table.add_column("Calls", justify="right")
        for model, count in report["modelCounts"].items():
            table.add_row(model, str(count))
        console.print(table)


@app.command()
def price(
    model: str,
    provider: str = typer.Option("openai", "--provider", help="Canonical provider id"),
    prompt_tokens: int = typer.Option(0, "--prompt-tokens", min=0),
    completion_tokens: int = typer.Option(0, "--completion-tokens", min=0),
    pricing_file: Optional[str] = typer.Option(None, "--pricing-file", help="YAML pricing table")
):
    """Compute the cost of a call from token counts."""
    try:
        table = load_pricing_config(pricing_file) if pricing_file else PRICING_TABLE
    except Exception as e:
        console.print(f"[red]Error loading pricing file:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)

    usage = TokenUsage(prompt_tokens=prompt_tokens, completion_tokens=completion_tokens)
    cost = calculate_cost(model, provider, usage, table)
    console.print(f"{provider}/{model}: {usage.total_tokens:,} tokens -> {_format_currency(cost)}")


@app.command("seed-demo")
def seed_demo(logs_dir: Optional[str] = LogsDirOption):
    """Write demo usage entries into the ledger."""
    try:
        count = seed_demo_data(_store(logs_dir))
        console.print(f"[green]✓[/] Demo usage data inserted ({count} entries)")
    except Exception as e:
        console.print(f"[red]Error seeding demo data:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)


if __name__ == "__main__":
    app()
