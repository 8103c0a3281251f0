"""
PulseFeed Command Line
======================

Management commands for configuration checks, database setup, one-off poll
and sweep runs and the HTTP server.

Usage:
    pulsefeed --help                    # Show all commands
    pulsefeed check-config              # Validate configuration
    pulsefeed init-db                   # Initialize database
    pulsefeed poll                      # Run one poll-and-ingest cycle
    pulsefeed fetch-ticker AAPL         # Fetch news for one stock symbol
    pulsefeed sweep                     # Run one enrichment sweep
    pulsefeed stats                     # Show stored news statistics
    pulsefeed serve                     # Start API server with background workers
"""

import asyncio
import sys

import click
from rich.console import Console
from rich.table import Table

from .config.settings import PulseFeedSettings, get_settings
from .database.connection import get_db_manager
from .database.schema import DatabaseSchema
from .dedup.redis_client import create_redis_client, ping_redis
from .utils.exceptions import PulseFeedError, handle_exception
from .utils.logging import configure_application_logging, get_logger_for_component

console = Console()


def _setup_logging(settings: PulseFeedSettings, debug: bool) -> None:
    configure_application_logging(
        log_level="DEBUG" if debug else settings.get_effective_log_level(),
        log_file=settings.logging.file_path,
        enable_console=settings.logging.console_logging,
        structured_logging=settings.logging.structured_logging,
        max_file_size_mb=settings.logging.max_file_size_mb,
        backup_count=settings.logging.backup_count,
    )


def _load_settings(ctx) -> PulseFeedSettings:
    try:
        settings = get_settings()
    except PulseFeedError as e:
        console.print(f"[bold red]❌ Configuration error: {e}[/bold red]")
        sys.exit(1)
    _setup_logging(settings, ctx.obj.get("debug", False))
    return settings


def _run_with_services(ctx, operation: str, func):
    """Build services, await ``func(services)`` and always release them."""
    from .runtime import build_services

    settings = _load_settings(ctx)
    logger = get_logger_for_component("cli")

    async def runner():
        services = build_services(settings)
        try:
            return await func(services)
        finally:
            await services.close()

    try:
        return asyncio.run(runner())
    except PulseFeedError as e:
        handle_exception(e, logger, operation)
        console.print(f"[bold red]❌ {operation} failed: {e.user_message}[/bold red]")
        sys.exit(1)


@click.group(invoke_without_command=True)
@click.option("--debug", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx, debug):
    """PulseFeed - tiered RSS news aggregation."""
    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


@cli.command()
@click.pass_context
def check_config(ctx):
    """Validate configuration and service connectivity."""
    console.print("[bold blue]🔧 Checking PulseFeed Configuration[/bold blue]")
    settings = _load_settings(ctx)

    table = Table(title="Configuration Status")
    table.add_column("Component", style="cyan")
    table.add_column("Status", style="green")
    table.add_column("Details")

    checks = [
        ("Database", _check_database_config),
        ("Redis", _check_redis_config),
        ("Analysis", _check_ai_config),
        ("Tiers", _check_tier_config),
        ("Polling", _check_polling_config),
    ]

    all_passed = True
    for name, check_func in checks:
        status, details = check_func(settings)
        table.add_row(name, "✅ Valid" if status else "❌ Invalid", details)
        all_passed = all_passed and status

    console.print(table)

    if all_passed:
        console.print("[bold green]✅ All configuration checks passed![/bold green]")
    else:
        console.print("[bold red]❌ Configuration validation failed[/bold red]")
        sys.exit(1)


@cli.command()
@click.pass_context
def init_db(ctx):
    """Create the news table and indexes."""
    settings = _load_settings(ctx)
    schema = DatabaseSchema(settings.database.path)
    schema.create_tables()

    if schema.verify_schema():
        console.print(f"[bold green]✅ Database ready at {settings.database.path}[/bold green]")
    else:
        console.print("[bold red]❌ Database schema verification failed[/bold red]")
        sys.exit(1)


@cli.command()
@click.pass_context
def poll(ctx):
    """Run one poll-and-ingest cycle over all verticals."""

    async def run(services):
        return await services.poll_worker.run_cycle()

    result = _run_with_services(ctx, "poll", run)

    table = Table(title="Poll Cycle")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")
    for key, value in result.to_dict().items():
        if key != "failed_sources":
            table.add_row(key, str(value))
    console.print(table)

    if result.failed_sources:
        console.print(f"[yellow]⚠️  Failed sources: {', '.join(result.failed_sources)}[/yellow]")


@cli.command()
@click.argument("ticker")
@click.pass_context
def fetch_ticker(ctx, ticker):
    """Fetch and ingest news for one stock TICKER."""

    async def run(services):
        return await services.ticker_fetcher.fetch(ticker)

    result = _run_with_services(ctx, "fetch-ticker", run)
    console.print(
        f"[bold green]✅ {result.ticker}: {result.inserted} new, "
        f"{result.duplicates} duplicates of {result.fetched} fetched[/bold green]"
    )
    if result.failed_sources:
        console.print(f"[yellow]⚠️  Failed sources: {', '.join(result.failed_sources)}[/yellow]")


@cli.command()
@click.pass_context
def sweep(ctx):
    """Run one enrichment sweep."""

    async def run(services):
        if not services.analyzer.is_available():
            console.print("[yellow]⚠️  Analyzer unavailable (missing key or quota exhausted)[/yellow]")
        return await services.enrichment_worker.run_sweep()

    result = _run_with_services(ctx, "sweep", run)
    console.print(
        f"[bold green]✅ Enriched {result.enriched} of {result.candidates} "
        f"({result.failed} failed)[/bold green]"
    )


@cli.command()
@click.pass_context
def stats(ctx):
    """Show stored news statistics."""
    from .storage.news_repository import NewsRepository

    settings = _load_settings(ctx)
    DatabaseSchema(settings.database.path).create_tables()
    db = get_db_manager(settings.database.path, settings.database.pool_size)

    summary = NewsRepository(db).get_statistics()
    info = db.get_database_info()

    table = Table(title=f"News Items ({summary['total']} total, {info['database_size_mb']:.1f}MB)")
    table.add_column("Vertical", style="cyan")
    table.add_column("Total", justify="right")
    table.add_column("Enriched", justify="right")
    table.add_column("Pending", justify="right")
    table.add_column("Latest")

    for vertical, row in sorted(summary["by_vertical"].items()):
        table.add_row(
            vertical, str(row["total"]), str(row["enriched"]), str(row["pending"]), row["latest"] or "-"
        )
    console.print(table)
    console.print(
        f"[dim]Connections: {info['connections_open']} open, {info['connections_idle']} idle, "
        f"{info['overflow_connections']} overflow[/dim]"
    )


@cli.command()
@click.option("--host", default=None, help="Bind address (default: from settings)")
@click.option("--port", default=None, type=int, help="Bind port (default: from settings)")
@click.option("--no-workers", is_flag=True, help="Serve the API without background workers")
@click.pass_context
def serve(ctx, host, port, no_workers):
    """Start the HTTP API with poll and enrichment workers."""
    import uvicorn

    from .api.app import create_app

    settings = _load_settings(ctx)
    host = host or settings.api.host
    port = port or settings.api.port

    console.print(f"[bold blue]🚀 PulseFeed API on http://{host}:{port}[/bold blue]")
    uvicorn.run(
        create_app(start_workers=not no_workers),
        host=host,
        port=port,
        log_config=None,
    )


def _check_database_config(settings) -> tuple[bool, str]:
    try:
        schema = DatabaseSchema(settings.database.path)
        schema.create_tables()
        return schema.verify_schema(), f"Path: {settings.database.path}"
    except Exception as e:
        return False, str(e)


def _check_redis_config(settings) -> tuple[bool, str]:
    async def probe():
        client = create_redis_client(settings.redis)
        try:
            return await ping_redis(client)
        finally:
            await client.aclose()

    reachable = asyncio.run(probe())
    return reachable, f"{settings.redis.host}:{settings.redis.port} ({'reachable' if reachable else 'unreachable'})"


def _check_ai_config(settings) -> tuple[bool, str]:
    if not settings.ai_enabled():
        return True, "No Groq key, enrichment disabled"
    return True, f"Model: {settings.ai.groq_model}, daily limit: {settings.ai.daily_request_limit}"


def _check_tier_config(settings) -> tuple[bool, str]:
    tiers = settings.tiers
    source = tiers.entitlement_url or "static lists only"
    return True, (
        f"Entitlements: {source}, {len(tiers.premium_user_ids)} premium / "
        f"{len(tiers.pro_user_ids)} pro configured"
    )


def _check_polling_config(settings) -> tuple[bool, str]:
    polling = settings.polling
    return True, (
        f"Every {polling.interval_seconds}s, {polling.max_items_per_source} items/source, "
        f"{polling.source_delay_ms}ms pacing"
    )


def main() -> None:
    try:
        cli()
    except KeyboardInterrupt:
        console.print("\n[yellow]👋 PulseFeed interrupted by user[/yellow]")
        sys.exit(130)


if __name__ == "__main__":
    main()
