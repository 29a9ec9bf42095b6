"""
Typer CLI application with Rich integration.

Commands:
    create    — Scrape, resize and store N images
    read      — Stream N stored records back (wraps around)
    status    — Show store and image directory stats
    config    — Show current configuration
"""

from __future__ import annotations

import time
from dataclasses import replace
from pathlib import Path
from typing import Optional

import typer
from rich.prompt import IntPrompt

from cli.callbacks import validate_count, validate_workers
from cli.console import console
from cli.display import (
    create_progress,
    show_banner,
    show_config_table,
    show_engine_health,
    show_goodbye,
    show_run_report,
)

app = typer.Typer(
    name="imgharvest",
    help="🐾 imgharvest — scrape, resize and catalogue pet images",
    rich_markup_mode="rich",
    add_completion=True,
    no_args_is_help=False,
    pretty_exceptions_enable=True,
    pretty_exceptions_show_locals=False,
)


def _ask_count() -> int:
    while True:
        value = IntPrompt.ask("Please enter the images count you want")
        if value >= 0:
            return value
        console.print("[error]count number must be positive[/]")


def _open_service(output: Optional[Path] = None, workers: Optional[int] = None, verbose: bool = False):
    """Bootstrap config, logging and the store. Any failure here is fatal."""
    from config.settings import cfg
    from core.service import ImageService
    from core.store import SQLiteImageRepository
    from utils.exceptions import ConfigurationError, StoreError
    from utils.log_config import setup_root

    if output is not None:
        cfg.paths = replace(cfg.paths, images_dir=output)
    if workers is not None:
        cfg.crawl = replace(cfg.crawl, workers=workers)
    cfg.verbose = verbose or cfg.verbose

    try:
        cfg.paths.ensure()
        cfg.validate()
        setup_root(cfg.paths.log_file, verbose=cfg.verbose)
        repo = SQLiteImageRepository(cfg.paths.db_path, page_size=cfg.store.page_size)
    except (ConfigurationError, StoreError, OSError) as exc:
        console.print(f"[error]Startup failed: {exc}[/]")
        raise typer.Exit(code=1)

    return cfg, ImageService(repo, cfg.paths.images_dir, cfg)


@app.command()
def create(
    count: Optional[int] = typer.Argument(
        None,
        help="How many images to save (prompted when omitted)",
        callback=validate_count,
    ),
    proxy: Optional[bool] = typer.Option(
        None,
        "--proxy/--no-proxy",
        help="Route image fetches through a scraped free-proxy list",
    ),
    output: Optional[Path] = typer.Option(
        None,
        "--output", "-o",
        help="Directory resized images are written to",
        file_okay=False,
    ),
    workers: Optional[int] = typer.Option(
        None,
        "--workers", "-w",
        help="Number of fetch threads",
        callback=validate_workers,
    ),
    loop: bool = typer.Option(
        False,
        "--loop", "-l",
        help="Keep prompting for another count after each run",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """
    📥 [bold]Scrape images[/bold] from Google / Bing, resize and store them.

    [dim]Examples:[/dim]
        imgharvest create 100
        imgharvest create 500 --proxy --workers 2000
        imgharvest create --loop
    """
    from core.health import HealthMonitor
    from core.pipeline import ShutdownHandler

    show_banner()
    cfg, service = _open_service(output, workers, verbose)
    use_proxy = cfg.proxy.enabled if proxy is None else proxy

    show_config_table({
        "Images Dir": str(cfg.paths.images_dir),
        "Database": str(cfg.paths.db_path),
        "Proxy": use_proxy,
        "Workers": cfg.crawl.workers,
        "Rate Limit": f"{cfg.crawl.rate_limit}/s",
        "Image Width": f"{cfg.crawl.image_width}px",
    })

    interrupted = False
    try:
        while True:
            target = count if count is not None else _ask_count()
            count = None

            health = HealthMonitor()
            run, done = service.start_ingestion(cfg.paths.images_dir, target, use_proxy, health)
            shutdown = ShutdownHandler(run.stop)

            t0 = time.monotonic()
            progress = create_progress()
            task = progress.add_task("Downloading images...", total=target)
            try:
                with progress:
                    while not done.wait(0.2):
                        progress.update(task, completed=run.saved)
                    progress.update(task, completed=run.saved)
            finally:
                shutdown.restore()
            elapsed = time.monotonic() - t0

            interrupted = run.saved < target
            show_run_report(
                run.stats.as_dict(),
                service.writer.stored.value,
                service.writer.failures.value,
            )
            show_engine_health(health.get_report())
            console.print(f"[info]Time taken:[/] {elapsed:.2f}s")

            if not loop or interrupted:
                break
    except (KeyboardInterrupt, EOFError):
        interrupted = True
        console.print()
    finally:
        with console.status("Flushing pending records...", spinner="dots"):
            service.close(timeout=cfg.store.batch_interval * 5)

    show_goodbye(str(cfg.paths.images_dir), interrupted=interrupted)


@app.command()
def read(
    count: Optional[int] = typer.Argument(
        None,
        help="How many records to read (prompted when omitted)",
        callback=validate_count,
    ),
    loop: bool = typer.Option(
        False,
        "--loop", "-l",
        help="Keep prompting for another count after each read",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """
    📤 [bold]Read stored records[/bold] back in pages, wrapping around the store.

    [dim]Example: imgharvest read 25[/dim]
    """
    from utils.log_config import get_logger

    log = get_logger("imgharvest.read")
    _, service = _open_service(verbose=verbose)

    try:
        while True:
            target = count if count is not None else _ask_count()
            count = None

            t0 = time.monotonic()
            got = 0
            for record in service.read_records(target):
                log.info("read image: %s", record.file)
                got += 1
            elapsed = time.monotonic() - t0

            style = "success" if got == target else "warning"
            console.print(f"[{style}]Read {got}/{target} records[/]")
            console.print(f"[info]Time taken:[/] {elapsed:.3f}s")

            if not loop:
                break
    except (KeyboardInterrupt, EOFError):
        console.print()
    finally:
        service.close()


@app.command()
def status() -> None:
    """
    📊 Show stored record count and image directory stats.
    """
    from rich import box
    from rich.table import Table

    from config.settings import cfg
    from core.store import SQLiteImageRepository
    from utils.exceptions import StoreError

    show_banner()

    if not cfg.paths.db_path.exists():
        console.print("[warning]No database found. Run 'imgharvest create' first.[/]")
        raise typer.Exit()

    try:
        repo = SQLiteImageRepository(cfg.paths.db_path, page_size=cfg.store.page_size)
        stored = repo.count()
        repo.close()
    except StoreError as exc:
        console.print(f"[error]{exc}[/]")
        raise typer.Exit(code=1)

    files = list(cfg.paths.images_dir.glob("*.jpg")) if cfg.paths.images_dir.exists() else []
    size_mb = sum(f.stat().st_size for f in files) / (1024 * 1024)

    table = Table(title="📊 Store Status", box=box.ROUNDED, border_style="bright_blue")
    table.add_column("Metric", style="stat_key")
    table.add_column("Value", justify="right", style="stat_val")
    table.add_row("💾 Stored records", str(stored))
    table.add_row("🖼️  Image files", str(len(files)))
    table.add_row("📦 Disk usage", f"{size_mb:.1f} MB")

    console.print(table)
    if len(files) > stored:
        console.print(
            f"\n[warning]⚠️  {len(files) - stored} files have no record "
            "(dropped batches or an interrupted flush)[/]"
        )
    console.print()


@app.command()
def config() -> None:
    """
    ⚙️  Show current configuration from settings.py.
    """
    from config.settings import cfg

    show_banner()
    show_config_table({
        "Images Dir": str(cfg.paths.images_dir),
        "Database": str(cfg.paths.db_path),
        "Log File": str(cfg.paths.log_file),
        "Proxy": cfg.proxy.enabled,
        "Proxy Source": cfg.proxy.source_url,
        "Proxy Refresh": f"{cfg.proxy.refresh_interval}s",
        "Workers": cfg.crawl.workers,
        "Rate Limit": f"{cfg.crawl.rate_limit}/s",
        "URL Queue": cfg.crawl.url_queue_size,
        "Request Timeout": f"{cfg.crawl.request_timeout}s",
        "Image Width": f"{cfg.crawl.image_width}px",
        "Queries": len(cfg.crawl.queries),
        "Batch Interval": f"{cfg.store.batch_interval}s",
        "Page Size": cfg.store.page_size,
        "Read Timeout": f"{cfg.store.read_timeout * 1000:.0f}ms",
        "Verbose": cfg.verbose,
    })


@app.callback(invoke_without_command=True)
def default(ctx: typer.Context) -> None:
    """
    🐾 imgharvest — scrape, resize and catalogue pet images.

    Run [bold]imgharvest create[/bold] to start scraping.
    """
    if ctx.invoked_subcommand is None:
        show_banner()
        console.print("Available commands:\n")
        console.print("  [bold cyan]create[/]   Scrape and store images")
        console.print("  [bold cyan]read[/]     Read stored records back")
        console.print("  [bold cyan]status[/]   Show store statistics")
        console.print("  [bold cyan]config[/]   Show current configuration")
        console.print()
        console.print("[muted]Run 'python main.py create --help' for detailed options[/]")
        console.print()
