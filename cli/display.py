"""
Rich display components — banners, tables, progress, panels.
"""

from __future__ import annotations

from typing import Any, Dict

from rich import box
from rich.align import Align
from rich.panel import Panel
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TaskProgressColumn,
    TextColumn,
    TimeElapsedColumn,
)
from rich.table import Table
from rich.text import Text

from cli.console import console

BANNER = r"""
 _                 _                               _
(_)_ __ ___   __ _| |__   __ _ _ ____   _____  ___| |_
| | '_ ` _ \ / _` | '_ \ / _` | '__\ \ / / _ \/ __| __|
| | | | | | | (_| | | | | (_| | |   \ V /  __/\__ \ |_
|_|_| |_| |_|\__, |_| |_|\__,_|_|    \_/ \___||___/\__|
             |___/
"""


def show_banner() -> None:
    """Display the startup banner."""
    panel = Panel(
        Align.center(Text(BANNER, style="bold cyan")),
        border_style="bright_blue",
        padding=(0, 2),
    )
    console.print(panel)


def show_config_table(config: Dict[str, Any]) -> None:
    """Display configuration as a rich table."""
    table = Table(
        title="⚙️  Configuration",
        box=box.ROUNDED,
        border_style="bright_blue",
        show_header=True,
        header_style="bold white on blue",
        padding=(0, 1),
    )
    table.add_column("Setting", style="stat_key", min_width=20)
    table.add_column("Value", style="stat_val", min_width=30)

    for key, value in config.items():
        if isinstance(value, bool):
            val_str = "✅ Yes" if value else "❌ No"
            style = "success" if value else "muted"
        elif isinstance(value, (list, tuple)):
            val_str = ", ".join(str(v) for v in value)
            style = "engine"
        elif isinstance(value, (int, float)):
            val_str = str(value)
            style = "highlight"
        else:
            val_str = str(value)
            style = "stat_val"

        table.add_row(key, Text(val_str, style=style))

    console.print(table)
    console.print()


def create_progress() -> Progress:
    """Progress bar tracking saved images against the target."""
    return Progress(
        SpinnerColumn("dots", style="progress"),
        TextColumn("[progress]{task.description}[/]"),
        BarColumn(bar_width=40, complete_style="green", finished_style="bright_green"),
        TaskProgressColumn(),
        MofNCompleteColumn(),
        TextColumn("│"),
        TimeElapsedColumn(),
        console=console,
        expand=False,
    )


def show_run_report(stats: Dict[str, Any], stored: int, failed_batches: int) -> None:
    table = Table(
        title="📊 Ingestion Report",
        box=box.DOUBLE_EDGE,
        border_style="bright_green",
        show_header=True,
        header_style="bold white on green",
    )
    table.add_column("Metric", style="stat_key", min_width=22)
    table.add_column("Count", justify="right", style="stat_val", min_width=8)

    elapsed = stats.get("elapsed", 0.0)
    saved = stats.get("saved", 0)

    table.add_row("🌐 URLs attempted", str(stats.get("attempted", 0)))
    table.add_row("✅ Saved", str(saved))
    table.add_row("⏭️  Dropped (fetch/decode)", str(stats.get("dropped", 0)))
    table.add_row("🚫 Over quota", str(stats.get("over_quota", 0)))
    table.add_row("❌ Write failed", str(stats.get("write_failed", 0)))
    table.add_section()
    table.add_row("💾 Records stored", str(stored))
    table.add_row("🗑️  Batches dropped", str(failed_batches))
    table.add_section()
    table.add_row("⏱️  Elapsed", f"{elapsed:.2f}s")
    table.add_row("🚀 Throughput", f"{saved / max(elapsed, 0.1):.2f} img/s")

    console.print()
    console.print(table)
    console.print()


def show_engine_health(health_data: Dict[str, Dict]) -> None:
    """Show search engine health table."""
    if not health_data:
        return

    table = Table(
        title="🏥 Search Engine Health",
        box=box.ROUNDED,
        border_style="cyan",
    )
    table.add_column("Engine", style="engine")
    table.add_column("Visits", justify="right")
    table.add_column("Success", justify="right")
    table.add_column("Avg Latency", justify="right")
    table.add_column("URLs/visit", justify="right")
    table.add_column("Failures", justify="right")

    for name, data in health_data.items():
        table.add_row(
            name,
            str(data.get("visits", 0)),
            data.get("success_rate", "0%"),
            data.get("avg_latency", "0s"),
            data.get("avg_urls", "0"),
            str(data.get("failures", 0)),
        )

    console.print(table)
    console.print()


def show_goodbye(save_dir: str, interrupted: bool = False) -> None:
    """Show exit message."""
    if interrupted:
        panel = Panel(
            Align.center(Text(
                f"⚠️  Interrupted — images saved so far are in\n{save_dir}",
                style="warning",
            )),
            border_style="yellow",
            title="Stopped",
        )
    else:
        panel = Panel(
            Align.center(Text(f"✅ All done!\nImages: {save_dir}", style="success")),
            border_style="green",
            title="Complete",
        )

    console.print(panel)
