"""
Typer callback validators.
"""

from __future__ import annotations

from typing import Optional

import typer

from cli.console import console


def validate_count(value: Optional[int]) -> Optional[int]:
    """Image counts must be non-negative; None means prompt for one."""
    if value is None:
        return None
    if value < 0:
        raise typer.BadParameter("count number must be positive")
    return value


def validate_workers(value: Optional[int]) -> Optional[int]:
    if value is None:
        return None
    if value < 1:
        raise typer.BadParameter("Workers must be >= 1")
    if value > 5000:
        console.print("[warning]Warning: >5000 threads may exhaust the OS thread limit[/]")
    return value
