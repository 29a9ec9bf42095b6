"""
Rich console singleton — used everywhere for styled output.
"""

from rich.console import Console
from rich.theme import Theme

THEME = Theme({
    "info":      "cyan",
    "success":   "bold green",
    "warning":   "bold yellow",
    "error":     "bold red",
    "highlight": "bold magenta",
    "muted":     "dim white",
    "engine":    "bold cyan",
    "progress":  "bold blue",
    "stat_key":  "bold white",
    "stat_val":  "cyan",
})

console = Console(theme=THEME)
