"""
Centralised logging setup.
"""

from __future__ import annotations

import logging
import sys
import warnings
from pathlib import Path
from typing import Optional

_CONFIGURED = False

NOISY_LOGGERS = [
    # Network
    "urllib3", "urllib3.connectionpool", "requests", "charset_normalizer",
    # Image
    "PIL", "PIL.Image", "PIL.PngImagePlugin", "PIL.JpegImagePlugin",
    "PIL.TiffImagePlugin",
    # HTML
    "bs4",
    # Other
    "concurrent", "chardet",
]


def setup_root(log_file: Path, verbose: bool = False) -> None:
    """Configure logging once at startup."""
    global _CONFIGURED
    if _CONFIGURED:
        return

    level = logging.DEBUG if verbose else logging.INFO
    fmt = "%(asctime)s │ %(levelname)-7s │ %(threadName)-14s │ %(message)s"
    datefmt = "%H:%M:%S"

    log_file.parent.mkdir(parents=True, exist_ok=True)

    logging.basicConfig(
        level=level,
        format=fmt,
        datefmt=datefmt,
        handlers=[
            logging.StreamHandler(sys.stdout),
            logging.FileHandler(str(log_file), encoding="utf-8"),
        ],
    )

    # Silence noisy loggers
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.ERROR)
        logging.getLogger(name).propagate = False

    # Pillow complains loudly about odd palettes and EXIF on scraped images
    warnings.filterwarnings("ignore", category=UserWarning, module="PIL")
    warnings.filterwarnings("ignore", message=".*Palette images.*")
    warnings.filterwarnings("ignore", category=Warning, module="bs4")

    _CONFIGURED = True


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Get a logger instance."""
    return logging.getLogger(name or "imgharvest")
