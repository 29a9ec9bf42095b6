"""Records that flow from the worker pool into the store and back out."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class ImageRecord:
    """One saved image, identified by its path relative to the save directory."""

    file: str

    def __post_init__(self) -> None:
        if not self.file:
            raise ValueError("ImageRecord.file must be non-empty")
