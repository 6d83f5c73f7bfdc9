# src/notescribe/config.py
from __future__ import annotations
import logging
from dataclasses import dataclass, asdict
from typing import Any, Dict


@dataclass(frozen=True)
class RenderMode:
    """
    Display options for a single page render.

    show_metadata and show_notes are independent. Image descriptions have
    their own switch because they belong to the editing view only.
    """

    show_metadata: bool = True
    show_notes: bool = True
    reveal_image_descriptions: bool = False

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert the configuration to a dictionary.
        """
        return asdict(self)


READ_MODE = RenderMode()
EDIT_MODE = RenderMode(reveal_image_descriptions=True)


def configure_logging(verbose: bool = False) -> None:
    """
    Route library logging through rich. Only the CLIs call this.
    """
    from rich.logging import RichHandler

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
        force=True,
    )
