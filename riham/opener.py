"""
Open local files and folders with the system's default handler.
"""

import logging
import webbrowser
from pathlib import Path

logger = logging.getLogger(__name__)


class OpenError(Exception):
    """The path could not be handed to the system."""
    pass


def open_path(path: str) -> str:
    """
    Open `path` (file or directory) in the default application.

    Returns:
        The file:// URI that was opened
    """
    target = Path(path).expanduser().resolve()
    if not target.exists():
        raise OpenError(f"Path does not exist: {target}")

    uri = target.as_uri()
    if not webbrowser.open(uri):
        raise OpenError(f"No handler available to open {uri}")

    logger.info(f"Opened {uri}")
    return uri
