"""Logging setup for the CLI and the service.

Logs go to the console through rich and to a timestamped file under the
configured log directory.
"""

import logging
from datetime import datetime
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def setup_logging(
    level: str = "INFO",
    log_dir: Path | str | None = "logs",
    console: Console | None = None,
) -> Path | None:
    """Configure the root logger.

    Args:
        level: Log level name
        log_dir: Directory for the run log file, None disables file logging
        console: Rich console for terminal output

    Returns:
        Path of the log file, if one was created
    """
    root = logging.getLogger()
    root.setLevel(level.upper())

    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    root.addHandler(
        RichHandler(console=console, show_path=False, rich_tracebacks=True, markup=False),
    )

    if log_dir is None:
        return None

    directory = Path(log_dir)
    directory.mkdir(parents=True, exist_ok=True)
    log_path = directory / f"discovery_{datetime.now().strftime('%Y-%m-%d_%H-%M-%S')}.log"

    file_handler = logging.FileHandler(log_path, encoding="utf-8")
    file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(file_handler)

    logging.getLogger(__name__).info("Initialized logging to %s", log_path)
    return log_path
