import logging
import os
from typing import Optional

from rich.logging import RichHandler

from mongoref.lib.constants import LOG_LEVEL_ENV_VAR_NAME, console

LOG_LEVEL_NAMES = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}


def setup_logging(level: Optional[str] = None) -> None:
    """
    Configures logging so that log messages are displayed on the console, by `rich`. Safe to call multiple times.

    Level resolution (first match wins):
      1) argument `level`
      2) env var `MONGOREF_LOG_LEVEL`
      3) default = "INFO"
    """
    if level is None:
        level = os.environ.get(LOG_LEVEL_ENV_VAR_NAME, "INFO")

    level = str(level).upper().strip()
    if level not in LOG_LEVEL_NAMES:
        level = "INFO"

    # Avoid duplicated handlers on re-init.
    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)

    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%H:%M:%S]",
        handlers=[
            RichHandler(
                console=console,
                rich_tracebacks=True,
                show_path=False,
            )
        ],
    )
