from __future__ import annotations

import logging
from pathlib import Path
from typing import Tuple

DEFAULT_LOG_PATH = "/var/log/ssv_setup.log"
FALLBACK_LOG_NAME = "ssv_setup.log"

_FILE_FORMAT = logging.Formatter(
    fmt="%(asctime)s %(levelname)s %(name)s: %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%S%z",
)
_CONSOLE_FORMAT = logging.Formatter(fmt="%(levelname)s %(message)s")


def _open_log_file(log_path: str) -> Tuple[logging.Handler, str]:
    try:
        Path(log_path).parent.mkdir(parents=True, exist_ok=True)
        return logging.FileHandler(log_path, encoding="utf-8"), log_path
    except OSError:
        # /var/log is root-only; a dry run by an ordinary user lands here.
        fallback = str(Path.cwd() / FALLBACK_LOG_NAME)
        return logging.FileHandler(fallback, encoding="utf-8"), fallback


def configure_logging(
    log_path: str = DEFAULT_LOG_PATH,
    console_level: int = logging.INFO,
    also_console: bool = True,
) -> str:
    """Send installer logging to the setup log and, optionally, the console.

    The file always receives DEBUG records, so the captured stdout/stderr of
    every external command is kept even when the console only shows progress.
    A second call in the same process is a no-op.

    Returns the path of the log file actually opened.
    """

    root = logging.getLogger()
    if getattr(root, "_ssv_configured", False):
        return getattr(root, "_ssv_log_path", log_path)

    root.setLevel(logging.DEBUG)

    file_handler, chosen_path = _open_log_file(log_path)
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(_FILE_FORMAT)
    root.addHandler(file_handler)

    if also_console:
        console = logging.StreamHandler()
        console.setLevel(console_level)
        console.setFormatter(_CONSOLE_FORMAT)
        root.addHandler(console)

    setattr(root, "_ssv_configured", True)
    setattr(root, "_ssv_log_path", chosen_path)

    if chosen_path != log_path:
        logging.getLogger(__name__).warning("Cannot write %s; logging to %s", log_path, chosen_path)
    return chosen_path
