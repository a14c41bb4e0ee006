from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional, Set

from .lib.env import PATHS

DEFAULT_LOG_PATH = PATHS.log_default
FALLBACK_LOG_NAME = "zroot-installer.log"
MASK = "********"

# Shorter values would mask unrelated text.
MIN_SECRET_LEN = 4


class RedactSecrets(logging.Filter):
    """Mask registered secret values in every record that reaches a handler."""

    def __init__(self) -> None:
        super().__init__()
        self._secrets: Set[str] = set()

    def add(self, *values: Optional[str]) -> None:
        for v in values:
            if v and len(v) >= MIN_SECRET_LEN:
                self._secrets.add(v)

    def filter(self, record: logging.LogRecord) -> bool:
        if not self._secrets:
            return True
        msg = record.getMessage()
        # Longest first so a secret containing another is masked whole.
        for s in sorted(self._secrets, key=len, reverse=True):
            msg = msg.replace(s, MASK)
        record.msg = msg
        record.args = None
        return True


_redactor = RedactSecrets()


def redact(*values: Optional[str]) -> None:
    """Register values (passwords, passphrases) that must never appear in logs."""

    _redactor.add(*values)


def _open_file_handler(log_path: str) -> logging.FileHandler:
    try:
        Path(os.path.dirname(log_path) or ".").mkdir(parents=True, exist_ok=True)
        return logging.FileHandler(log_path)
    except OSError:
        # Live media often mount /var/log read-only.
        return logging.FileHandler(str(Path.cwd() / FALLBACK_LOG_NAME))


def configure_logging(
    log_path: str = DEFAULT_LOG_PATH,
    level: int = logging.INFO,
    also_console: bool = True,
) -> str:
    """Set up the install log and console output once per process.

    The log file always receives DEBUG, including captured command output;
    level only governs the console. Returns the file actually opened.
    """

    root = logging.getLogger()
    if getattr(root, "_zroot_log_path", None):
        return root._zroot_log_path  # type: ignore[attr-defined]

    root.setLevel(logging.DEBUG)
    fmt = logging.Formatter(
        fmt="%(asctime)s %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S%z",
    )

    file_handler = _open_file_handler(log_path)
    file_handler.setLevel(logging.DEBUG)
    handlers: list[logging.Handler] = [file_handler]

    if also_console:
        console = logging.StreamHandler()
        console.setLevel(level)
        handlers.append(console)

    for h in handlers:
        h.setFormatter(fmt)
        h.addFilter(_redactor)
        root.addHandler(h)

    chosen_path = file_handler.baseFilename
    setattr(root, "_zroot_log_path", chosen_path)

    logging.getLogger(__name__).info("Logging initialized (requested=%s, actual=%s)", log_path, chosen_path)
    return chosen_path
