from __future__ import annotations

import logging

from ..errors import CommandError
from .command import run_cmd

logger = logging.getLogger(__name__)


def is_online(*, ping_host: str = "8.8.8.8", dry_run: bool = False) -> bool:
    """Best-effort online check."""

    try:
        r = run_cmd(["ping", "-c", "1", "-W", "2", ping_host], check=False, dry_run=dry_run)
    except CommandError:
        # ping itself is missing
        return False
    return r.returncode == 0
