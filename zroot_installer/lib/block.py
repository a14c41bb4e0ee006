from __future__ import annotations

import logging
import os
import re
import stat
from pathlib import Path
from typing import List

from .topology import partition_prefix

logger = logging.getLogger(__name__)


def is_block_device(path: str) -> bool:
    try:
        return stat.S_ISBLK(os.stat(path).st_mode)
    except OSError:
        return False


def _first_fields(path: str) -> List[str]:
    p = Path(path)
    if not p.exists():
        return []
    out: List[str] = []
    for line in p.read_text(encoding="utf-8", errors="ignore").splitlines():
        parts = line.split()
        if parts:
            out.append(parts[0])
    return out


def mounted_sources(mounts_path: str = "/proc/self/mounts") -> List[str]:
    return [s.replace("\\040", " ") for s in _first_fields(mounts_path)]


def active_swaps(swaps_path: str = "/proc/swaps") -> List[str]:
    # First line is the column header.
    return _first_fields(swaps_path)[1:]


def matches_device(device: str, source: str) -> bool:
    """True if source is exactly the disk or one of its partitions.

    /dev/sda matches /dev/sda and /dev/sda1, never /dev/sdaa1.
    """

    if source == device:
        return True
    prefix = partition_prefix(device)
    return re.fullmatch(re.escape(prefix) + r"[0-9]+", source) is not None


def device_users(
    device: str,
    *,
    mounts_path: str = "/proc/self/mounts",
    swaps_path: str = "/proc/swaps",
    include_swaps: bool = True,
) -> List[str]:
    """Mount sources (and swap devices) that live on the target disk."""

    users = [s for s in mounted_sources(mounts_path) if matches_device(device, s)]
    if include_swaps:
        users += [s for s in active_swaps(swaps_path) if matches_device(device, s)]
    return sorted(set(users))
