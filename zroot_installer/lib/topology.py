from __future__ import annotations

import re
from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional

from ..errors import UnsupportedTopology
from ..plan import SWAP_PARTITION, SWAP_STRATEGIES

# Whole-disk names directly under /dev: sda, vdb, xvda, nvme0n1, mmcblk0, loop0.
_DISK_RE = re.compile(r"^/dev/[a-z][a-z0-9]*$")

EFI_INDEX = 1


@dataclass(frozen=True)
class DeviceTopology:
    device: str
    efi_partition: str
    data_partition: str
    swap_partition: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "DeviceTopology":
        return cls(
            device=raw["device"],
            efi_partition=raw["efi_partition"],
            data_partition=raw["data_partition"],
            swap_partition=raw.get("swap_partition"),
        )


def partition_prefix(device: str) -> str:
    """Return the string partition indexes are appended to.

    Names ending in a digit (nvme0n1, mmcblk0) need a 'p' separator,
    names ending in a letter (sda, vdb) take the index directly.
    """

    if not _DISK_RE.match(device or ""):
        raise UnsupportedTopology(f"Cannot classify device naming scheme: {device!r}")
    if device[-1].isdigit():
        return f"{device}p"
    return device


def partition_path(device: str, index: int) -> str:
    return f"{partition_prefix(device)}{index}"


def resolve_topology(device: str, swap_strategy: str) -> DeviceTopology:
    """Map a disk and swap strategy onto partition device paths. No I/O."""

    if swap_strategy not in SWAP_STRATEGIES:
        raise UnsupportedTopology(f"Unknown swap strategy: {swap_strategy!r}")

    efi = partition_path(device, EFI_INDEX)
    if swap_strategy == SWAP_PARTITION:
        return DeviceTopology(
            device=device,
            efi_partition=efi,
            swap_partition=partition_path(device, 2),
            data_partition=partition_path(device, 3),
        )
    return DeviceTopology(device=device, efi_partition=efi, data_partition=partition_path(device, 2))
