from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import asdict, dataclass
from typing import Any, Dict, Iterator, Optional, Tuple

from ..errors import CommandError, ProvisioningError
from ..plan import InstallPlan
from .block import active_swaps, device_users
from .command import run_cmd
from .env import PATHS
from .topology import DeviceTopology

logger = logging.getLogger(__name__)

POOL_NAME = "tank"
MAPPER_NAME = "tank-crypt"

# Fixed policy for the produced system, not user-tunable.
POOL_OPTIONS: Tuple[Tuple[str, str], ...] = (
    ("ashift", "12"),
    ("autotrim", "on"),
    ("compatibility", "openzfs-2.1-linux"),
)
POOL_FS_PROPERTIES: Tuple[Tuple[str, str], ...] = (
    ("acltype", "posixacl"),
    ("xattr", "sa"),
    ("relatime", "on"),
    ("compression", "zstd"),
    ("recordsize", "1M"),
    ("dnodesize", "auto"),
)

LUKS_FORMAT_ARGS = (
    "--type", "luks2",
    "--cipher", "aes-xts-plain64",
    "--key-size", "512",
    "--hash", "sha256",
    "--pbkdf", "argon2id",
)

EFI_END = "513MiB"
SWAP_END = "4609MiB"


@dataclass(frozen=True)
class Dataset:
    name: str
    mountpoint: str
    canmount: Optional[str] = None
    properties: Tuple[Tuple[str, str], ...] = ()

    def full_name(self, pool: str = POOL_NAME) -> str:
        return f"{pool}/{self.name}"

    @property
    def auto_mounted(self) -> bool:
        return self.mountpoint != "none" and self.canmount != "noauto"


DATASETS: Tuple[Dataset, ...] = (
    Dataset("ROOT", "none"),
    Dataset("ROOT/gentoo", "/", canmount="noauto"),
    Dataset("home", "/home"),
    Dataset("var-log", "/var/log", properties=(("compression", "gzip"), ("recordsize", "64K"))),
    Dataset("var-cache", "/var/cache", properties=(("compression", "lz4"), ("recordsize", "128K"))),
    Dataset("tmp", "/tmp", properties=(("compression", "lz4"), ("recordsize", "128K"), ("setuid", "off"))),
)
ROOT_DATASET = DATASETS[1]


@dataclass(frozen=True)
class StorageHandle:
    """Where the pool lives once provisioning is done.

    backing_device is the raw data partition, or the opened LUKS mapping
    when encryption is on. data_partition is always the raw partition.
    """

    backing_device: str
    data_partition: str
    efi_partition: str
    target_root: str
    encrypted: bool = False
    mapper_name: Optional[str] = None
    swap_partition: Optional[str] = None
    pool: str = POOL_NAME

    @property
    def root_dataset(self) -> str:
        return ROOT_DATASET.full_name(self.pool)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "StorageHandle":
        return cls(**raw)


@contextmanager
def _stage(name: str) -> Iterator[None]:
    logger.info("Storage stage: %s", name)
    try:
        yield
    except CommandError as e:
        raise ProvisioningError(f"{name} failed: {e}") from e


def _opts(flag: str, pairs: Tuple[Tuple[str, str], ...]) -> list[str]:
    out: list[str] = []
    for k, v in pairs:
        out += [flag, f"{k}={v}"]
    return out


def unmount_existing(
    device: str,
    *,
    dry_run: bool = False,
    mounts_path: str = "/proc/self/mounts",
    swaps_path: str = "/proc/swaps",
) -> None:
    """Release every mount and swap that sits on the disk or its partitions."""

    swaps = set(active_swaps(swaps_path))
    for user in device_users(device, mounts_path=mounts_path, swaps_path=swaps_path):
        if user in swaps:
            run_cmd(["swapoff", user], dry_run=dry_run)
        else:
            run_cmd(["umount", user], dry_run=dry_run)


def create_partitions(topology: DeviceTopology, *, dry_run: bool = False) -> None:
    disk = topology.device
    run_cmd(["parted", "-s", disk, "mkpart", "primary", "fat32", "1MiB", EFI_END], dry_run=dry_run)
    run_cmd(["parted", "-s", disk, "set", "1", "esp", "on"], dry_run=dry_run)

    if topology.swap_partition:
        run_cmd(["parted", "-s", disk, "mkpart", "primary", "linux-swap", EFI_END, SWAP_END], dry_run=dry_run)
        run_cmd(["parted", "-s", disk, "mkpart", "primary", SWAP_END, "100%"], dry_run=dry_run)
    else:
        run_cmd(["parted", "-s", disk, "mkpart", "primary", EFI_END, "100%"], dry_run=dry_run)

    # Inform kernel
    run_cmd(["partprobe", disk], dry_run=dry_run)
    run_cmd(["udevadm", "settle"], check=False, dry_run=dry_run)


def setup_encryption(data_partition: str, passphrase: str, *, dry_run: bool = False) -> str:
    """LUKS2-format and open the data partition; return the mapping path."""

    run_cmd(
        ["cryptsetup", "luksFormat", "--batch-mode", *LUKS_FORMAT_ARGS, "--key-file", "-", data_partition],
        input_text=passphrase,
        dry_run=dry_run,
    )
    run_cmd(
        ["cryptsetup", "open", "--key-file", "-", data_partition, MAPPER_NAME],
        input_text=passphrase,
        dry_run=dry_run,
    )
    return f"/dev/mapper/{MAPPER_NAME}"


def create_pool(backing_device: str, *, target_root: str, dry_run: bool = False) -> None:
    run_cmd(["modprobe", "zfs"], dry_run=dry_run)
    run_cmd(["zgenhostid", "-f"], dry_run=dry_run)
    run_cmd(
        [
            "zpool",
            "create",
            "-f",
            *_opts("-o", POOL_OPTIONS),
            "-R",
            target_root,
            *_opts("-O", POOL_FS_PROPERTIES),
            "-m",
            "none",
            POOL_NAME,
            backing_device,
        ],
        dry_run=dry_run,
    )


def create_datasets(*, dry_run: bool = False) -> None:
    for ds in DATASETS:
        argv = ["zfs", "create", "-o", f"mountpoint={ds.mountpoint}"]
        if ds.canmount:
            argv += ["-o", f"canmount={ds.canmount}"]
        argv += _opts("-o", ds.properties)
        run_cmd([*argv, ds.full_name()], dry_run=dry_run)
    run_cmd(["zpool", "set", f"bootfs={ROOT_DATASET.full_name()}", POOL_NAME], dry_run=dry_run)


def mount_all(efi_partition: str, *, target_root: str, dry_run: bool = False) -> None:
    # Root first: the rest mount underneath it.
    run_cmd(["zfs", "mount", ROOT_DATASET.full_name()], dry_run=dry_run)
    for ds in DATASETS:
        if ds.auto_mounted:
            run_cmd(["zfs", "mount", ds.full_name()], dry_run=dry_run)

    run_cmd(["mkdir", "-p", f"{target_root}/efi"], dry_run=dry_run)
    run_cmd(["mount", efi_partition, f"{target_root}/efi"], dry_run=dry_run)


def provision(
    topology: DeviceTopology,
    plan: InstallPlan,
    *,
    target_root: str = PATHS.target_root,
    dry_run: bool = False,
    mounts_path: str = "/proc/self/mounts",
    swaps_path: str = "/proc/swaps",
) -> StorageHandle:
    """Partition, format, encrypt and pool the target disk.

    Strictly ordered; the first failing stage raises ProvisioningError and
    nothing already done is undone.
    """

    disk = topology.device
    logger.info(
        "Provisioning disk=%s encryption=%s swap=%s target_root=%s",
        disk,
        plan.encryption,
        plan.swap,
        target_root,
    )

    with _stage("unmount-existing"):
        unmount_existing(disk, dry_run=dry_run, mounts_path=mounts_path, swaps_path=swaps_path)

    with _stage("partition-table-create"):
        run_cmd(["parted", "-s", disk, "mklabel", "gpt"], dry_run=dry_run)

    with _stage("partitions-create"):
        create_partitions(topology, dry_run=dry_run)

    with _stage("format-efi"):
        run_cmd(["mkfs.vfat", "-F", "32", "-s", "1", topology.efi_partition], dry_run=dry_run)

    if topology.swap_partition:
        with _stage("swap"):
            run_cmd(["mkswap", topology.swap_partition], dry_run=dry_run)
            run_cmd(["swapon", topology.swap_partition], dry_run=dry_run)
    else:
        logger.info("Compressed RAM swap selected; no swap partition to format")

    backing_device = topology.data_partition
    if plan.encryption:
        with _stage("luks"):
            backing_device = setup_encryption(
                topology.data_partition, plan.encryption_passphrase, dry_run=dry_run
            )

    with _stage("pool-create"):
        create_pool(backing_device, target_root=target_root, dry_run=dry_run)

    with _stage("datasets-create"):
        create_datasets(dry_run=dry_run)

    # The pool has to come back under the altroot the bootloader expects.
    with _stage("pool-export"):
        run_cmd(["zpool", "export", POOL_NAME], dry_run=dry_run)

    with _stage("pool-reimport"):
        run_cmd(["zpool", "import", "-N", "-R", target_root, POOL_NAME], dry_run=dry_run)

    with _stage("mount-all"):
        mount_all(topology.efi_partition, target_root=target_root, dry_run=dry_run)

    with _stage("copy-host-identity"):
        run_cmd(["mkdir", "-p", f"{target_root}/etc"], dry_run=dry_run)
        run_cmd(["cp", PATHS.hostid, f"{target_root}/etc/"], dry_run=dry_run)

    handle = StorageHandle(
        backing_device=backing_device,
        data_partition=topology.data_partition,
        efi_partition=topology.efi_partition,
        swap_partition=topology.swap_partition,
        target_root=target_root,
        encrypted=plan.encryption,
        mapper_name=MAPPER_NAME if plan.encryption else None,
    )
    logger.info("Pool %s backed by %s mounted at %s", POOL_NAME, backing_device, target_root)
    return handle
