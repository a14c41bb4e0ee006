from __future__ import annotations

import logging
from typing import Mapping, Sequence

from ..errors import CommandError, ExecutionError
from .command import run_cmd
from .env import PATHS

logger = logging.getLogger(__name__)


def chroot_cmd(
    target_root: str,
    argv: Sequence[str],
    *,
    env: Mapping[str, str] | None = None,
    capture: bool = True,
    dry_run: bool = False,
) -> None:
    """Run a command inside target root."""

    run_cmd(["chroot", target_root, *argv], env=env, capture=capture, dry_run=dry_run)


def mount_chroot_binds(target_root: str, *, dry_run: bool = False) -> None:
    """DNS plus the pseudo filesystems emerge, dracut and efibootmgr need."""

    run_cmd(["cp", "--dereference", PATHS.resolv_conf, f"{target_root}/etc/"], dry_run=dry_run)
    for argv in [
        ["mount", "--types", "proc", "/proc", f"{target_root}/proc"],
        ["mount", "--rbind", "/sys", f"{target_root}/sys"],
        ["mount", "--make-rslave", f"{target_root}/sys"],
        ["mount", "--rbind", "/dev", f"{target_root}/dev"],
        ["mount", "--make-rslave", f"{target_root}/dev"],
        ["mount", "--bind", "/run", f"{target_root}/run"],
        ["mount", "--make-slave", f"{target_root}/run"],
    ]:
        run_cmd(argv, dry_run=dry_run)


def umount_chroot_binds(target_root: str, *, dry_run: bool = False) -> None:
    # Reverse of mount_chroot_binds; dev has nested shm/pts from the rbind.
    for p in [
        f"{target_root}/run",
        f"{target_root}/dev/shm",
        f"{target_root}/dev/pts",
        f"{target_root}/dev",
        f"{target_root}/sys",
        f"{target_root}/proc",
    ]:
        run_cmd(["umount", "-l", p], check=False, dry_run=dry_run)


def run_script_in_chroot(
    target_root: str,
    script: str,
    *,
    env: Mapping[str, str],
    dry_run: bool = False,
) -> None:
    """Execute script (a path inside the new root) with env exported.

    Output streams to the console; a non-zero exit raises ExecutionError.
    """

    logger.info("Running %s in changed root %s", script, target_root)
    try:
        chroot_cmd(target_root, ["/bin/bash", script], env=env, capture=False, dry_run=dry_run)
    except CommandError as e:
        raise ExecutionError(f"{script} exited with status {e.returncode}") from e
