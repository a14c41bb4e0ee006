from __future__ import annotations

import logging
from typing import Any, Dict

from ..lib.chroot import umount_chroot_binds
from ..lib.command import run_cmd
from ..lib.storage import StorageHandle
from ..pipeline import InstallContext
from ..state_store import get_output

logger = logging.getLogger(__name__)


class FinalizeStep:
    step_id = "90_finalize"

    def run(self, ctx: InstallContext, state: Dict[str, Any]) -> Dict[str, Any]:
        storage = StorageHandle.from_dict(get_output(state, "storage"))
        target_root = ctx.target_root
        dry_run = ctx.dry_run

        logger.info("Finalize summary: %s", (state.get("execution") or {}).get("decisions") or {})

        run_cmd(["udevadm", "trigger"], check=False, dry_run=dry_run)

        # Reverse dependency order: pseudo filesystems, datasets + EFI, pool, LUKS.
        umount_chroot_binds(target_root, dry_run=dry_run)
        run_cmd(["umount", "-R", target_root], check=False, dry_run=dry_run)
        run_cmd(["zpool", "export", storage.pool], dry_run=dry_run)
        if storage.encrypted and storage.mapper_name:
            run_cmd(["cryptsetup", "close", storage.mapper_name], dry_run=dry_run)

        if ctx.config.reboot:
            run_cmd(["sync"], dry_run=dry_run)
            run_cmd(["reboot"], dry_run=dry_run)
        else:
            logger.info("Installation complete; reboot into the new system when ready")

        return state
