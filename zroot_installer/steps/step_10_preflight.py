from __future__ import annotations

import logging
import os
import shutil
from typing import Any, Dict, List

from ..errors import PreflightError
from ..lib.block import device_users, is_block_device
from ..lib.net import is_online
from ..lib.topology import partition_prefix
from ..pipeline import InstallContext
from ..plan import InstallPlan
from ..state_store import record_decision

logger = logging.getLogger(__name__)

BASE_TOOLS = (
    "parted",
    "partprobe",
    "mkfs.vfat",
    "modprobe",
    "zgenhostid",
    "zpool",
    "zfs",
    "tar",
    "chroot",
)


def required_tools(plan: InstallPlan) -> List[str]:
    tools = list(BASE_TOOLS)
    if plan.encryption:
        tools.append("cryptsetup")
    if not plan.use_zram:
        tools += ["mkswap", "swapon"]
    return tools


class PreflightStep:
    step_id = "10_preflight"

    def run(self, ctx: InstallContext, state: Dict[str, Any]) -> Dict[str, Any]:
        plan = ctx.plan
        state["plan"] = plan.summary()

        # Unclassifiable device names fail here, before anything is touched.
        partition_prefix(plan.device)

        if ctx.dry_run:
            logger.info("Dry run: skipping host checks")
            return state

        if os.geteuid() != 0:
            raise PreflightError("This installer must be run as root")

        if not is_block_device(plan.device):
            raise PreflightError(f"Invalid disk: {plan.device} is not a block device")

        mounted = device_users(plan.device, include_swaps=False)
        if mounted:
            raise PreflightError(
                f"Disk {plan.device} is mounted ({', '.join(mounted)}). Unmount before proceeding."
            )

        missing = [t for t in required_tools(plan) if shutil.which(t) is None]
        if missing:
            raise PreflightError(f"Required tools not found on PATH: {', '.join(missing)}")

        if ctx.config.check_network:
            if not is_online():
                raise PreflightError("No internet connectivity detected; configure networking and re-run")
            logger.info("Internet connectivity confirmed")

        record_decision(state, "preflight", "passed")
        return state
