from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict

from ..lib.chroot import mount_chroot_binds, run_script_in_chroot
from ..lib.env import PATHS
from ..lib.second_stage import render_second_stage
from ..lib.storage import StorageHandle
from ..pipeline import InstallContext
from ..state_store import get_output, record_decision

logger = logging.getLogger(__name__)


class ChrootConfigureStep:
    step_id = "60_chroot_configure"

    def run(self, ctx: InstallContext, state: Dict[str, Any]) -> Dict[str, Any]:
        storage = StorageHandle.from_dict(get_output(state, "storage"))
        target_root = ctx.target_root

        # Render before touching the target: an unbound placeholder stops here.
        rendered = render_second_stage(ctx.plan, storage)
        host_path = Path(target_root) / PATHS.chroot_script.lstrip("/")

        mount_chroot_binds(target_root, dry_run=ctx.dry_run)
        try:
            if ctx.dry_run:
                logger.info("Would write %s", str(host_path))
            else:
                rendered.write(str(host_path))
            run_script_in_chroot(
                target_root,
                PATHS.chroot_script,
                env=rendered.bindings,
                dry_run=ctx.dry_run,
            )
        finally:
            # Holds passwords in clear text.
            if host_path.exists():
                host_path.unlink()
                logger.info("Removed %s", str(host_path))

        record_decision(state, "second_stage", "completed")
        return state
