from __future__ import annotations

import logging
from typing import Any, Dict

from ..lib.archive import extract_artifact, verify_tree
from ..lib.download import acquire, artifact_filename
from ..pipeline import InstallContext
from ..state_store import get_output, record_decision

logger = logging.getLogger(__name__)


class InstallBaseImageStep:
    step_id = "45_install_base_image"

    def run(self, ctx: InstallContext, state: Dict[str, Any]) -> Dict[str, Any]:
        url = get_output(state, "artifact_url")
        target_root = ctx.target_root

        if ctx.dry_run:
            archive = f"{target_root}/{artifact_filename(url)}"
            logger.info("Would download %s to %s", url, archive)
            extract_artifact(archive, target_root, dry_run=True)
            return state

        outcome = acquire(
            url,
            target_root,
            min_size=ctx.config.min_artifact_bytes,
            total_s=ctx.config.download_total_s,
        )
        archive = outcome.unwrap()

        extract_artifact(str(archive), target_root)
        missing = verify_tree(target_root)

        record_decision(state, "base_image", {"url": url, "missing_dirs": missing})
        return state
