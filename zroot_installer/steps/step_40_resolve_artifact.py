from __future__ import annotations

import logging
from typing import Any, Dict

from ..lib.mirrors import ArtifactVariant, MirrorCandidate, resolve_artifact
from ..pipeline import InstallContext
from ..state_store import record_output

logger = logging.getLogger(__name__)


class ResolveArtifactStep:
    step_id = "40_resolve_artifact"

    def run(self, ctx: InstallContext, state: Dict[str, Any]) -> Dict[str, Any]:
        cfg = ctx.config
        # Read-only network requests, so this runs in dry-run mode too.
        variant = ArtifactVariant(arch=cfg.arch, profile=ctx.plan.init_system)
        url = resolve_artifact(
            [MirrorCandidate(m) for m in cfg.mirrors],
            variant,
            canonical=MirrorCandidate(cfg.canonical_mirror),
            last_known_good=cfg.last_known_good(variant.profile),
        )

        record_output(state, "artifact_url", url)
        logger.info("Base image: %s", url)
        return state
