from __future__ import annotations

from typing import Any, Dict

from ..lib.portage import configure_portage
from ..pipeline import InstallContext


class ConfigurePortageStep:
    step_id = "50_configure_portage"

    def run(self, ctx: InstallContext, state: Dict[str, Any]) -> Dict[str, Any]:
        configure_portage(ctx.target_root, ctx.plan.video_cards, dry_run=ctx.dry_run)
        return state
