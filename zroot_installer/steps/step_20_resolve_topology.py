from __future__ import annotations

import logging
from typing import Any, Dict

from ..lib.topology import resolve_topology
from ..pipeline import InstallContext
from ..state_store import record_output

logger = logging.getLogger(__name__)


class ResolveTopologyStep:
    step_id = "20_resolve_topology"

    def run(self, ctx: InstallContext, state: Dict[str, Any]) -> Dict[str, Any]:
        topology = resolve_topology(ctx.plan.device, ctx.plan.swap)
        record_output(state, "topology", topology.to_dict())

        logger.info(
            "Topology: efi=%s swap=%s data=%s",
            topology.efi_partition,
            topology.swap_partition or "-",
            topology.data_partition,
        )
        return state
