from __future__ import annotations

import logging
from typing import Any, Dict

from ..lib.storage import provision
from ..lib.topology import DeviceTopology
from ..pipeline import InstallContext
from ..state_store import get_output, record_decision, record_output

logger = logging.getLogger(__name__)


class ProvisionStorageStep:
    step_id = "30_provision_storage"

    def run(self, ctx: InstallContext, state: Dict[str, Any]) -> Dict[str, Any]:
        topology = DeviceTopology.from_dict(get_output(state, "topology"))

        handle = provision(topology, ctx.plan, target_root=ctx.target_root, dry_run=ctx.dry_run)

        record_output(state, "storage", handle.to_dict())
        record_decision(state, "pool_backing_device", handle.backing_device)
        return state
