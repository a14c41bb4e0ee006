from .step_10_preflight import PreflightStep
from .step_20_resolve_topology import ResolveTopologyStep
from .step_30_provision_storage import ProvisionStorageStep
from .step_40_resolve_artifact import ResolveArtifactStep
from .step_45_install_base_image import InstallBaseImageStep
from .step_50_configure_portage import ConfigurePortageStep
from .step_60_chroot_configure import ChrootConfigureStep
from .step_90_finalize import FinalizeStep

__all__ = [
    "PreflightStep",
    "ResolveTopologyStep",
    "ProvisionStorageStep",
    "ResolveArtifactStep",
    "InstallBaseImageStep",
    "ConfigurePortageStep",
    "ChrootConfigureStep",
    "FinalizeStep",
]
