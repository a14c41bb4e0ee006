from __future__ import annotations

import shlex
from typing import Dict

from ..plan import InstallPlan
from .manifests import template_path
from .storage import StorageHandle
from .template import RenderedScript, ScriptTemplate, render

TEMPLATE_NAME = "install-chroot.sh.tmpl"

# Exported into the changed-root environment under the same names.
BINDING_NAMES = (
    "USE_ENCRYPTION",
    "USE_ZRAM",
    "USE_SYSTEMD",
    "ROOT_PASSWORD",
    "USER_PASSWORD",
    "LUKS_PASSPHRASE",
    "ZFS_PARTITION",
    "EFI_PARTITION",
    "SWAP_PARTITION",
    "TIMEZONE",
    "LOCALE",
    "HOSTNAME",
    "USERNAME",
    "POOL_NAME",
    "ROOT_DATASET",
)


def shell_bool(value: bool) -> str:
    return "true" if value else "false"


def build_bindings(plan: InstallPlan, storage: StorageHandle) -> Dict[str, str]:
    return {
        "USE_ENCRYPTION": shell_bool(plan.encryption),
        "USE_ZRAM": shell_bool(plan.use_zram),
        "USE_SYSTEMD": shell_bool(plan.use_systemd),
        "ROOT_PASSWORD": plan.root_password,
        "USER_PASSWORD": plan.user_password,
        "LUKS_PASSPHRASE": plan.encryption_passphrase if plan.encryption else "",
        # LUKS keyfile enrollment targets the raw partition, not the mapping.
        "ZFS_PARTITION": storage.data_partition,
        "EFI_PARTITION": storage.efi_partition,
        "SWAP_PARTITION": storage.swap_partition or "",
        "TIMEZONE": plan.timezone,
        "LOCALE": plan.locale,
        "HOSTNAME": plan.hostname,
        "USERNAME": plan.username,
        "POOL_NAME": storage.pool,
        "ROOT_DATASET": storage.root_dataset,
    }


def load_template() -> ScriptTemplate:
    return ScriptTemplate.load(template_path(TEMPLATE_NAME), required=BINDING_NAMES)


def render_second_stage(plan: InstallPlan, storage: StorageHandle) -> RenderedScript:
    return render(load_template(), build_bindings(plan, storage), quote=shlex.quote)
