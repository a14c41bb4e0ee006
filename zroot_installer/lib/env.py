from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Paths:
    target_root: str = "/mnt/gentoo"
    state_default: str = "/var/lib/zroot-installer/state.json"
    log_default: str = "/var/log/zroot-installer.log"
    chroot_script: str = "/install-chroot.sh"
    hostid: str = "/etc/hostid"
    resolv_conf: str = "/etc/resolv.conf"


PATHS = Paths()
