from __future__ import annotations

from typing import Any, Dict

import pytest

from zroot_installer.install_config import InstallConfig
from zroot_installer.lib.storage import StorageHandle
from zroot_installer.plan import plan_from_mapping


def _plan_raw(**overrides: Any) -> Dict[str, Any]:
    raw: Dict[str, Any] = {
        "device": "/dev/sda",
        "encryption": False,
        "swap": "none-use-compressed-ram",
        "init_system": "openrc",
        "locale": "en_US.UTF-8",
        "timezone": "Europe/Berlin",
        "hostname": "gentoo-zfs",
        "username": "alice",
        "root_password": "r00t pass",
        "user_password": "us3r'pass",
    }
    raw.update(overrides)
    return raw


@pytest.fixture
def plan_raw():
    return _plan_raw


@pytest.fixture
def make_plan():
    def _make(**overrides: Any):
        return plan_from_mapping(_plan_raw(**overrides))

    return _make


@pytest.fixture
def make_config(tmp_path):
    def _make(**raw: Any) -> InstallConfig:
        raw.setdefault("target_root", str(tmp_path / "target"))
        return InstallConfig(raw=raw)

    return _make


@pytest.fixture
def storage_handle(tmp_path):
    return StorageHandle(
        backing_device="/dev/sda2",
        data_partition="/dev/sda2",
        efi_partition="/dev/sda1",
        target_root=str(tmp_path / "target"),
    )
