import shlex

from zroot_installer.lib.second_stage import BINDING_NAMES, build_bindings, load_template, render_second_stage
from zroot_installer.lib.storage import StorageHandle
from zroot_installer.lib.template import PLACEHOLDER_RE


def test_template_declares_exactly_the_bindings():
    assert load_template().placeholders() == frozenset(BINDING_NAMES)


def test_bindings_plain(make_plan, storage_handle):
    b = build_bindings(make_plan(), storage_handle)

    assert set(b) == set(BINDING_NAMES)
    assert b["USE_ENCRYPTION"] == "false"
    assert b["USE_ZRAM"] == "true"
    assert b["USE_SYSTEMD"] == "false"
    assert b["LUKS_PASSPHRASE"] == ""
    assert b["SWAP_PARTITION"] == ""
    assert b["ZFS_PARTITION"] == "/dev/sda2"
    assert b["EFI_PARTITION"] == "/dev/sda1"
    assert b["ROOT_DATASET"] == "tank/ROOT/gentoo"


def test_bindings_encrypted_use_raw_partition(make_plan):
    storage = StorageHandle(
        backing_device="/dev/mapper/tank-crypt",
        data_partition="/dev/nvme0n1p3",
        efi_partition="/dev/nvme0n1p1",
        target_root="/mnt/gentoo",
        encrypted=True,
        mapper_name="tank-crypt",
        swap_partition="/dev/nvme0n1p2",
    )
    plan = make_plan(
        device="/dev/nvme0n1",
        encryption=True,
        swap="dedicated-partition",
        init_system="systemd",
        luks_passphrase="disk key",
    )

    b = build_bindings(plan, storage)

    assert b["ZFS_PARTITION"] == "/dev/nvme0n1p3"
    assert b["SWAP_PARTITION"] == "/dev/nvme0n1p2"
    assert b["LUKS_PASSPHRASE"] == "disk key"
    assert b["USE_ENCRYPTION"] == "true"
    assert b["USE_SYSTEMD"] == "true"


def test_rendered_script_has_no_tokens_and_quoted_secrets(make_plan, storage_handle):
    out = render_second_stage(make_plan(), storage_handle)

    assert PLACEHOLDER_RE.search(out.text) is None
    assert out.text.startswith("#!/bin/bash")
    assert "ROOT_PASSWORD=" + shlex.quote("r00t pass") + "\n" in out.text
    assert "USER_PASSWORD=" + shlex.quote("us3r'pass") + "\n" in out.text
    assert "HOSTNAME=gentoo-zfs\n" in out.text
    # Environment export carries raw values.
    assert out.bindings["USER_PASSWORD"] == "us3r'pass"
