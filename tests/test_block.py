from zroot_installer.lib.block import active_swaps, device_users, matches_device, mounted_sources


def test_matches_device_is_exact():
    assert matches_device("/dev/sda", "/dev/sda")
    assert matches_device("/dev/sda", "/dev/sda12")
    assert not matches_device("/dev/sda", "/dev/sdaa1")
    assert not matches_device("/dev/sda", "/dev/sdb1")
    assert matches_device("/dev/nvme0n1", "/dev/nvme0n1p2")
    assert not matches_device("/dev/nvme0n1", "/dev/nvme0n10")
    assert not matches_device("/dev/nvme0n1", "/dev/nvme0n10p1")


def _write_proc(tmp_path):
    mounts = tmp_path / "mounts"
    mounts.write_text(
        "/dev/sda1 /boot vfat rw 0 0\n"
        "/dev/sdaa1 /data ext4 rw 0 0\n"
        "proc /proc proc rw 0 0\n",
        encoding="utf-8",
    )
    swaps = tmp_path / "swaps"
    swaps.write_text(
        "Filename\t\t\t\tType\t\tSize\t\tUsed\t\tPriority\n"
        "/dev/sda3                               partition\t4194300\t\t0\t\t-2\n",
        encoding="utf-8",
    )
    return str(mounts), str(swaps)


def test_proc_parsing(tmp_path):
    mounts, swaps = _write_proc(tmp_path)

    assert mounted_sources(mounts) == ["/dev/sda1", "/dev/sdaa1", "proc"]
    assert active_swaps(swaps) == ["/dev/sda3"]
    assert active_swaps(str(tmp_path / "nope")) == []


def test_device_users(tmp_path):
    mounts, swaps = _write_proc(tmp_path)

    assert device_users("/dev/sda", mounts_path=mounts, swaps_path=swaps) == ["/dev/sda1", "/dev/sda3"]
    assert device_users("/dev/sda", mounts_path=mounts, swaps_path=swaps, include_swaps=False) == ["/dev/sda1"]
    assert device_users("/dev/sdb", mounts_path=mounts, swaps_path=swaps) == []
