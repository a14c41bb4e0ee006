import pytest

from zroot_installer.errors import UnsupportedTopology
from zroot_installer.lib.topology import DeviceTopology, partition_path, partition_prefix, resolve_topology


@pytest.mark.parametrize(
    "device,prefix",
    [
        ("/dev/sda", "/dev/sda"),
        ("/dev/vdb", "/dev/vdb"),
        ("/dev/xvda", "/dev/xvda"),
        ("/dev/nvme0n1", "/dev/nvme0n1p"),
        ("/dev/mmcblk0", "/dev/mmcblk0p"),
        ("/dev/loop3", "/dev/loop3p"),
    ],
)
def test_partition_prefix(device, prefix):
    assert partition_prefix(device) == prefix


@pytest.mark.parametrize(
    "device",
    ["", "sda", "/dev/SDA", "/dev/disk/by-id/ata-foo", "/dev/sda1 ", "/dev/", "/dev/0abc"],
)
def test_partition_prefix_rejects_unclassifiable(device):
    with pytest.raises(UnsupportedTopology):
        partition_prefix(device)


def test_compressed_ram_swap_has_two_partitions():
    topo = resolve_topology("/dev/sda", "none-use-compressed-ram")
    assert topo == DeviceTopology(
        device="/dev/sda",
        efi_partition="/dev/sda1",
        data_partition="/dev/sda2",
    )


def test_dedicated_swap_on_nvme():
    topo = resolve_topology("/dev/nvme0n1", "dedicated-partition")
    assert topo.efi_partition == "/dev/nvme0n1p1"
    assert topo.swap_partition == "/dev/nvme0n1p2"
    assert topo.data_partition == "/dev/nvme0n1p3"


def test_unknown_swap_strategy():
    with pytest.raises(UnsupportedTopology):
        resolve_topology("/dev/sda", "swapfile")


def test_partition_path_and_dict_form():
    assert partition_path("/dev/mmcblk0", 2) == "/dev/mmcblk0p2"

    topo = resolve_topology("/dev/vda", "dedicated-partition")
    assert DeviceTopology.from_dict(topo.to_dict()) == topo
