import pytest

from zroot_installer.errors import CommandError, ExecutionError
from zroot_installer.lib import chroot
from zroot_installer.lib.command import CmdResult


@pytest.fixture
def recorded(monkeypatch):
    calls = []

    def fake_run(argv, **kwargs):
        calls.append((list(argv), kwargs))
        return CmdResult(argv=list(argv), returncode=0, stdout="", stderr="")

    monkeypatch.setattr(chroot, "run_cmd", fake_run)
    return calls


def test_binds_copy_dns_first(recorded):
    chroot.mount_chroot_binds("/mnt/gentoo")
    argvs = [a for a, _ in recorded]

    assert argvs[0] == ["cp", "--dereference", "/etc/resolv.conf", "/mnt/gentoo/etc/"]
    assert ["mount", "--types", "proc", "/proc", "/mnt/gentoo/proc"] in argvs
    assert ["mount", "--make-rslave", "/mnt/gentoo/dev"] in argvs
    assert argvs.index(["mount", "--rbind", "/sys", "/mnt/gentoo/sys"]) < argvs.index(
        ["mount", "--make-rslave", "/mnt/gentoo/sys"]
    )


def test_unmount_is_lazy_and_tolerant(recorded):
    chroot.umount_chroot_binds("/mnt/gentoo")

    assert [a[-1] for a, _ in recorded] == [
        "/mnt/gentoo/run",
        "/mnt/gentoo/dev/shm",
        "/mnt/gentoo/dev/pts",
        "/mnt/gentoo/dev",
        "/mnt/gentoo/sys",
        "/mnt/gentoo/proc",
    ]
    assert all(kw["check"] is False for _, kw in recorded)


def test_script_runs_with_bindings_exported(recorded):
    chroot.run_script_in_chroot("/mnt/gentoo", "/install-chroot.sh", env={"HOSTNAME": "box"})

    argv, kwargs = recorded[0]
    assert argv == ["chroot", "/mnt/gentoo", "/bin/bash", "/install-chroot.sh"]
    assert kwargs["env"] == {"HOSTNAME": "box"}
    assert kwargs["capture"] is False


def test_script_failure_raises_execution_error(monkeypatch):
    def fake_run(argv, **kwargs):
        raise CommandError(argv, 1)

    monkeypatch.setattr(chroot, "run_cmd", fake_run)

    with pytest.raises(ExecutionError, match="status 1"):
        chroot.run_script_in_chroot("/mnt/gentoo", "/install-chroot.sh", env={})
