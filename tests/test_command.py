import logging
import subprocess
from types import SimpleNamespace

import pytest

from zroot_installer.errors import CommandError
from zroot_installer.lib import command
from zroot_installer.lib.command import run_cmd


def test_dry_run_logs_only(monkeypatch, caplog):
    def boom(*args, **kwargs):
        raise AssertionError("executed")

    monkeypatch.setattr(command.subprocess, "run", boom)

    with caplog.at_level(logging.INFO):
        r = run_cmd(["zpool", "create", "tank", "/dev/sda2"], dry_run=True)

    assert r.returncode == 0
    assert "CMD zpool create tank /dev/sda2" in caplog.text


def test_stdin_and_env_never_logged(monkeypatch, caplog):
    seen = {}

    def fake_run(argv, **kwargs):
        seen.update(kwargs)
        return SimpleNamespace(returncode=0, stdout="", stderr="")

    monkeypatch.setattr(command.subprocess, "run", fake_run)

    with caplog.at_level(logging.DEBUG):
        run_cmd(["cryptsetup", "open", "--key-file", "-", "/dev/sda2", "tank-crypt"],
                input_text="hunter2", env={"ROOT_PASSWORD": "hunter3"})

    assert seen["input"] == "hunter2"
    assert seen["env"]["ROOT_PASSWORD"] == "hunter3"
    assert "hunter2" not in caplog.text
    assert "hunter3" not in caplog.text
    assert "(stdin redacted)" in caplog.text


def test_non_zero_exit(monkeypatch):
    monkeypatch.setattr(
        command.subprocess,
        "run",
        lambda argv, **kw: SimpleNamespace(returncode=1, stdout="", stderr="no such pool"),
    )

    with pytest.raises(CommandError) as exc:
        run_cmd(["zpool", "export", "tank"])
    assert exc.value.returncode == 1
    assert "no such pool" in str(exc.value)

    assert run_cmd(["zpool", "export", "tank"], check=False).returncode == 1


def test_missing_binary_and_timeout(monkeypatch):
    def missing(argv, **kwargs):
        raise FileNotFoundError(argv[0])

    monkeypatch.setattr(command.subprocess, "run", missing)
    with pytest.raises(CommandError) as exc:
        run_cmd(["zgenhostid", "-f"])
    assert exc.value.returncode == 127

    def slow(argv, **kwargs):
        raise subprocess.TimeoutExpired(argv, kwargs["timeout"])

    monkeypatch.setattr(command.subprocess, "run", slow)
    with pytest.raises(CommandError, match="timed out"):
        run_cmd(["ping", "-c", "1", "8.8.8.8"], timeout=2)
