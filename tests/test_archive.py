import pytest

from zroot_installer.errors import CommandError, ExtractionFailed
from zroot_installer.lib import archive
from zroot_installer.lib.command import CmdResult


def test_extract_removes_archive_on_success(tmp_path, monkeypatch):
    calls = []
    tarball = tmp_path / "stage3.tar.xz"
    tarball.write_bytes(b"x")

    def fake_run(argv, **kwargs):
        calls.append(list(argv))
        return CmdResult(argv=list(argv), returncode=0, stdout="", stderr="")

    monkeypatch.setattr(archive, "run_cmd", fake_run)

    archive.extract_artifact(str(tarball), str(tmp_path))

    assert calls == [
        ["tar", "xpf", str(tarball), "--xattrs-include=*.*", "--numeric-owner", "-C", str(tmp_path)]
    ]
    assert not tarball.exists()


def test_failed_extraction_keeps_archive(tmp_path, monkeypatch):
    tarball = tmp_path / "stage3.tar.xz"
    tarball.write_bytes(b"x")

    def fake_run(argv, **kwargs):
        raise CommandError(argv, 2, "xz: (stdin): Unexpected end of input")

    monkeypatch.setattr(archive, "run_cmd", fake_run)

    with pytest.raises(ExtractionFailed):
        archive.extract_artifact(str(tarball), str(tmp_path))
    assert tarball.exists()


def test_verify_tree_reports_missing(tmp_path):
    for d in ("bin", "etc", "usr"):
        (tmp_path / d).mkdir()

    assert archive.verify_tree(str(tmp_path)) == ["var"]
    (tmp_path / "var").mkdir()
    assert archive.verify_tree(str(tmp_path)) == []
