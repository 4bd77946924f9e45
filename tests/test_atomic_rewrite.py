from pathlib import Path

import pytest

import atomic_rewrite
from atomic_rewrite import AtomicRewrite, CommitError, OpenError, temp_path_for


@pytest.mark.parametrize("name, expected", [
    ("data.txt", "data.tmp"),
    ("data", "data.tmp"),
    ("archive.tar.gz", "archive.tar.tmp"),
    (".bashrc", ".bashrc.tmp"),
    ("x.tmp", "x.tmp.tmp"),
])
def test_temp_path_replaces_extension(name, expected):
    assert temp_path_for(Path("some/dir") / name) == Path("some/dir") / expected


def test_commit_replaces_target(tmp_path):
    target = tmp_path / "data.txt"
    target.write_bytes(b"old")
    with AtomicRewrite(target) as rewrite:
        rewrite.file.write(b"new")
        rewrite.commit()
    assert target.read_bytes() == b"new"
    assert not (tmp_path / "data.tmp").exists()
    assert rewrite.file.closed


def test_abandoned_rewrite_keeps_temp_by_default(tmp_path):
    target = tmp_path / "data.txt"
    target.write_bytes(b"old")
    with pytest.raises(RuntimeError):
        with AtomicRewrite(target) as rewrite:
            rewrite.file.write(b"partial")
            raise RuntimeError("boom")
    assert target.read_bytes() == b"old"
    assert (tmp_path / "data.tmp").read_bytes() == b"partial"


def test_abandoned_rewrite_removes_temp_when_asked(tmp_path):
    target = tmp_path / "data.txt"
    target.write_bytes(b"old")
    with AtomicRewrite(target, cleanup_on_failure=True) as rewrite:
        rewrite.file.write(b"partial")
    assert target.read_bytes() == b"old"
    assert not (tmp_path / "data.tmp").exists()


def test_stale_temp_file_is_truncated(tmp_path):
    target = tmp_path / "data.txt"
    target.write_bytes(b"old")
    (tmp_path / "data.tmp").write_bytes(b"stale leftovers from a crashed run")
    with AtomicRewrite(target) as rewrite:
        rewrite.file.write(b"fresh")
        rewrite.commit()
    assert target.read_bytes() == b"fresh"


def test_uncreatable_temp_file_raises_open_error(tmp_path):
    target = tmp_path / "data.txt"
    target.write_bytes(b"old")
    (tmp_path / "data.tmp").mkdir()
    with pytest.raises(OpenError):
        with AtomicRewrite(target):
            pass
    assert target.read_bytes() == b"old"


def test_failed_rename_raises_commit_error(tmp_path, monkeypatch):
    target = tmp_path / "data.txt"
    target.write_bytes(b"old")

    def refuse(src, dst):
        raise PermissionError("read-only directory")

    monkeypatch.setattr(atomic_rewrite.os, "replace", refuse)
    with pytest.raises(CommitError) as excinfo:
        with AtomicRewrite(target) as rewrite:
            rewrite.file.write(b"new")
            rewrite.commit()
    assert excinfo.value.path == target
    assert isinstance(excinfo.value.__cause__, PermissionError)
    assert target.read_bytes() == b"old"
    assert (tmp_path / "data.tmp").read_bytes() == b"new"
