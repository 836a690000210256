import os
from pathlib import Path

import pytest

from treepub import walker
from treepub.walker import iter_files, walk


def _write(root: Path, rel: str, data: bytes = b"x") -> None:
    path = root / rel
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(data)


def test_walk_lists_nested_files_with_forward_slashes(tmp_path: Path) -> None:
    _write(tmp_path, "index.html")
    _write(tmp_path, "assets/app.js")
    _write(tmp_path, "assets/img/logo.png")

    entries = walk(tmp_path)

    assert sorted(e.relative_path for e in entries) == ["assets/app.js", "assets/img/logo.png", "index.html"]
    for e in entries:
        assert e.absolute_path == tmp_path.resolve() / e.relative_path
        assert "\\" not in e.relative_path


def test_walk_order_is_stable(tmp_path: Path) -> None:
    for name in ["b.txt", "a.txt", "z/1.txt", "c/2.txt", "c/d/3.txt"]:
        _write(tmp_path, name)

    first = [e.relative_path for e in walk(tmp_path)]
    second = [e.relative_path for e in walk(tmp_path)]

    assert first == second
    assert first == ["a.txt", "b.txt", "c/2.txt", "c/d/3.txt", "z/1.txt"]


def test_walk_empty_directory(tmp_path: Path) -> None:
    (tmp_path / "empty").mkdir()
    assert walk(tmp_path) == []


def test_walk_missing_root_raises(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        walk(tmp_path / "nope")


def test_walk_file_root_raises(tmp_path: Path) -> None:
    _write(tmp_path, "file.txt")
    with pytest.raises(NotADirectoryError):
        walk(tmp_path / "file.txt")


def test_walk_skips_symlinks(tmp_path: Path) -> None:
    _write(tmp_path, "real.txt")
    try:
        os.symlink(tmp_path / "real.txt", tmp_path / "link.txt")
    except (OSError, NotImplementedError):
        pytest.skip("symlinks not supported")

    assert [e.relative_path for e in walk(tmp_path)] == ["real.txt"]


@pytest.mark.skipif(not hasattr(os, "geteuid") or os.geteuid() == 0, reason="root can read any directory")
def test_walk_skips_unreadable_subdirectory(tmp_path: Path) -> None:
    _write(tmp_path, "ok.txt")
    _write(tmp_path, "locked/secret.txt")
    locked = tmp_path / "locked"
    locked.chmod(0)
    try:
        assert [e.relative_path for e in walk(tmp_path)] == ["ok.txt"]
    finally:
        locked.chmod(0o755)


def test_iter_files_is_restartable(tmp_path: Path) -> None:
    _write(tmp_path, "a.txt")
    _write(tmp_path, "sub/b.txt")

    assert list(iter_files(tmp_path)) == list(iter_files(tmp_path))


def test_walk_handles_deep_nesting(tmp_path: Path) -> None:
    rel = "/".join(["d"] * 60) + "/leaf.txt"
    _write(tmp_path, rel)

    assert [e.relative_path for e in walk(tmp_path)] == [rel]


def test_walk_skips_subdirectory_that_cannot_be_listed(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    _write(tmp_path, "ok.txt")
    _write(tmp_path, "locked/secret.txt")
    _write(tmp_path, "open/page.html")
    locked = str(tmp_path.resolve() / "locked")
    real_scandir = os.scandir

    def scandir(path):  # type: ignore[no-untyped-def]
        if str(path) == locked:
            raise PermissionError(13, "Permission denied", str(path))
        return real_scandir(path)

    monkeypatch.setattr(walker.os, "scandir", scandir)

    assert [e.relative_path for e in walk(tmp_path)] == ["ok.txt", "open/page.html"]


def test_walk_root_that_cannot_be_listed_raises(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    def scandir(path):  # type: ignore[no-untyped-def]
        raise PermissionError(13, "Permission denied", str(path))

    monkeypatch.setattr(walker.os, "scandir", scandir)

    with pytest.raises(PermissionError):
        walk(tmp_path)
