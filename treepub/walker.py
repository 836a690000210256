"""
walker.py

Responsibility: Enumerate the regular files of a local build directory.

Rules:
- Traversal uses an explicit stack; deep trees never hit the recursion limit.
- Entries are visited in sorted order so repeated walks yield the same sequence.
- Only regular files are produced. Symlinks and special files are skipped.
- Unreadable subdirectories are logged and skipped; a missing root is an error.

This module intentionally does NOT know about GitHub or the object store.
"""

from __future__ import annotations

import logging
import os
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FileEntry:
    relative_path: str
    absolute_path: Path


def _check_root(root: str | Path) -> Path:
    path = Path(root).resolve()
    if not path.exists():
        raise FileNotFoundError(f"Publish directory not found: {path}")
    if not path.is_dir():
        raise NotADirectoryError(f"Publish path is not a directory: {path}")
    return path


def _iter_under(base: Path, cancel: threading.Event | None) -> Iterator[FileEntry]:
    # Stack holds (directory, relative prefix); children are pushed in reverse
    # so they pop in ascending order.
    stack: list[tuple[Path, str]] = [(base, "")]
    while stack:
        if cancel is not None and cancel.is_set():
            logger.info("Directory walk cancelled under %s", base)
            return
        directory, prefix = stack.pop()
        try:
            with os.scandir(directory) as it:
                children = sorted(it, key=lambda e: e.name)
        except OSError as e:
            if directory == base:
                raise
            logger.warning("Skipping unreadable directory %s: %s", directory, e)
            continue

        subdirs: list[tuple[Path, str]] = []
        for child in children:
            rel = f"{prefix}{child.name}"
            try:
                if child.is_dir(follow_symlinks=False):
                    subdirs.append((Path(child.path), f"{rel}/"))
                elif child.is_file(follow_symlinks=False):
                    yield FileEntry(relative_path=rel, absolute_path=Path(child.path))
                else:
                    logger.debug("Skipping non-regular entry %s", child.path)
            except OSError as e:
                logger.warning("Skipping unreadable entry %s: %s", child.path, e)
        stack.extend(reversed(subdirs))


def iter_files(root: str | Path, *, cancel: threading.Event | None = None) -> Iterator[FileEntry]:
    """
    Lazily yield every regular file under `root`.

    The root is validated before the iterator is returned. Each call starts a
    fresh traversal.
    """
    return _iter_under(_check_root(root), cancel)


def walk(root: str | Path, *, cancel: threading.Event | None = None) -> list[FileEntry]:
    return list(iter_files(root, cancel=cancel))
