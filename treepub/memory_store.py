"""
memory_store.py

Responsibility: In-process `ObjectStore` for dry runs and tests.

Blobs and trees are content-addressed with git-style SHA-1 ids, so unchanged
content yields unchanged ids. Commits carry a sequence number and are never
deduplicated. All operations are guarded by a single lock.
"""

from __future__ import annotations

import hashlib
import itertools
import threading
from typing import Sequence

from treepub.store import BlobRef, CommitAuthor, CommitRef, RefAlreadyExists, RefNotFound, StoreError


def _hash_object(type_: str, data: bytes) -> str:
    header = f"{type_} {len(data)}".encode() + b"\x00"
    return hashlib.sha1(header + data).hexdigest()


class InMemoryObjectStore:
    def __init__(self, *, default_branch: str = "main") -> None:
        self.default_branch = default_branch
        self._lock = threading.Lock()
        self._blobs: dict[str, bytes] = {}
        self._trees: dict[str, dict[str, BlobRef]] = {}
        self._commits: dict[str, CommitRef] = {}
        self._refs: dict[str, str] = {}
        self._sequence = itertools.count(1)

    # -- object primitives -------------------------------------------------

    def create_blob(self, data: bytes) -> str:
        oid = _hash_object("blob", data)
        with self._lock:
            self._blobs[oid] = bytes(data)
        return oid

    def create_tree(self, base_tree_id: str | None, entries: Sequence[BlobRef]) -> str:
        with self._lock:
            if base_tree_id is None:
                files: dict[str, BlobRef] = {}
            elif base_tree_id in self._trees:
                files = dict(self._trees[base_tree_id])
            else:
                raise StoreError(f"Unknown base tree: {base_tree_id}")
            for entry in entries:
                if entry.object_id not in self._blobs:
                    raise StoreError(f"Unknown blob for {entry.path}: {entry.object_id}")
                files[entry.path] = entry
            listing = "\n".join(f"{e.mode} {e.object_id} {p}" for p, e in sorted(files.items()))
            oid = _hash_object("tree", listing.encode("utf-8"))
            self._trees[oid] = files
        return oid

    def create_commit(
        self,
        tree_id: str,
        parent_ids: Sequence[str],
        message: str,
        author: CommitAuthor,
    ) -> str:
        with self._lock:
            if tree_id not in self._trees:
                raise StoreError(f"Unknown tree: {tree_id}")
            for parent in parent_ids:
                if parent not in self._commits:
                    raise StoreError(f"Unknown parent commit: {parent}")
            body = "\n".join(
                [f"tree {tree_id}"]
                + [f"parent {p}" for p in parent_ids]
                + [f"author {author.name} <{author.email}> {next(self._sequence)}", "", message]
            )
            oid = _hash_object("commit", body.encode("utf-8"))
            self._commits[oid] = CommitRef(
                object_id=oid,
                tree_id=tree_id,
                parent_ids=tuple(parent_ids),
                message=message,
                author_name=author.name,
                author_email=author.email,
            )
        return oid

    def get_commit_tree(self, commit_id: str) -> str:
        return self.get_commit(commit_id).tree_id

    # -- refs --------------------------------------------------------------

    def get_ref(self, branch: str) -> str:
        with self._lock:
            try:
                return self._refs[branch]
            except KeyError:
                raise RefNotFound(branch) from None

    def create_ref(self, branch: str, commit_id: str) -> None:
        with self._lock:
            if commit_id not in self._commits:
                raise StoreError(f"Unknown commit: {commit_id}")
            if branch in self._refs:
                raise RefAlreadyExists(branch)
            self._refs[branch] = commit_id

    def update_ref(self, branch: str, commit_id: str, *, force: bool) -> None:
        with self._lock:
            if commit_id not in self._commits:
                raise StoreError(f"Unknown commit: {commit_id}")
            if branch not in self._refs:
                raise RefNotFound(branch)
            current = self._refs[branch]
            if not force and not self._is_ancestor(current, commit_id):
                raise StoreError(f"Update is not a fast forward: {branch} {current} -> {commit_id}")
            self._refs[branch] = commit_id

    def get_default_branch_tip(self) -> str:
        return self.get_ref(self.default_branch)

    # -- inspection --------------------------------------------------------

    def get_commit(self, commit_id: str) -> CommitRef:
        with self._lock:
            try:
                return self._commits[commit_id]
            except KeyError:
                raise StoreError(f"Unknown commit: {commit_id}") from None

    def tree_files(self, tree_id: str) -> dict[str, str]:
        """Return `{path: blob id}` for a tree."""
        with self._lock:
            return {path: e.object_id for path, e in self._trees[tree_id].items()}

    def read_blob(self, blob_id: str) -> bytes:
        with self._lock:
            return self._blobs[blob_id]

    def seed_branch(self, branch: str, files: dict[str, bytes], *, message: str = "Initial commit") -> str:
        """Create `branch` with one commit holding `files`; returns the commit id."""
        entries = [BlobRef(path=p, object_id=self.create_blob(data)) for p, data in sorted(files.items())]
        tree_id = self.create_tree(None, entries)
        with self._lock:
            parent = self._refs.get(branch)
        parents = [parent] if parent else []
        commit_id = self.create_commit(tree_id, parents, message, CommitAuthor())
        with self._lock:
            self._refs[branch] = commit_id
        return commit_id

    def _is_ancestor(self, ancestor: str, commit_id: str) -> bool:
        stack = [commit_id]
        seen: set[str] = set()
        while stack:
            oid = stack.pop()
            if oid == ancestor:
                return True
            if oid in seen:
                continue
            seen.add(oid)
            stack.extend(self._commits[oid].parent_ids)
        return False
