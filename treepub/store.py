"""
store.py

Responsibility: Define the object-store contract the publisher consumes.

The contract mirrors the Git Database primitives (blobs, trees, commits, refs).
Adapters live elsewhere:
- `github_client.py`: GitHub REST API
- `memory_store.py`: in-process store for dry runs and tests

Nothing in this module performs I/O.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, Sequence, runtime_checkable

# The publisher never emits executable or symlink modes.
REGULAR_FILE_MODE = "100644"


class StoreError(RuntimeError):
    pass


class RefNotFound(StoreError):
    def __init__(self, branch: str) -> None:
        self.branch = branch
        super().__init__(f"Branch not found: {branch}")


class RefAlreadyExists(StoreError):
    def __init__(self, branch: str) -> None:
        self.branch = branch
        super().__init__(f"Branch already exists: {branch}")


@dataclass(frozen=True)
class CommitAuthor:
    name: str = "github-actions[bot]"
    email: str = "github-actions[bot]@users.noreply.github.com"


@dataclass(frozen=True)
class BlobRef:
    """A blob confirmed by the store, placed at `path` in the next tree."""

    path: str
    object_id: str
    mode: str = REGULAR_FILE_MODE


@dataclass(frozen=True)
class CommitRef:
    object_id: str
    tree_id: str
    parent_ids: tuple[str, ...]
    message: str
    author_name: str
    author_email: str


@dataclass(frozen=True)
class BranchState:
    name: str
    tip_commit_id: str | None = None


@runtime_checkable
class ObjectStore(Protocol):
    """Content-addressable object store with mutable branch refs."""

    def create_blob(self, data: bytes) -> str:
        """Store raw bytes and return the blob id."""
        ...

    def create_tree(self, base_tree_id: str | None, entries: Sequence[BlobRef]) -> str:
        """
        Create a tree layered on `base_tree_id`.

        Entries override base paths; base paths not mentioned are carried forward.
        """
        ...

    def create_commit(
        self,
        tree_id: str,
        parent_ids: Sequence[str],
        message: str,
        author: CommitAuthor,
    ) -> str:
        ...

    def get_commit_tree(self, commit_id: str) -> str:
        """Return the tree id a commit points to."""
        ...

    def get_ref(self, branch: str) -> str:
        """Return the tip commit id of `branch`, or raise RefNotFound."""
        ...

    def create_ref(self, branch: str, commit_id: str) -> None:
        """Create `branch` at `commit_id`, or raise RefAlreadyExists."""
        ...

    def update_ref(self, branch: str, commit_id: str, *, force: bool) -> None:
        ...

    def get_default_branch_tip(self) -> str:
        """Return the base branch tip used for bootstrapping, or raise RefNotFound."""
        ...
