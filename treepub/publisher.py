"""
publisher.py

Responsibility: Republish a local directory as the new tip of a remote branch.

High-level flow of one publish attempt:
1) Walk the local directory -> `FileEntry` list
2) Resolve (or bootstrap) the branch -> observed tip
3) Upload every file as a blob
4) Create a tree layered on the tip's tree
5) Create a commit whose only parent is the observed tip
6) Move the branch ref to the new commit

The ref update is the last step, so a failure or cancellation anywhere before
it leaves the branch untouched. Objects already written are left in place.
Files missing from the local directory stay in the published tree, because
the new tree is layered on the previous one.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

from treepub.branch import ensure_branch
from treepub.message import DEFAULT_COMMIT_MESSAGE, render_commit_message
from treepub.store import CommitAuthor, ObjectStore
from treepub.uploader import BlobUploader
from treepub.walker import walk

logger = logging.getLogger(__name__)


class PublishState(str, Enum):
    IDLE = "idle"
    WALKING = "walking"
    BOOTSTRAPPING = "bootstrapping"
    UPLOADING = "uploading"
    TREE_BUILDING = "tree_building"
    COMMITTING = "committing"
    REF_UPDATING = "ref_updating"
    DONE = "done"
    FAILED = "failed"


class PublishCancelled(RuntimeError):
    pass


@dataclass(frozen=True)
class PublishResult:
    success: bool
    branch: str
    state: PublishState
    files_walked: int = 0
    files_uploaded: int = 0
    new_commit_id: str | None = None
    tree_id: str | None = None
    failure_reason: str | None = None
    failed_step: PublishState | None = None
    failed_paths: tuple[str, ...] = ()

    @property
    def partial(self) -> bool:
        """True when fewer files reached the store than were found locally."""
        return self.files_uploaded < self.files_walked

    def summary(self) -> str:
        if self.success:
            text = f"Published {self.files_uploaded}/{self.files_walked} files to {self.branch} at {self.new_commit_id}"
            if self.partial:
                text += f" (failed: {', '.join(self.failed_paths)})"
            return text
        step = self.failed_step.value if self.failed_step else "unknown"
        return f"Publish to {self.branch} failed during {step}: {self.failure_reason}"


@dataclass
class _Progress:
    state: PublishState = PublishState.IDLE
    files_walked: int = 0
    files_uploaded: int = 0
    tree_id: str | None = None
    commit_id: str | None = None
    failed_paths: list[str] = field(default_factory=list)


class Publisher:
    """
    Publish orchestrator.

    `allow_partial` decides what happens when some uploads still fail after
    retries: False (default) fails the publish before the branch moves, True
    publishes the files that did upload and reports the rest.

    `force` selects forced ref updates (last writer wins). With force=False the
    store only accepts a fast-forward of the observed tip, so a concurrent
    publisher makes this attempt fail instead of being overwritten.
    """

    def __init__(
        self,
        store: ObjectStore,
        *,
        author: CommitAuthor | None = None,
        message_template: str = DEFAULT_COMMIT_MESSAGE,
        message_context: dict[str, Any] | None = None,
        uploader: BlobUploader | None = None,
        allow_partial: bool = False,
        force: bool = True,
    ) -> None:
        self._store = store
        self._author = author or CommitAuthor()
        self._message_template = message_template
        self._message_context = dict(message_context or {})
        self._uploader = uploader or BlobUploader(store)
        self._allow_partial = allow_partial
        self._force = force

    def publish(
        self,
        local_root: str | Path,
        branch_name: str,
        *,
        cancel: threading.Event | None = None,
    ) -> PublishResult:
        """Run one publish attempt. Never raises; failures are reported in the result."""
        progress = _Progress()
        try:
            self._run(progress, Path(local_root), branch_name, cancel)
        except Exception as e:  # noqa: BLE001 - converted into a failed PublishResult
            logger.error("Publish to %s failed during %s: %s", branch_name, progress.state.value, e)
            return PublishResult(
                success=False,
                branch=branch_name,
                state=PublishState.FAILED,
                files_walked=progress.files_walked,
                files_uploaded=progress.files_uploaded,
                tree_id=progress.tree_id,
                failure_reason=f"{type(e).__name__}: {e}",
                failed_step=progress.state,
                failed_paths=tuple(progress.failed_paths),
            )

        return PublishResult(
            success=True,
            branch=branch_name,
            state=progress.state,
            files_walked=progress.files_walked,
            files_uploaded=progress.files_uploaded,
            new_commit_id=progress.commit_id,
            tree_id=progress.tree_id,
            failed_paths=tuple(progress.failed_paths),
        )

    def _enter(self, progress: _Progress, state: PublishState, cancel: threading.Event | None) -> None:
        if cancel is not None and cancel.is_set():
            raise PublishCancelled(f"cancelled before {state.value}")
        logger.debug("Publish state %s -> %s", progress.state.value, state.value)
        progress.state = state

    def _run(self, progress: _Progress, local_root: Path, branch_name: str, cancel: threading.Event | None) -> None:
        self._enter(progress, PublishState.WALKING, cancel)
        entries = walk(local_root, cancel=cancel)
        progress.files_walked = len(entries)
        logger.info("Found %d files under %s", len(entries), local_root)

        self._enter(progress, PublishState.BOOTSTRAPPING, cancel)
        branch = ensure_branch(self._store, branch_name)
        tip = branch.tip_commit_id

        self._enter(progress, PublishState.UPLOADING, cancel)
        outcome = self._uploader.upload_all(entries, cancel=cancel)
        progress.files_uploaded = len(outcome.uploaded)
        progress.failed_paths = sorted(outcome.failed)
        if not outcome.complete:
            if not self._allow_partial:
                outcome.raise_for_partial()
            logger.warning(
                "Publishing %d of %d files; failed: %s",
                progress.files_uploaded,
                progress.files_walked,
                ", ".join(progress.failed_paths),
            )

        self._enter(progress, PublishState.TREE_BUILDING, cancel)
        base_tree_id = self._store.get_commit_tree(tip) if tip else None
        progress.tree_id = self._store.create_tree(base_tree_id, outcome.uploaded)

        self._enter(progress, PublishState.COMMITTING, cancel)
        message = render_commit_message(
            self._message_template,
            {
                "branch": branch_name,
                "source_sha": "",
                "repository": "",
                **self._message_context,
                "files_walked": progress.files_walked,
                "files_uploaded": progress.files_uploaded,
            },
        )
        parents = [tip] if tip else []
        progress.commit_id = self._store.create_commit(progress.tree_id, parents, message, self._author)

        self._enter(progress, PublishState.REF_UPDATING, cancel)
        if tip is None:
            self._store.create_ref(branch_name, progress.commit_id)
        else:
            self._store.update_ref(branch_name, progress.commit_id, force=self._force)

        progress.state = PublishState.DONE
        logger.info("Published %s to %s (tree %s)", progress.commit_id, branch_name, progress.tree_id)
