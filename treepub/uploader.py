"""
uploader.py

Responsibility: Turn local files into confirmed remote blobs.

Uploads run on a bounded thread pool. A failing file is retried with
exponential backoff; files that still fail are reported in the outcome and
never silently dropped.
"""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Callable, Sequence

from treepub.store import BlobRef, ObjectStore
from treepub.walker import FileEntry

logger = logging.getLogger(__name__)


class PartialUploadError(RuntimeError):
    def __init__(self, failed: dict[str, str], attempted: int) -> None:
        self.failed = dict(failed)
        self.attempted = attempted
        paths = ", ".join(sorted(failed))
        super().__init__(f"{len(failed)} of {attempted} files failed to upload: {paths}")


class UploadCancelled(RuntimeError):
    pass


@dataclass(frozen=True)
class UploadOutcome:
    uploaded: tuple[BlobRef, ...]
    failed: dict[str, str] = field(default_factory=dict)

    @property
    def attempted(self) -> int:
        return len(self.uploaded) + len(self.failed)

    @property
    def complete(self) -> bool:
        return not self.failed

    def raise_for_partial(self) -> None:
        if self.failed:
            raise PartialUploadError(self.failed, self.attempted)


class BlobUploader:
    def __init__(
        self,
        store: ObjectStore,
        *,
        max_workers: int = 8,
        attempts: int = 3,
        backoff: float = 0.5,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        if attempts < 1:
            raise ValueError("attempts must be at least 1")
        self._store = store
        self._max_workers = max_workers
        self._attempts = attempts
        self._backoff = backoff
        self._sleep = sleep

    def _upload_one(self, entry: FileEntry, cancel: threading.Event | None) -> BlobRef:
        attempt = 0
        while True:
            attempt += 1
            if cancel is not None and cancel.is_set():
                raise UploadCancelled(entry.relative_path)
            try:
                data = entry.absolute_path.read_bytes()
                object_id = self._store.create_blob(data)
                return BlobRef(path=entry.relative_path, object_id=object_id)
            except Exception as e:  # noqa: BLE001 - every failure is retried, then reported
                if attempt == self._attempts:
                    raise
                delay = self._backoff * (2 ** (attempt - 1))
                logger.warning(
                    "Upload of %s failed (attempt %d/%d), retrying in %.2fs: %s",
                    entry.relative_path,
                    attempt,
                    self._attempts,
                    delay,
                    e,
                )
                self._sleep(delay)

    def upload_all(self, entries: Sequence[FileEntry], *, cancel: threading.Event | None = None) -> UploadOutcome:
        """
        Upload every entry and wait for all attempts to finish.

        Raises UploadCancelled if `cancel` was set while uploads were running.
        """
        uploaded: list[BlobRef] = []
        failed: dict[str, str] = {}
        if not entries:
            return UploadOutcome(uploaded=())

        with ThreadPoolExecutor(max_workers=self._max_workers, thread_name_prefix="treepub-upload") as pool:
            futures = {pool.submit(self._upload_one, entry, cancel): entry for entry in entries}
            for future in as_completed(futures):
                entry = futures[future]
                try:
                    uploaded.append(future.result())
                except UploadCancelled:
                    pass
                except Exception as e:  # noqa: BLE001 - collected into the outcome
                    logger.error("Upload of %s failed: %s", entry.relative_path, e)
                    failed[entry.relative_path] = f"{type(e).__name__}: {e}"

        if cancel is not None and cancel.is_set():
            raise UploadCancelled(f"cancelled after {len(uploaded)} of {len(entries)} uploads")

        uploaded.sort(key=lambda ref: ref.path)
        logger.info("Uploaded %d of %d files", len(uploaded), len(entries))
        return UploadOutcome(uploaded=tuple(uploaded), failed=failed)
