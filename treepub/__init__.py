"""
treepub package

This package publishes a locally built directory as the new tip of a GitHub
branch using the Git Database API (blobs, trees, commits, refs), without a
working-directory checkout.

Key responsibilities are split across modules:
- `walker.py`: enumerate local files
- `store.py`: object-store contract and errors
- `github_client.py`: isolated GitHub REST API interactions
- `memory_store.py`: in-process object store (dry runs, tests)
- `uploader.py`: concurrent blob uploads with retries
- `branch.py`: branch bootstrap
- `publisher.py`: publish orchestration
- `config.py` / `message.py`: settings and commit message templates
- `cli.py`: CLI entrypoint
"""

from __future__ import annotations

from treepub.publisher import PublishResult, Publisher, PublishState

__all__ = ["PublishResult", "PublishState", "Publisher", "__version__"]

__version__ = "0.1.0"
