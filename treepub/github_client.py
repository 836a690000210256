"""
github_client.py

Responsibility: Isolate all direct GitHub REST API interaction.

This module must be the only place that:
- Constructs GitHub REST endpoints
- Sends HTTP requests to api.github.com
- Interprets GitHub API responses / error payloads

`GitHubObjectStore` exposes the Git Database API (blobs, trees, commits, refs)
through the `ObjectStore` contract so the publisher never sees HTTP.
"""

from __future__ import annotations

import base64
import logging
from dataclasses import dataclass
from typing import Any, Sequence

import requests

from treepub.store import BlobRef, CommitAuthor, RefAlreadyExists, RefNotFound, StoreError

logger = logging.getLogger(__name__)


class GitHubError(StoreError):
    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)


@dataclass(frozen=True)
class RepoInfo:
    owner: str
    name: str
    html_url: str
    default_branch: str


class GitHubClient:
    def __init__(self, token: str, api_base: str = "https://api.github.com", *, timeout: float = 30) -> None:
        if not token.strip():
            raise GitHubError("GitHub token is required.")
        self._token = token
        self._api_base = api_base.rstrip("/")
        self._timeout = timeout

    def _headers(self) -> dict[str, str]:
        return {
            "Accept": "application/vnd.github+json",
            "Authorization": f"Bearer {self._token}",
            "X-GitHub-Api-Version": "2022-11-28",
            "User-Agent": "treepub",
        }

    def request(self, method: str, path: str, *, json_body: dict[str, Any] | None = None) -> Any:
        url = f"{self._api_base}{path}"
        try:
            r = requests.request(method, url, headers=self._headers(), json=json_body, timeout=self._timeout)
        except requests.RequestException as e:
            raise GitHubError(f"GitHub API request failed {method} {path}: {e}") from e
        if r.status_code >= 400:
            try:
                payload = r.json()
            except ValueError:
                payload = {"message": r.text}
            message = payload.get("message", payload) if isinstance(payload, dict) else payload
            raise GitHubError(
                f"GitHub API error {r.status_code} {method} {path}: {message}",
                status_code=r.status_code,
            )
        if r.status_code == 204:
            return None
        return r.json()

    def get_repo(self, owner: str, name: str) -> RepoInfo:
        data = self.request("GET", f"/repos/{owner}/{name}")
        return RepoInfo(
            owner=owner,
            name=name,
            html_url=data["html_url"],
            default_branch=data.get("default_branch") or "main",
        )


class GitHubObjectStore:
    """
    `ObjectStore` backed by the Git Database API of one repository.

    `base_branch` is the branch new branches are seeded from; when None the
    repository's default branch is looked up on first use.
    """

    def __init__(self, client: GitHubClient, owner: str, repo: str, *, base_branch: str | None = None) -> None:
        self._client = client
        self._owner = owner
        self._repo = repo
        self._base_branch = base_branch

    @property
    def _prefix(self) -> str:
        return f"/repos/{self._owner}/{self._repo}/git"

    def create_blob(self, data: bytes) -> str:
        body = {"content": base64.b64encode(data).decode("ascii"), "encoding": "base64"}
        return str(self._client.request("POST", f"{self._prefix}/blobs", json_body=body)["sha"])

    def create_tree(self, base_tree_id: str | None, entries: Sequence[BlobRef]) -> str:
        body: dict[str, Any] = {
            "tree": [{"path": e.path, "mode": e.mode, "type": "blob", "sha": e.object_id} for e in entries],
        }
        if base_tree_id:
            body["base_tree"] = base_tree_id
        return str(self._client.request("POST", f"{self._prefix}/trees", json_body=body)["sha"])

    def create_commit(
        self,
        tree_id: str,
        parent_ids: Sequence[str],
        message: str,
        author: CommitAuthor,
    ) -> str:
        body = {
            "message": message,
            "tree": tree_id,
            "parents": list(parent_ids),
            "author": {"name": author.name, "email": author.email},
        }
        return str(self._client.request("POST", f"{self._prefix}/commits", json_body=body)["sha"])

    def get_commit_tree(self, commit_id: str) -> str:
        data = self._client.request("GET", f"{self._prefix}/commits/{commit_id}")
        return str(data["tree"]["sha"])

    def get_ref(self, branch: str) -> str:
        try:
            data = self._client.request("GET", f"{self._prefix}/ref/heads/{branch}")
        except GitHubError as e:
            # 409 is how the Git Database API answers for a repository with no commits.
            if e.status_code in (404, 409):
                raise RefNotFound(branch) from e
            raise
        return str(data["object"]["sha"])

    def create_ref(self, branch: str, commit_id: str) -> None:
        body = {"ref": f"refs/heads/{branch}", "sha": commit_id}
        try:
            self._client.request("POST", f"{self._prefix}/refs", json_body=body)
        except GitHubError as e:
            if e.status_code == 422 and "already exists" in str(e).lower():
                raise RefAlreadyExists(branch) from e
            raise

    def update_ref(self, branch: str, commit_id: str, *, force: bool) -> None:
        body = {"sha": commit_id, "force": force}
        self._client.request("PATCH", f"{self._prefix}/refs/heads/{branch}", json_body=body)

    def get_default_branch_tip(self) -> str:
        if self._base_branch is None:
            self._base_branch = self._client.get_repo(self._owner, self._repo).default_branch
            logger.debug("Resolved default branch of %s/%s: %s", self._owner, self._repo, self._base_branch)
        return self.get_ref(self._base_branch)
