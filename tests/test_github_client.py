import base64
from typing import Any

import pytest
import requests

from treepub import github_client
from treepub.github_client import GitHubClient, GitHubError, GitHubObjectStore
from treepub.store import BlobRef, CommitAuthor, ObjectStore, RefAlreadyExists, RefNotFound


class FakeResponse:
    def __init__(self, status_code: int, payload: Any = None, text: str = "") -> None:
        self.status_code = status_code
        self._payload = payload
        self.text = text

    def json(self) -> Any:
        if self._payload is None:
            raise ValueError("no json")
        return self._payload


class FakeGitHub:
    """Records requests and answers from a `(method, path) -> response` table."""

    def __init__(self, routes: dict[tuple[str, str], FakeResponse]) -> None:
        self.routes = routes
        self.calls: list[dict[str, Any]] = []

    def __call__(self, method: str, url: str, *, headers: dict[str, str], json: Any, timeout: float) -> FakeResponse:
        path = url.removeprefix("https://api.github.com")
        self.calls.append({"method": method, "path": path, "json": json, "headers": headers})
        return self.routes[(method, path)]


@pytest.fixture
def fake(monkeypatch: pytest.MonkeyPatch) -> FakeGitHub:
    fake = FakeGitHub({})
    monkeypatch.setattr(github_client.requests, "request", fake)
    return fake


def _store(base_branch: str | None = None) -> GitHubObjectStore:
    return GitHubObjectStore(GitHubClient("tok"), "octo", "site", base_branch=base_branch)


GIT = "/repos/octo/site/git"


def test_client_requires_token() -> None:
    with pytest.raises(GitHubError):
        GitHubClient("  ")


def test_github_store_satisfies_protocol() -> None:
    assert isinstance(_store(), ObjectStore)


def test_headers_and_blob_upload(fake: FakeGitHub) -> None:
    fake.routes[("POST", f"{GIT}/blobs")] = FakeResponse(201, {"sha": "b1"})

    assert _store().create_blob(b"\x00binary") == "b1"

    call = fake.calls[0]
    assert call["headers"]["Authorization"] == "Bearer tok"
    assert call["headers"]["Accept"] == "application/vnd.github+json"
    assert call["json"]["encoding"] == "base64"
    assert base64.b64decode(call["json"]["content"]) == b"\x00binary"


def test_create_tree_with_and_without_base(fake: FakeGitHub) -> None:
    fake.routes[("POST", f"{GIT}/trees")] = FakeResponse(201, {"sha": "t1"})
    entries = [BlobRef(path="index.html", object_id="b1")]

    assert _store().create_tree("base", entries) == "t1"
    assert _store().create_tree(None, entries) == "t1"

    assert fake.calls[0]["json"] == {
        "base_tree": "base",
        "tree": [{"path": "index.html", "mode": "100644", "type": "blob", "sha": "b1"}],
    }
    assert "base_tree" not in fake.calls[1]["json"]


def test_create_commit_and_read_tree(fake: FakeGitHub) -> None:
    fake.routes[("POST", f"{GIT}/commits")] = FakeResponse(201, {"sha": "c2"})
    fake.routes[("GET", f"{GIT}/commits/c2")] = FakeResponse(200, {"sha": "c2", "tree": {"sha": "t1"}})
    store = _store()

    commit_id = store.create_commit("t1", ["c1"], "Deploy", CommitAuthor(name="bot", email="bot@x"))

    assert commit_id == "c2"
    assert fake.calls[0]["json"] == {
        "message": "Deploy",
        "tree": "t1",
        "parents": ["c1"],
        "author": {"name": "bot", "email": "bot@x"},
    }
    assert store.get_commit_tree("c2") == "t1"


def test_get_ref_maps_not_found(fake: FakeGitHub) -> None:
    fake.routes[("GET", f"{GIT}/ref/heads/gh-pages")] = FakeResponse(404, {"message": "Not Found"})
    fake.routes[("GET", f"{GIT}/ref/heads/main")] = FakeResponse(200, {"object": {"sha": "c1"}})

    with pytest.raises(RefNotFound):
        _store().get_ref("gh-pages")
    assert _store().get_ref("main") == "c1"


def test_empty_repository_maps_to_not_found(fake: FakeGitHub) -> None:
    fake.routes[("GET", f"{GIT}/ref/heads/main")] = FakeResponse(409, {"message": "Git Repository is empty."})

    with pytest.raises(RefNotFound):
        _store(base_branch="main").get_default_branch_tip()


def test_create_ref_maps_already_exists(fake: FakeGitHub) -> None:
    fake.routes[("POST", f"{GIT}/refs")] = FakeResponse(422, {"message": "Reference already exists"})

    with pytest.raises(RefAlreadyExists):
        _store().create_ref("gh-pages", "c1")
    assert fake.calls[0]["json"] == {"ref": "refs/heads/gh-pages", "sha": "c1"}


def test_other_errors_carry_status(fake: FakeGitHub) -> None:
    fake.routes[("PATCH", f"{GIT}/refs/heads/gh-pages")] = FakeResponse(500, None, text="oops")

    with pytest.raises(GitHubError) as excinfo:
        _store().update_ref("gh-pages", "c2", force=True)
    assert excinfo.value.status_code == 500
    assert "oops" in str(excinfo.value)
    assert fake.calls[0]["json"] == {"sha": "c2", "force": True}


def test_default_branch_is_resolved_from_repo(fake: FakeGitHub) -> None:
    fake.routes[("GET", "/repos/octo/site")] = FakeResponse(
        200, {"html_url": "https://github.com/octo/site", "default_branch": "trunk"}
    )
    fake.routes[("GET", f"{GIT}/ref/heads/trunk")] = FakeResponse(200, {"object": {"sha": "c9"}})
    store = _store()

    assert store.get_default_branch_tip() == "c9"
    assert store.get_default_branch_tip() == "c9"
    assert [c["path"] for c in fake.calls].count("/repos/octo/site") == 1


def test_transport_errors_become_github_errors(monkeypatch: pytest.MonkeyPatch) -> None:
    def boom(*_args: Any, **_kwargs: Any) -> None:
        raise requests.ConnectionError("down")

    monkeypatch.setattr(github_client.requests, "request", boom)

    with pytest.raises(GitHubError) as excinfo:
        _store().create_blob(b"x")
    assert excinfo.value.status_code is None
