import pytest

from treepub.memory_store import InMemoryObjectStore
from treepub.store import BlobRef, CommitAuthor, ObjectStore, RefAlreadyExists, RefNotFound, StoreError


def test_memory_store_satisfies_protocol() -> None:
    assert isinstance(InMemoryObjectStore(), ObjectStore)


def test_blob_ids_are_content_addressed() -> None:
    store = InMemoryObjectStore()
    # git hash-object of "hello\n"
    assert store.create_blob(b"hello\n") == "ce013625030ba8dba906f756967f9e9ca394464a"
    assert store.create_blob(b"a") == store.create_blob(b"a")
    assert store.create_blob(b"a") != store.create_blob(b"b")


def test_create_tree_layers_on_base() -> None:
    store = InMemoryObjectStore()
    base = store.create_tree(
        None,
        [
            BlobRef(path="keep.txt", object_id=store.create_blob(b"keep")),
            BlobRef(path="change.txt", object_id=store.create_blob(b"old")),
        ],
    )
    new_blob = store.create_blob(b"new")
    layered = store.create_tree(base, [BlobRef(path="change.txt", object_id=new_blob)])

    files = store.tree_files(layered)
    assert files["change.txt"] == new_blob
    assert "keep.txt" in files
    assert store.tree_files(base)["change.txt"] != new_blob


def test_create_tree_rejects_unknown_blob() -> None:
    store = InMemoryObjectStore()
    with pytest.raises(StoreError):
        store.create_tree(None, [BlobRef(path="a", object_id="0" * 40)])


def test_commits_are_never_deduplicated() -> None:
    store = InMemoryObjectStore()
    tree = store.create_tree(None, [])
    first = store.create_commit(tree, [], "same", CommitAuthor())
    second = store.create_commit(tree, [], "same", CommitAuthor())
    assert first != second


def test_refs_create_update_and_errors() -> None:
    store = InMemoryObjectStore()
    with pytest.raises(RefNotFound):
        store.get_ref("main")

    c1 = store.seed_branch("main", {"a.txt": b"1"})
    assert store.get_ref("main") == c1
    with pytest.raises(RefAlreadyExists):
        store.create_ref("main", c1)

    c2 = store.seed_branch("main", {"a.txt": b"2"})
    assert store.get_commit(c2).parent_ids == (c1,)
    store.update_ref("main", c1, force=True)
    assert store.get_ref("main") == c1


def test_non_forced_update_requires_fast_forward() -> None:
    store = InMemoryObjectStore()
    c1 = store.seed_branch("main", {"a.txt": b"1"})
    c2 = store.seed_branch("main", {"a.txt": b"2"})

    with pytest.raises(StoreError):
        store.update_ref("main", c1, force=False)
    assert store.get_ref("main") == c2

    tree = store.get_commit_tree(c2)
    c3 = store.create_commit(tree, [c2], "next", CommitAuthor())
    store.update_ref("main", c3, force=False)
    assert store.get_ref("main") == c3


def test_default_branch_tip() -> None:
    store = InMemoryObjectStore(default_branch="trunk")
    with pytest.raises(RefNotFound):
        store.get_default_branch_tip()
    tip = store.seed_branch("trunk", {"README.md": b"hi"})
    assert store.get_default_branch_tip() == tip
