import pytest

from mentormatch.core.exceptions import NotFoundError, ValidationError
from mentormatch.db.memory_store import InMemoryDocumentStore


@pytest.fixture
def populated(store: InMemoryDocumentStore) -> InMemoryDocumentStore:
    store.set("items", "a", {"name": "alpha", "rank": 3, "tag": "x"})
    store.set("items", "b", {"name": "beta", "rank": 1, "tag": "y"})
    store.set("items", "c", {"name": "gamma", "rank": 2, "tag": "x"})
    return store


def test_get_returns_copy_with_id(populated):
    doc = populated.get("items", "a")
    assert doc["id"] == "a"
    doc["name"] = "mutated"
    assert populated.get("items", "a")["name"] == "alpha"


def test_get_missing_returns_none(store):
    assert store.get("items", "nope") is None


def test_query_filters_and_order(populated):
    results = populated.query("items", [("tag", "==", "x")], order_by=[("rank", -1)])
    assert [d["id"] for d in results] == ["a", "c"]

    results = populated.query("items", [("rank", "in", [1, 2])], order_by=[("rank", 1)], limit=1)
    assert [d["id"] for d in results] == ["b"]

    results = populated.query("items", [("tag", "!=", "x")])
    assert [d["id"] for d in results] == ["b"]


def test_query_rejects_unknown_operator(populated):
    with pytest.raises(ValidationError):
        populated.query("items", [("rank", "~=", 1)])


def test_update_missing_raises_not_found(store):
    with pytest.raises(NotFoundError):
        store.update("items", "missing", {"name": "x"})


def test_add_generates_id(store):
    doc_id = store.add("items", {"name": "delta"})
    assert store.get("items", doc_id)["name"] == "delta"


def test_transaction_commits_all_writes(populated):
    def _work(tx):
        tx.update("items", "a", {"rank": 10})
        tx.delete("items", "b")
        new_id = tx.add("items", {"name": "delta", "rank": 4, "tag": "x"})
        # Reads inside the transaction see its own writes
        assert tx.get("items", "a")["rank"] == 10
        assert tx.get("items", "b") is None
        assert len(tx.query("items", [("tag", "==", "x")])) == 3
        return new_id

    new_id = populated.run_transaction(_work)

    assert populated.get("items", "a")["rank"] == 10
    assert populated.get("items", "b") is None
    assert populated.get("items", new_id)["name"] == "delta"


def test_transaction_discards_writes_on_error(populated):
    def _work(tx):
        tx.update("items", "a", {"rank": 99})
        tx.delete("items", "c")
        raise RuntimeError("boom")

    with pytest.raises(RuntimeError):
        populated.run_transaction(_work)

    assert populated.get("items", "a")["rank"] == 3
    assert populated.get("items", "c") is not None
