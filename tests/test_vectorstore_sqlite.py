from __future__ import annotations

import threading

import pytest

from layoutrag.vectorstore import SQLiteVectorStore, VectorStoreWriteError


@pytest.fixture
def store(tmp_path) -> SQLiteVectorStore:
    store = SQLiteVectorStore(tmp_path / "db" / "vectors.sqlite3")
    store.create_collection("vec_items")
    yield store
    store.close()


def test_query_orders_by_descending_similarity(store: SQLiteVectorStore) -> None:
    store.add(
        "vec_items",
        embeddings=[[1.0, 0.0], [0.0, 1.0], [0.9, 0.1]],
        metadatas=[{"heading": "a"}, {"heading": "b"}, {"heading": "c"}],
    )

    matches = store.query("vec_items", [1.0, 0.0], k=3)

    assert [match.meta["heading"] for match in matches] == ["a", "c", "b"]
    assert matches[0].similarity == pytest.approx(1.0)
    assert matches[2].similarity == pytest.approx(0.0)


def test_query_respects_limit(store: SQLiteVectorStore) -> None:
    store.add("vec_items", embeddings=[[1.0, 0.0], [0.0, 1.0]], metadatas=[{"i": 1}, {"i": 2}])

    assert len(store.query("vec_items", [1.0, 0.0], k=1)) == 1
    assert store.query("vec_items", [1.0, 0.0], k=0) == []


def test_empty_collection_returns_no_matches(store: SQLiteVectorStore) -> None:
    assert store.query("vec_items", [1.0, 0.0], k=5) == []


def test_zero_vector_has_zero_similarity(store: SQLiteVectorStore) -> None:
    store.add("vec_items", embeddings=[[0.0, 0.0]], metadatas=[{"i": 1}])

    (match,) = store.query("vec_items", [1.0, 0.0], k=5)
    assert match.similarity == 0.0


def test_dimension_mismatch_rolls_back_whole_batch(store: SQLiteVectorStore) -> None:
    store.add("vec_items", embeddings=[[1.0, 0.0]], metadatas=[{"i": 1}])

    with pytest.raises(VectorStoreWriteError) as excinfo:
        store.add("vec_items", embeddings=[[1.0, 0.0, 0.0]], metadatas=[{"i": 2}])
    with pytest.raises(VectorStoreWriteError):
        store.add("vec_items", embeddings=[[1.0, 0.0], [1.0]], metadatas=[{"i": 3}, {"i": 4}])

    assert excinfo.value.count == 1
    assert store.count("vec_items") == 1


def test_failed_insert_leaves_no_rows(store: SQLiteVectorStore) -> None:
    store._conn.execute(
        """
        CREATE TRIGGER reject_boom BEFORE INSERT ON vec_items
        WHEN NEW.meta LIKE '%boom%'
        BEGIN SELECT RAISE(ABORT, 'rejected'); END
        """
    )

    with pytest.raises(VectorStoreWriteError) as excinfo:
        store.add(
            "vec_items",
            embeddings=[[1.0, 0.0], [0.0, 1.0]],
            metadatas=[{"heading": "fine"}, {"heading": "boom"}],
        )

    assert excinfo.value.count == 2
    assert store.count("vec_items") == 0
    assert store.dimension("vec_items") is None


def test_readers_never_see_rows_of_a_failing_batch(store: SQLiteVectorStore) -> None:
    store._conn.execute(
        """
        CREATE TRIGGER reject_boom BEFORE INSERT ON vec_items
        WHEN NEW.meta LIKE '%boom%'
        BEGIN SELECT RAISE(ABORT, 'rejected'); END
        """
    )
    done = threading.Event()
    seen = {"max_count": 0, "dimensions": set(), "matches": 0}

    def read_until_done() -> None:
        while not done.is_set():
            seen["max_count"] = max(seen["max_count"], store.count("vec_items"))
            seen["dimensions"].add(store.dimension("vec_items"))
            seen["matches"] += len(store.query("vec_items", [1.0, 0.0], k=1))

    reader = threading.Thread(target=read_until_done)
    reader.start()
    try:
        with pytest.raises(VectorStoreWriteError):
            store.add(
                "vec_items",
                embeddings=[[1.0, 0.0]] * 20_000,
                metadatas=[{"heading": f"row {index}"} for index in range(19_999)] + [{"heading": "boom"}],
            )
    finally:
        done.set()
        reader.join(timeout=10)

    assert not reader.is_alive()
    assert seen["max_count"] == 0
    assert seen["dimensions"] <= {None}
    assert seen["matches"] == 0
    assert store.count("vec_items") == 0


def test_rows_survive_reopen(tmp_path) -> None:
    path = tmp_path / "vectors.sqlite3"
    first = SQLiteVectorStore(path)
    first.create_collection("vec_items")
    first.add("vec_items", embeddings=[[0.6, 0.8]], metadatas=[{"heading": "kept", "text": "body"}])
    first.close()

    reopened = SQLiteVectorStore(path)
    reopened.create_collection("vec_items")
    (match,) = reopened.query("vec_items", [0.6, 0.8], k=5)
    reopened.close()

    assert match.meta == {"heading": "kept", "text": "body"}
    assert match.similarity == pytest.approx(1.0, abs=1e-6)


def test_invalid_collection_names_are_rejected(store: SQLiteVectorStore) -> None:
    with pytest.raises(ValueError):
        store.create_collection("items; DROP TABLE vector_collections")
