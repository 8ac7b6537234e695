import pytest
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from db.engine import create_db_engine, get_database_url
from db.memory_store import SqlSearchMemoryStore
from db.repository import delete_user_search_memories, get_search_memories
from db.session import create_session_factory
from db.tables import create_tables
from models.search_response import SearchResult


@pytest.fixture
def session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    create_tables(engine)
    yield create_session_factory(engine)
    engine.dispose()


def _results(count: int = 2) -> list[SearchResult]:
    return [
        SearchResult(
            id=f"tavily_{i}",
            title=f"Result {i}",
            url=f"https://site{i}.com",
            snippet="snippet",
            provider="tavily",
            relevance_score=2.0 - i * 0.1,
        )
        for i in range(count)
    ]


def test_store_persists_query_and_results(session_factory):
    store = SqlSearchMemoryStore(session_factory)

    memory_id = store.store("rust ownership", _results(), "conv-1", user_id="u1")

    db = session_factory()
    try:
        rows = get_search_memories(db, conversation_id="conv-1")
    finally:
        db.close()

    assert memory_id == rows[0]["id"]
    assert rows[0]["query"] == "rust ownership"
    assert rows[0]["provider"] == "tavily"
    assert rows[0]["user_id"] == "u1"
    assert [r["id"] for r in rows[0]["results"]] == ["tavily_0", "tavily_1"]
    assert rows[0]["created_at"] is not None


def test_store_without_user_and_filters(session_factory):
    store = SqlSearchMemoryStore(session_factory)
    store.store("first", _results(1), "conv-1")
    store.store("second", _results(1), "conv-2", user_id="u2")

    db = session_factory()
    try:
        assert len(get_search_memories(db)) == 2
        assert [r["query"] for r in get_search_memories(db, user_id="u2")] == ["second"]
        assert get_search_memories(db, conversation_id="conv-1")[0]["user_id"] is None
    finally:
        db.close()


def test_store_with_empty_results(session_factory):
    store = SqlSearchMemoryStore(session_factory)
    store.store("nothing", [], "conv-1")

    db = session_factory()
    try:
        row = get_search_memories(db)[0]
    finally:
        db.close()

    assert row["results"] == []
    assert row["provider"] is None


def test_delete_user_memories(session_factory):
    store = SqlSearchMemoryStore(session_factory)
    store.store("a", _results(1), "conv-1", user_id="u1")
    store.store("b", _results(1), "conv-1", user_id="u1")
    store.store("c", _results(1), "conv-1", user_id="u2")

    db = session_factory()
    try:
        assert delete_user_search_memories(db, "u1") == 2
        db.commit()
        assert [r["query"] for r in get_search_memories(db)] == ["c"]
    finally:
        db.close()


def test_database_url_is_required(monkeypatch):
    monkeypatch.delenv("DATABASE_URL", raising=False)

    with pytest.raises(ValueError):
        get_database_url()


def test_each_engine_gets_its_own_session_factory(tmp_path):
    first = create_db_engine(f"sqlite:///{tmp_path / 'a.db'}")
    second = create_db_engine(f"sqlite:///{tmp_path / 'b.db'}")
    try:
        create_tables(first)
        create_tables(second)
        SqlSearchMemoryStore(create_session_factory(first)).store("only in a", [], "conv-1")

        db = create_session_factory(second)()
        try:
            assert get_search_memories(db) == []
        finally:
            db.close()
    finally:
        first.dispose()
        second.dispose()
