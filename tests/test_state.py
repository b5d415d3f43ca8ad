"""Tests for the tagged-files stores."""

from notetagger.state import (
    STATE_FILENAME,
    MemoryTaggedStore,
    SqliteTaggedStore,
    TaggedFilesStore,
)


class TestMemoryTaggedStore:
    def test_protocol(self):
        assert isinstance(MemoryTaggedStore(), TaggedFilesStore)

    def test_set_get_remove(self):
        store = MemoryTaggedStore()
        store.set("a.md", 10.0)
        assert store.get("a.md") == 10.0
        store.remove("a.md")
        assert store.get("a.md") is None

    def test_remove_missing_is_silent(self):
        MemoryTaggedStore().remove("nothing.md")

    def test_all_is_a_copy(self):
        store = MemoryTaggedStore({"a.md": 1.0})
        store.all()["b.md"] = 2.0
        assert store.all() == {"a.md": 1.0}


class TestSqliteTaggedStore:
    def test_protocol(self, tmp_path):
        with SqliteTaggedStore(tmp_path / STATE_FILENAME) as store:
            assert isinstance(store, TaggedFilesStore)

    def test_persists_across_instances(self, tmp_path):
        db = tmp_path / "state" / STATE_FILENAME
        with SqliteTaggedStore(db) as store:
            store.set("notes/a.md", 1714555800.5)
            store.set("b.md", 1.0)
            store.persist()

        with SqliteTaggedStore(db) as store:
            assert store.get("notes/a.md") == 1714555800.5
            assert store.all() == {"notes/a.md": 1714555800.5, "b.md": 1.0}

    def test_set_overwrites(self, tmp_path):
        with SqliteTaggedStore(tmp_path / STATE_FILENAME) as store:
            store.set("a.md", 1.0)
            store.set("a.md", 2.0)
            assert store.get("a.md") == 2.0

    def test_remove(self, tmp_path):
        db = tmp_path / STATE_FILENAME
        with SqliteTaggedStore(db) as store:
            store.set("a.md", 1.0)
            store.persist()
            store.remove("a.md")
            store.persist()
        with SqliteTaggedStore(db) as store:
            assert store.get("a.md") is None

    def test_close_is_idempotent(self, tmp_path):
        store = SqliteTaggedStore(tmp_path / STATE_FILENAME)
        store.close()
        store.close()
