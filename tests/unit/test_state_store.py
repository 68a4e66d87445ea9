"""
Unit tests for the in-memory state store.
"""

from pathwise.persistence import InMemoryStateStore, StateStore


class TestInMemoryStateStore:
    def test_satisfies_protocol(self):
        assert isinstance(InMemoryStateStore(), StateStore)

    def test_missing_learner_loads_none(self):
        assert InMemoryStateStore().load("nobody") is None

    def test_save_and_load(self):
        store = InMemoryStateStore()

        assert store.save("learner-1", '{"version": "1.0.0"}') is True
        assert store.load("learner-1") == '{"version": "1.0.0"}'
        assert store.has("learner-1")

    def test_save_overwrites(self):
        store = InMemoryStateStore()
        store.save("learner-1", "old")
        store.save("learner-1", "new")

        assert store.load("learner-1") == "new"
        assert len(store) == 1

    def test_keys_sorted_and_clear(self):
        store = InMemoryStateStore()
        store.save("b", "2")
        store.save("a", "1")

        assert store.keys() == ["a", "b"]
        store.clear()
        assert len(store) == 0
