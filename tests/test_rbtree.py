import random

import pytest

from kvstore.rbtree import Color, RBTreeStore


def test_duplicate_set_keeps_first_value():
    store = RBTreeStore()
    assert store.set("name", "zmh") is True
    assert store.set("name", "other") is False
    assert store.get("name") == "zmh"
    assert len(store) == 1


def test_delete_missing_is_harmless():
    store = RBTreeStore()
    assert store.delete("ghost") is False
    store.set("a", "1")
    assert store.delete("ghost") is False
    assert store.get("a") == "1"
    assert store.check_invariants() >= 1


def test_iteration_is_sorted():
    store = RBTreeStore()
    keys = ["delta", "alpha", "echo", "charlie", "bravo"]
    for key in keys:
        store.set(key, key.upper())
    assert list(store) == sorted(keys)
    assert list(store.items()) == [(k, k.upper()) for k in sorted(keys)]


def test_sequential_inserts_keep_balance():
    store = RBTreeStore()
    for i in range(200):
        store.set(f"{i:04d}", str(i))
        store.check_invariants()
    assert list(store) == [f"{i:04d}" for i in range(200)]


def test_random_operations_match_dict():
    rng = random.Random(1234)
    store = RBTreeStore()
    model: dict[str, str] = {}
    for step in range(2000):
        key = f"k{rng.randrange(150)}"
        action = rng.random()
        if action < 0.5:
            assert store.set(key, str(step)) is (key not in model)
            model.setdefault(key, str(step))
        elif action < 0.8:
            assert store.delete(key) is (key in model)
            model.pop(key, None)
        else:
            assert store.modify(key, str(step)) is (key in model)
            if key in model:
                model[key] = str(step)
        assert store.exists(key) is (key in model)
        assert store.get(key) == model.get(key)
        if step % 50 == 0:
            store.check_invariants()
    store.check_invariants()
    assert dict(store.items()) == model
    assert list(store) == sorted(model)
    assert len(store) == len(model)


def test_delete_everything_empties_tree():
    store = RBTreeStore()
    keys = [f"key{i}" for i in range(64)]
    random.Random(7).shuffle(keys)
    for key in keys:
        store.set(key, "v")
    for key in keys:
        assert store.delete(key)
        store.check_invariants()
    assert len(store) == 0
    assert list(store.items()) == []


def test_contains():
    store = RBTreeStore()
    store.set("name", "zmh")
    assert "name" in store
    assert "nom" not in store
    assert 3 not in store


def test_red_root_is_reported():
    store = RBTreeStore()
    store.set("name", "zmh")
    store._root.color = Color.RED
    with pytest.raises(ValueError):
        store.check_invariants()