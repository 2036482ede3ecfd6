try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover
    import _bootstrap  # type: ignore # noqa: F401

import pytest

from oauth2_server.clients.sqlite_store import ItemExistsError


def test_put_and_get_item(store) -> None:
    store.put_item({"pk": "client#abc", "sk": "profile", "name": "First"})
    store.put_item({"pk": "client#abc", "sk": "profile", "name": "Second"})

    item = store.get_item(partition_key="client#abc", sort_key="profile")

    assert item["name"] == "Second"
    assert store.get_item(partition_key="client#missing", sort_key="profile") is None


def test_put_item_requires_keys(store) -> None:
    with pytest.raises(ValueError):
        store.put_item({"pk": "client#abc"})


def test_insert_item_never_overwrites(store) -> None:
    store.insert_item({"pk": "token#k", "sk": "record", "user_id": "alice"})

    with pytest.raises(ItemExistsError):
        store.insert_item({"pk": "token#k", "sk": "record", "user_id": "mallory"})

    assert store.get_item(partition_key="token#k", sort_key="record")["user_id"] == "alice"


def test_pop_item_returns_value_once(store) -> None:
    store.put_item({"pk": "codes#c", "sk": "code#x", "code": "x"})

    assert store.pop_item(partition_key="codes#c", sort_key="code#x")["code"] == "x"
    assert store.pop_item(partition_key="codes#c", sort_key="code#x") is None


def test_transact_is_all_or_nothing(store) -> None:
    store.put_item({"pk": "user#alice", "sk": "token#b"})

    with pytest.raises(ItemExistsError):
        store.transact(
            inserts=[
                {"pk": "token#b", "sk": "record"},
                {"pk": "user#alice", "sk": "token#b"},
            ]
        )

    assert store.get_item(partition_key="token#b", sort_key="record") is None


def test_delete_item_and_partition(store) -> None:
    store.put_item({"pk": "codes#c", "sk": "code#1"})
    store.put_item({"pk": "codes#c", "sk": "code#2"})
    store.put_item({"pk": "codes#other", "sk": "code#3"})

    assert store.delete_item(partition_key="codes#c", sort_key="code#1") is True
    assert store.delete_item(partition_key="codes#c", sort_key="code#1") is False
    assert store.delete_partition(partition_key="codes#c") == 1
    assert store.get_item(partition_key="codes#other", sort_key="code#3") is not None


def test_prefix_listing_treats_underscore_literally(store) -> None:
    store.put_item({"pk": "user#alice", "sk": "token#a_1", "key": "a_1"})
    store.put_item({"pk": "user#alice", "sk": "tokenXa", "key": "x"})
    store.put_item({"pk": "user#alice", "sk": "profile", "key": "p"})

    items = store.list_items_with_prefix(partition_key="user#alice", sort_key_prefix="token#")

    assert [item["key"] for item in items] == ["a_1"]


def test_scan_items_by_partition_prefix(store) -> None:
    store.put_item({"pk": "client#a", "sk": "profile", "id": "a"})
    store.put_item({"pk": "client#b", "sk": "profile", "id": "b"})
    store.put_item({"pk": "client-tokens#a", "sk": "profile", "id": "nope"})
    store.put_item({"pk": "user#a", "sk": "profile", "id": "user"})

    items = store.scan_items(partition_key_prefix="client#", sort_key="profile")

    assert [item["id"] for item in items] == ["a", "b"]
