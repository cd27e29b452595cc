from newsgraph.retrieval.grouping import group_by, group_by_field


def test_group_by_partitions_items():
    items = [
        {"_key": "1", "author": "alice"},
        {"_key": "2", "author": "bob"},
        {"_key": "3", "author": "alice"},
        {"_key": "4", "author": "bob"},
        {"_key": "5", "author": "alice"},
    ]

    groups = group_by_field(items, "author")

    assert list(groups) == ["alice", "bob"]
    assert [i["_key"] for i in groups["alice"]] == ["1", "3", "5"]
    assert [i["_key"] for i in groups["bob"]] == ["2", "4"]
    assert sum(len(members) for members in groups.values()) == len(items)


def test_missing_field_groups_under_none():
    groups = group_by_field([{"a": 1}, {"b": 2}], "a")

    assert groups == {1: [{"a": 1}], None: [{"b": 2}]}


def test_list_values_become_hashable_keys():
    items = [{"category": ["a", "b"]}, {"category": ["a", "b"]}, {"category": ["c"]}]

    groups = group_by_field(items, "category")

    assert list(groups) == [("a", "b"), ("c",)]


def test_group_by_callable_key():
    assert group_by(range(6), lambda n: n % 2) == {0: [0, 2, 4], 1: [1, 3, 5]}
