"""Tests for the thread hierarchy builder."""

import logging

from agent_sidebar.hierarchy import Thread, ThreadRows, build_thread_rows


def _threads(*ids):
    return [Thread(id=thread_id, name=f"Thread {thread_id}") for thread_id in ids]


def _flatten(result):
    return [(row.thread.id, row.depth) for row in result.rows]


def test_empty_threads():
    result = build_thread_rows([], {}, expanded=False)
    assert result == ThreadRows(rows=[], total_roots=0, has_more_roots=False)


def test_collapsed_list_shows_first_three_roots_with_children():
    threads = _threads("A", "B", "C", "D", "E")
    result = build_thread_rows(threads, {"B": "A"}, expanded=False)

    assert _flatten(result) == [("A", 0), ("B", 1), ("C", 0), ("D", 0)]
    assert result.total_roots == 4
    assert result.has_more_roots is True


def test_expanded_list_shows_every_root():
    threads = _threads("A", "B", "C", "D", "E")
    collapsed = build_thread_rows(threads, {}, expanded=False)
    expanded = build_thread_rows(threads, {}, expanded=True)

    assert len(collapsed.rows) == 3
    assert collapsed.has_more_roots is True
    assert [thread_id for thread_id, _ in _flatten(expanded)] == ["A", "B", "C", "D", "E"]
    assert expanded.total_roots == 5
    assert expanded.has_more_roots is False


def test_root_cap_does_not_limit_descendants():
    threads = _threads("A", "A1", "A2", "A3", "A4", "B")
    parents = {"A1": "A", "A2": "A", "A3": "A", "A4": "A"}
    result = build_thread_rows(threads, parents, expanded=False)

    assert len(result.rows) == 6
    assert result.total_roots == 2
    assert result.has_more_roots is False


def test_pre_order_traversal_with_nested_children():
    threads = _threads("root", "child-1", "child-2", "grandchild", "other")
    parents = {"child-1": "root", "child-2": "root", "grandchild": "child-1"}
    result = build_thread_rows(threads, parents, expanded=True)

    assert _flatten(result) == [
        ("root", 0),
        ("child-1", 1),
        ("grandchild", 2),
        ("child-2", 1),
        ("other", 0),
    ]


def test_children_keep_input_order_even_before_parent():
    threads = _threads("late-child", "parent", "early-child")
    parents = {"late-child": "parent", "early-child": "parent"}
    result = build_thread_rows(threads, parents, expanded=False)

    assert _flatten(result) == [("parent", 0), ("late-child", 1), ("early-child", 1)]


def test_dangling_parent_is_promoted_to_root():
    threads = _threads("A", "B")
    result = build_thread_rows(threads, {"B": "missing"}, expanded=False)

    assert _flatten(result) == [("A", 0), ("B", 0)]
    assert result.total_roots == 2


def test_self_parent_is_treated_as_root():
    threads = _threads("A")
    result = build_thread_rows(threads, {"A": "A"}, expanded=False)

    assert _flatten(result) == [("A", 0)]


def test_cycle_terminates_and_is_reported(caplog):
    threads = _threads("A", "B", "C")
    parents = {"B": "C", "C": "B"}

    with caplog.at_level(logging.WARNING, logger="agent_sidebar.hierarchy"):
        result = build_thread_rows(threads, parents, expanded=True)

    assert _flatten(result) == [("A", 0)]
    assert result.total_roots == 1
    assert "B, C" in caplog.text


def test_depth_matches_parent_depth_plus_one():
    threads = _threads("r", "a", "b", "c", "d")
    parents = {"a": "r", "b": "a", "c": "r", "d": "b"}
    result = build_thread_rows(threads, parents, expanded=True)

    depth_by_id = {row.thread.id: row.depth for row in result.rows}
    for row in result.rows:
        parent_id = parents.get(row.thread.id)
        if parent_id:
            assert row.depth == depth_by_id[parent_id] + 1
        else:
            assert row.depth == 0


def test_builder_is_pure():
    threads = _threads("A", "B", "C", "D")
    parents = {"B": "A"}

    first = build_thread_rows(threads, parents, expanded=False)
    second = build_thread_rows(threads, parents, expanded=False)

    assert first == second
    assert {row.thread for row in first.rows} <= set(threads)


def test_custom_visible_root_limit():
    threads = _threads("A", "B", "C")
    result = build_thread_rows(threads, {}, expanded=False, visible_root_limit=1)

    assert _flatten(result) == [("A", 0)]
    assert result.has_more_roots is True


def test_thread_from_dict_accepts_camel_case():
    thread = Thread.from_dict({"id": "t-1", "name": "Plan", "updatedAt": 1700000000000})
    assert thread == Thread(id="t-1", name="Plan", updated_at=1700000000000)
    assert thread.to_dict()["updatedAt"] == 1700000000000


def test_repeated_ids_count_once():
    threads = [
        Thread(id="A", name="first"),
        Thread(id="B", name="B"),
        Thread(id="A", name="second"),
        Thread(id="C", name="C"),
    ]
    result = build_thread_rows(threads, {}, expanded=False)

    assert [(row.thread.name, row.depth) for row in result.rows] == [
        ("first", 0),
        ("B", 0),
        ("C", 0),
    ]
    assert result.total_roots == 3
    assert result.has_more_roots is False
