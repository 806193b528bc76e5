from types import SimpleNamespace

import pytest
from ktree.errors import StoreCorruption
from ktree.services.assembly import assemble, group_rows_by_tree, iter_preorder


def row(id, parent_id, name=None, sort_order=0, tree_id=1):
    return SimpleNamespace(
        id=id,
        tree_id=tree_id,
        parent_id=parent_id,
        name=name or f"node-{id}",
        sort_order=sort_order,
    )


def test_empty_rows_have_no_root():
    assert assemble([]) is None


def test_rows_without_root_return_none():
    # A tree caught between its own insert and its root's
    assert assemble([row(2, 1), row(3, 2)]) is None


def test_children_sorted_by_sort_order_then_id():
    rows = [
        row(5, 1, "E", sort_order=1),
        row(3, 1, "C", sort_order=0),
        row(1, None, "Root"),
        row(4, 1, "D", sort_order=0),
        row(2, 3, "B"),
    ]
    root = assemble(rows)

    assert root.id == 1
    assert [c.name for c in root.children] == ["C", "D", "E"]
    assert [c.id for c in root.children[0].children] == [2]
    assert [n.id for n in iter_preorder(root)] == [1, 3, 2, 4, 5]


def test_assembly_does_not_depend_on_row_order():
    rows = [row(1, None), row(2, 1), row(3, 2), row(4, 1, sort_order=-1)]
    forward = [n.id for n in iter_preorder(assemble(rows))]
    backward = [n.id for n in iter_preorder(assemble(list(reversed(rows))))]
    assert forward == backward == [1, 4, 2, 3]


def test_progress_is_attached_by_node_id():
    root = assemble([row(1, None), row(2, 1)], {2: "graded"})
    assert root.progress is None
    assert root.children[0].progress == "graded"


def test_multiple_roots_are_corruption():
    with pytest.raises(StoreCorruption) as exc_info:
        assemble([row(1, None), row(2, None)])
    assert exc_info.value.details["root_ids"] == [1, 2]


def test_missing_parent_is_corruption():
    with pytest.raises(StoreCorruption):
        assemble([row(1, None), row(2, 99)])


def test_foreign_tree_row_is_corruption():
    with pytest.raises(StoreCorruption):
        assemble([row(1, None), row(2, 1, tree_id=7)])


def test_detached_cycle_is_corruption():
    rows = [row(1, None), row(2, 3), row(3, 2)]
    with pytest.raises(StoreCorruption) as exc_info:
        assemble(rows)
    assert exc_info.value.details["unreachable"] == 2


def test_deep_chain_does_not_recurse():
    depth = 5000
    rows = [row(1, None)] + [row(i, i - 1) for i in range(2, depth + 1)]
    ids = [n.id for n in iter_preorder(assemble(rows))]
    assert ids == list(range(1, depth + 1))


def test_group_rows_by_tree():
    grouped = group_rows_by_tree([row(1, None), row(2, None, tree_id=2), row(3, 1)])
    assert sorted(grouped) == [1, 2]
    assert [r.id for r in grouped[1]] == [1, 3]
