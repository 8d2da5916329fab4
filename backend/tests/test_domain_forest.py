import pytest

from domain.aggregates.domain_forest import DomainForest
from exceptions import InvariantError


@pytest.fixture
def forest():
    # 1 Science
    #   2 Physics
    #     4 Optics
    #   3 Biology
    # 5 Literature
    return DomainForest({1: None, 2: 1, 3: 1, 4: 2, 5: None})


def test_ancestors_nearest_first(forest):
    assert forest.ancestors(4) == [2, 1]
    assert forest.ancestors(1) == []


def test_unknown_ids_yield_empty_results(forest):
    assert forest.ancestors(99) == []
    assert forest.descendants(99) == []
    assert forest.is_ancestor(1, 99) is False


def test_is_ancestor_is_strict(forest):
    assert forest.is_ancestor(1, 4)
    assert forest.is_ancestor(2, 4)
    assert not forest.is_ancestor(4, 1)
    assert not forest.is_ancestor(3, 4)
    assert not forest.is_ancestor(2, 2)


def test_descendants_depth_first(forest):
    assert forest.descendants(1) == [2, 4, 3]
    assert forest.descendants(4) == []
    assert forest.subtree(2) == {2, 4}


def test_roots_and_leaves(forest):
    assert forest.roots() == [1, 5]
    assert forest.leaves() == [3, 4, 5]


def test_closure_adds_every_ancestor(forest):
    assert forest.closure([4, 3]) == {1, 2, 3, 4}
    assert forest.closure([5]) == {5}
    assert forest.ordered_closure([4, 3]) == [4, 2, 1, 3]


def test_related_domains(forest):
    assert forest.related(4, 1)
    assert forest.related(1, 4)
    assert not forest.related(3, 4)


def test_would_create_cycle(forest):
    assert forest.would_create_cycle(2, 2)
    assert forest.would_create_cycle(1, 4)
    assert not forest.would_create_cycle(4, 3)
    assert not forest.would_create_cycle(4, None)


def test_corrupted_parent_chain_raises():
    corrupted = DomainForest({1: 2, 2: 3, 3: 1})

    with pytest.raises(InvariantError):
        corrupted.ancestors(1)
    with pytest.raises(InvariantError):
        corrupted.is_ancestor(99, 1)


def test_with_parent_returns_moved_copy(forest):
    moved = forest.with_parent(5, 2)

    assert moved.ancestors(5) == [2, 1]
    assert moved.related(5, 1)
    assert forest.ancestors(5) == []
