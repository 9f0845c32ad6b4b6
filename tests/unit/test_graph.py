"""
Unit tests for dependency graph checks.
"""

import random

import pytest

from boardsync.graph import adjacency, dependency_path, find_cycle, would_create_cycle
from boardsync.model import Card


def _cards(edges):
    deps = {i: [] for i in sorted({n for e in edges for n in e})}
    for src, dst in edges:
        deps[src].append(dst)
    return [Card(id=i, title=i.upper(), dependencies=d) for i, d in deps.items()]


class TestWouldCreateCycle:
    """Tests for would_create_cycle."""

    def test_self_edge_is_cycle(self):
        assert would_create_cycle([Card(id="a", title="A")], "a", "a")

    def test_reverse_edge_is_cycle(self):
        cards = _cards([("a", "b")])
        assert would_create_cycle(cards, "b", "a")

    def test_transitive_cycle(self):
        cards = _cards([("a", "b"), ("b", "c")])
        assert would_create_cycle(cards, "c", "a")

    def test_independent_edge_is_fine(self):
        cards = _cards([("a", "b"), ("c", "d")])
        assert not would_create_cycle(cards, "b", "d")

    def test_diamond_is_fine(self):
        cards = _cards([("a", "b"), ("a", "c"), ("b", "d")])
        assert not would_create_cycle(cards, "c", "d")

    def test_unknown_ids_ignored(self):
        cards = [Card(id="a", title="A", dependencies=["ghost"])]
        assert not would_create_cycle(cards, "a", "other")

    def test_accepts_mapping(self):
        assert would_create_cycle({"a": ["b"], "b": []}, "b", "a")

    def test_long_chain_does_not_recurse(self):
        graph = {str(i): [str(i + 1)] for i in range(5000)}
        assert would_create_cycle(graph, "5000", "0")

    def test_random_acyclic_edges_never_close_cycle(self):
        """Only edges that pass the check are added; the graph stays acyclic."""
        rng = random.Random(1234)
        graph = {str(i): [] for i in range(30)}
        rejected = 0
        for _ in range(400):
            a, b = rng.choice(list(graph)), rng.choice(list(graph))
            if would_create_cycle(graph, a, b):
                rejected += 1
                continue
            if b not in graph[a]:
                graph[a].append(b)
            assert find_cycle(graph) is None
        assert rejected > 0


class TestDependencyPath:
    """Tests for dependency_path."""

    def test_finds_path(self):
        cards = _cards([("a", "b"), ("b", "c")])
        assert dependency_path(cards, "a", "c") == ["a", "b", "c"]

    def test_unreachable(self):
        cards = _cards([("a", "b")])
        assert dependency_path(cards, "b", "a") is None

    def test_start_equals_goal(self):
        assert dependency_path({}, "x", "x") == ["x"]


class TestFindCycle:
    """Tests for find_cycle."""

    def test_acyclic(self):
        assert find_cycle(_cards([("a", "b"), ("b", "c")])) is None

    def test_reports_cycle(self):
        cycle = find_cycle({"a": ["b"], "b": ["c"], "c": ["a"]})
        assert cycle is not None
        assert cycle[0] == cycle[-1]
        assert set(cycle) == {"a", "b", "c"}

    def test_self_loop(self):
        assert find_cycle({"a": ["a"]}) == ["a", "a"]


class TestAdjacency:
    """Tests for adjacency."""

    def test_from_cards(self):
        cards = [Card(id="a", title="A", dependencies=["b"]), Card(id="b", title="B")]
        assert adjacency(cards) == {"a": ["b"], "b": []}

    def test_copies_mapping(self):
        graph = {"a": ["b"]}
        out = adjacency(graph)
        out["a"].append("c")
        assert graph == {"a": ["b"]}


@pytest.mark.parametrize("n", [2, 3, 10])
def test_ring_closing_edge_rejected(n):
    graph = {str(i): [str(i + 1)] if i < n - 1 else [] for i in range(n)}
    assert would_create_cycle(graph, str(n - 1), "0")
