"""
Dependency graph checks for boardsync.

Each card's dependency list is a set of directed edges (card -> dependency).
Before a new edge is committed we check that it cannot close a cycle.

Invariants:
    - The dependency relation is acyclic at all times
    - A card never depends on itself
    - Checks are pure: they never touch the state they inspect

How to change safely:
    - Keep the search iterative (deep chains must not hit the recursion limit)
    - Edges to unknown ids are ignored, not treated as errors
"""

from __future__ import annotations

from typing import Dict, Iterable, List, Mapping, Optional, Union

from .model import Card

Graph = Mapping[str, Iterable[str]]
CardsOrGraph = Union[Iterable[Card], Graph]


def adjacency(cards: CardsOrGraph) -> Dict[str, List[str]]:
    """Build an adjacency map from cards (or copy an existing mapping)."""
    if isinstance(cards, Mapping):
        return {k: list(v) for k, v in cards.items()}
    return {card.id: list(card.dependencies) for card in cards}


def dependency_path(cards: CardsOrGraph, start: str, goal: str) -> Optional[List[str]]:
    """Find a path start -> ... -> goal along dependency edges.

    Args:
        cards: Cards or an adjacency mapping
        start: Node to search from
        goal: Node to reach

    Returns:
        List of ids from start to goal inclusive, or None if unreachable
    """
    graph = adjacency(cards)
    if start == goal:
        return [start]

    parents: Dict[str, str] = {}
    visited = {start}
    stack = [start]
    while stack:
        node = stack.pop()
        for nxt in graph.get(node, ()):
            if nxt in visited:
                continue
            parents[nxt] = node
            if nxt == goal:
                path = [goal]
                while path[-1] != start:
                    path.append(parents[path[-1]])
                path.reverse()
                return path
            visited.add(nxt)
            stack.append(nxt)
    return None


def would_create_cycle(cards: CardsOrGraph, from_id: str, to_id: str) -> bool:
    """Check whether adding from_id -> to_id would close a cycle.

    True when from_id == to_id, or when to_id already (transitively)
    depends on from_id. Runs in O(V+E).

    Example:
        >>> a = Card(id="a", title="A", dependencies=["b"])
        >>> b = Card(id="b", title="B")
        >>> would_create_cycle([a, b], "b", "a")
        True
    """
    if from_id == to_id:
        return True
    return dependency_path(cards, to_id, from_id) is not None


def find_cycle(cards: CardsOrGraph) -> Optional[List[str]]:
    """Return one cycle in the graph (first node repeated at the end), or None."""
    graph = adjacency(cards)
    white, grey, black = 0, 1, 2
    color: Dict[str, int] = {}

    for root in graph:
        if color.get(root, white) != white:
            continue
        color[root] = grey
        trail = [root]
        iters = [iter(graph.get(root, ()))]
        while iters:
            nxt = next(iters[-1], None)
            if nxt is None:
                color[trail.pop()] = black
                iters.pop()
                continue
            state = color.get(nxt, white)
            if state == grey:
                return trail[trail.index(nxt):] + [nxt]
            if state == white:
                color[nxt] = grey
                trail.append(nxt)
                iters.append(iter(graph.get(nxt, ())))
    return None
