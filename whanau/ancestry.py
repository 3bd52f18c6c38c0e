"""Upward/downward traversals over the parent -> child graph."""

from __future__ import annotations

import os
from dataclasses import dataclass

from .graph import GraphReader
from .models import ParentKind

DEFAULT_MAX_DEPTH = 12


def configured_max_depth() -> int:
    """Traversal bound for the HTTP surface (``KINSHIP_MAX_DEPTH``, default 12)."""
    raw = os.environ.get("KINSHIP_MAX_DEPTH", "").strip()
    if not raw:
        return DEFAULT_MAX_DEPTH
    try:
        value = int(raw)
    except ValueError:
        return DEFAULT_MAX_DEPTH
    return value if value > 0 else DEFAULT_MAX_DEPTH


@dataclass(frozen=True)
class AncestorInfo:
    distance: int
    whangai: bool


@dataclass(frozen=True)
class SharedParent:
    shared: bool
    whangai: bool = False
    parent_id: str | None = None


def ancestors_depth_map(
    graph: GraphReader,
    person_id: str,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> dict[str, AncestorInfo]:
    """Return ancestor -> (distance, whāngai) for every strict ancestor of ``person_id``.

    Breadth-first, one batched parent lookup per generation. The first time an
    ancestor is reached fixes both its distance (the minimum, since BFS goes
    level by level) and its whāngai flag (OR of the edge kinds on that path).
    ``person_id`` itself is never included; generations beyond ``max_depth``
    are silently dropped.
    """

    out: dict[str, AncestorInfo] = {}
    seen: set[str] = {person_id}
    # (node, whāngai-so-far) for the current generation.
    frontier: list[tuple[str, bool]] = [(person_id, False)]

    for depth in range(1, max_depth + 1):
        if not frontier:
            break
        parents = graph.parents_of_many([node for node, _ in frontier])
        next_frontier: list[tuple[str, bool]] = []
        for node, whangai in frontier:
            for link in parents.get(node, []):
                if link.parent_id in seen:
                    continue
                w = whangai or link.kind == ParentKind.WHANGAI
                seen.add(link.parent_id)
                out[link.parent_id] = AncestorInfo(distance=depth, whangai=w)
                next_frontier.append((link.parent_id, w))
        frontier = next_frontier

    return out


def shared_parent(graph: GraphReader, a_id: str, b_id: str) -> SharedParent:
    """Check whether two people have any parent in common (role ignored).

    Whāngai is set when either connecting edge is whāngai.
    """

    a_parents = graph.parents_of(a_id)
    if not a_parents:
        return SharedParent(shared=False)
    b_parents = graph.parents_of(b_id)

    for pa in a_parents:
        for pb in b_parents:
            if pa.parent_id == pb.parent_id:
                return SharedParent(
                    shared=True,
                    whangai=pa.kind == ParentKind.WHANGAI or pb.kind == ParentKind.WHANGAI,
                    parent_id=pa.parent_id,
                )
    return SharedParent(shared=False)


def is_descendant(graph: GraphReader, ancestor_id: str, person_id: str) -> bool:
    """True if ``person_id`` is reachable from ``ancestor_id`` through child edges.

    A person counts as their own descendant. The walk uses
    ``child_ids_unfiltered`` and a visited set, so it terminates on malformed
    cyclic data and is not fooled by soft-deleted intermediaries.
    """

    if ancestor_id == person_id:
        return True

    visited: set[str] = {ancestor_id}
    frontier = [ancestor_id]
    while frontier:
        children = graph.child_ids_unfiltered(frontier)
        next_frontier: list[str] = []
        for node in frontier:
            for child_id in children.get(node, []):
                if child_id == person_id:
                    return True
                if child_id in visited:
                    continue
                visited.add(child_id)
                next_frontier.append(child_id)
        frontier = next_frontier
    return False
