"""Pure projections over a full edge set for tree display.

Nothing here touches the database: callers pass in ``all_edges()`` (already
soft-delete filtered) and get back filtered edges or node/edge-key sets.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Optional

from .ancestry import DEFAULT_MAX_DEPTH
from .models import (
    LineChoice,
    LineSide,
    ParentChildEdge,
    ParentKind,
    ParentRole,
    ViewKind,
    edge_key,
)


@dataclass(frozen=True)
class ParentRef:
    parent_id: str
    role: Optional[ParentRole]
    kind: ParentKind = ParentKind.BIOLOGICAL


@dataclass
class LineTrace:
    nodes: set[str] = field(default_factory=set)
    edges: set[str] = field(default_factory=set)

    def update(self, other: "LineTrace") -> None:
        self.nodes |= other.nodes
        self.edges |= other.edges


def select_edges_for_view(
    edges: Iterable[ParentChildEdge],
    view_kind: ViewKind | str,
) -> list[ParentChildEdge]:
    """Keep at most one edge per (child, role) group.

    - ALL: everything, unchanged.
    - BIOLOGICAL: the biological edge of each group; groups without one vanish.
    - WHANGAI: the whāngai edge where there is one, else the biological edge.

    An edge without a role groups as PARENT, separately from MOTHER/FATHER.
    """

    view_kind = ViewKind(view_kind)
    edges = list(edges)
    if view_kind == ViewKind.ALL:
        return edges

    groups: dict[tuple[str, ParentRole], list[ParentChildEdge]] = {}
    for e in edges:
        groups.setdefault((e.child_id, e.role or ParentRole.PARENT), []).append(e)

    preference = (
        (ParentKind.WHANGAI, ParentKind.BIOLOGICAL)
        if view_kind == ViewKind.WHANGAI
        else (ParentKind.BIOLOGICAL,)
    )

    out: list[ParentChildEdge] = []
    for group in groups.values():
        for wanted in preference:
            chosen = next((e for e in group if e.kind == wanted), None)
            if chosen is not None:
                out.append(chosen)
                break
    return out


def build_parents_map(edges: Iterable[ParentChildEdge]) -> dict[str, list[ParentRef]]:
    parents_of: dict[str, list[ParentRef]] = {}
    for e in edges:
        parents_of.setdefault(e.child_id, []).append(
            ParentRef(parent_id=e.parent_id, role=e.role, kind=e.kind)
        )
    return parents_of


def _pick(parents: list[ParentRef], which: LineChoice) -> Optional[ParentRef]:
    if which == LineChoice.ANY:
        for role in (ParentRole.MOTHER, ParentRole.FATHER):
            hit = next((p for p in parents if p.role == role), None)
            if hit is not None:
                return hit
        return parents[0] if parents else None
    return next((p for p in parents if p.role is not None and p.role.value == which.value), None)


def ascend_line(
    start: str,
    parents_of: dict[str, list[ParentRef]],
    which: LineChoice | str,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> LineTrace:
    """Walk up one parent per generation from ``start``.

    MOTHER/FATHER follow only edges with exactly that role and stop where there
    is none; ANY prefers MOTHER, then FATHER, then whichever parent is listed
    first. Edge keys are ``"parent->child"``.
    """

    which = LineChoice(which)
    trace = LineTrace(nodes={start})
    cur = start
    for _ in range(max_depth):
        pref = _pick(parents_of.get(cur, []), which)
        if pref is None or pref.parent_id in trace.nodes:
            break
        trace.nodes.add(pref.parent_id)
        trace.edges.add(edge_key(pref.parent_id, cur))
        cur = pref.parent_id
    return trace


def walk_lineage(
    start: str,
    parents_of: dict[str, list[ParentRef]],
    which: LineChoice | str,
) -> LineTrace:
    """Maternal/paternal line for highlighting.

    Like :func:`ascend_line` but falls back to a PARENT-role edge when the
    exact role is missing, and only stops at the top of the line (or on a
    repeat, for malformed data).
    """

    which = LineChoice(which)
    if which == LineChoice.ANY:
        raise ValueError("walk_lineage follows a single MOTHER or FATHER line")

    trace = LineTrace(nodes={start})
    cur = start
    while True:
        ps = parents_of.get(cur, [])
        pref = next((p for p in ps if p.role is not None and p.role.value == which.value), None)
        if pref is None:
            pref = next((p for p in ps if p.role == ParentRole.PARENT), None)
        if pref is None or pref.parent_id in trace.nodes:
            break
        trace.nodes.add(pref.parent_id)
        trace.edges.add(edge_key(pref.parent_id, cur))
        cur = pref.parent_id
    return trace


def ancestors_subview(
    edges: Iterable[ParentChildEdge],
    focus: str,
    side: LineSide | str = LineSide.BOTH,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> LineTrace:
    """Ancestors-only view: the maternal line, the paternal line, or both."""

    side = LineSide(side)
    parents_of = build_parents_map(edges)
    trace = LineTrace(nodes={focus})
    if side in (LineSide.MATERNAL, LineSide.BOTH):
        trace.update(ascend_line(focus, parents_of, LineChoice.MOTHER, max_depth))
    if side in (LineSide.PATERNAL, LineSide.BOTH):
        trace.update(ascend_line(focus, parents_of, LineChoice.FATHER, max_depth))
    return trace
