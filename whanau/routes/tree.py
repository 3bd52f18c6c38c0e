from __future__ import annotations

from typing import Any, Literal, Optional

from fastapi import APIRouter, HTTPException, Query

from ..ancestry import configured_max_depth
from ..graph import graph_store
from ..models import LineChoice, LineSide, ViewKind
from ..serialize import _graph_edge, _person_node
from ..views import ancestors_subview, build_parents_map, select_edges_for_view, walk_lineage

router = APIRouter(prefix="/family", tags=["tree"])


@router.get("/graph")
def family_graph(
    view: ViewKind = ViewKind.ALL,
    mode: Literal["GRAPH", "ANCESTORS"] = "GRAPH",
    side: LineSide = LineSide.BOTH,
    focus: Optional[str] = Query(default=None, min_length=1, max_length=64),
) -> dict[str, Any]:
    """Whole-tree payload (nodes + parent edges) for the tree view.

    ``view`` picks which edge per (child, role) is shown. In ANCESTORS mode the
    payload is cut down to the maternal/paternal line(s) above ``focus``.
    """

    if mode == "ANCESTORS" and not focus:
        raise HTTPException(status_code=400, detail="focus is required in ANCESTORS mode")

    with graph_store() as graph:
        people = graph.all_people()
        edges = graph.all_edges()

    edges = select_edges_for_view(edges, view)
    highlight: dict[str, list[str]] | None = None

    if mode == "ANCESTORS":
        if not any(p.id == focus for p in people):
            raise HTTPException(status_code=404, detail="person not found")
        trace = ancestors_subview(edges, focus, side, configured_max_depth())
        people = [p for p in people if p.id in trace.nodes]
        edges = [e for e in edges if e.key in trace.edges]
        highlight = {"nodes": sorted(trace.nodes), "edges": sorted(trace.edges)}

    out: dict[str, Any] = {
        "view": view.value,
        "mode": mode,
        "nodes": [_person_node(p) for p in people],
        "edges": [_graph_edge(e) for e in edges],
    }
    if highlight is not None:
        out["focus"] = focus
        out["side"] = side.value
        out["highlight"] = highlight
    return out


@router.get("/lineage")
def family_lineage(
    person: str = Query(min_length=1, max_length=64),
    line: Literal["MOTHER", "FATHER"] = "MOTHER",
    view: ViewKind = ViewKind.ALL,
) -> dict[str, Any]:
    """Node ids and ``parent->child`` edge keys of one parental line."""

    with graph_store() as graph:
        if graph.get_person(person) is None:
            raise HTTPException(status_code=404, detail="person not found")
        edges = graph.all_edges()

    trace = walk_lineage(person, build_parents_map(select_edges_for_view(edges, view)), LineChoice(line))
    return {
        "person": person,
        "line": line,
        "nodes": sorted(trace.nodes),
        "edges": sorted(trace.edges),
    }
