from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Query

from ..ancestry import configured_max_depth
from ..graph import graph_store
from ..kinship import classify_relationship

router = APIRouter()


@router.get("/family/relationship")
def relationship(
    a: str = Query(min_length=1, max_length=64),
    b: str = Query(min_length=1, max_length=64),
    detail: bool = False,
) -> dict[str, Any]:
    """Label describing what ``b`` is to ``a`` ("B is A's ...")."""

    with graph_store() as graph:
        rel = classify_relationship(graph, a, b, max_depth=configured_max_depth())

    out: dict[str, Any] = {"ok": True, "label": rel.label}
    if detail:
        out["relationship"] = {
            "kind": rel.kind.value,
            "whangai": rel.whangai,
            "generations": rel.generations,
            "degree": rel.degree,
            "removed": rel.removed,
            "commonAncestorId": rel.common_ancestor_id,
        }
    return out
