"""Direct edge and partnership writes.

Routes do the boundary checks (role, ownership, locks) and hand the write to
:mod:`whanau.guard`; guard errors are rendered by the app-level handler.
"""

from __future__ import annotations

from datetime import date
from typing import Any, Literal, Optional

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from .. import guard
from ..auth import assert_owns_all_or_adminish, assert_unlocked, current_actor, owns_all, require_role
from ..errors import PersonNotFound, SelfLink
from ..graph import GraphStore, graph_store
from ..models import (
    Actor,
    ParentKind,
    ParentRole,
    PartnershipKind,
    PartnershipStatus,
    Person,
    UserRole,
)
from ..serialize import _edge_to_public, _partnership_to_public

router = APIRouter(tags=["links"])


def _people_or_404(graph: GraphStore, *person_ids: str) -> list[Person]:
    people: list[Person] = []
    for pid in person_ids:
        p = graph.get_person(pid)
        if p is None:
            raise PersonNotFound(pid)
        people.append(p)
    return people


# ---------------------------------------------------------------------------
# /family/link/parent: editor tool, one parent per (role, kind) slot
# ---------------------------------------------------------------------------


class SetParentBody(BaseModel):
    parentId: str = Field(min_length=1, max_length=64)
    childId: str = Field(min_length=1, max_length=64)
    role: Literal["MOTHER", "FATHER"]
    kind: ParentKind = ParentKind.BIOLOGICAL


class ClearParentBody(BaseModel):
    parentId: str = Field(min_length=1, max_length=64)
    childId: str = Field(min_length=1, max_length=64)
    kind: ParentKind = ParentKind.BIOLOGICAL


@router.post("/family/link/parent")
def set_parent_link(
    body: SetParentBody,
    actor: Actor = require_role(UserRole.ADMIN, UserRole.EDITOR),
) -> dict[str, Any]:
    if body.parentId == body.childId:
        raise SelfLink("Invalid ids")

    with graph_store() as graph:
        parent, child = _people_or_404(graph, body.parentId, body.childId)
        assert_unlocked(actor, [parent, child])
        guard.validate_role_for_gender(body.role, parent.gender)
        edge = guard.set_parent(
            graph,
            parent_id=body.parentId,
            child_id=body.childId,
            role=body.role,
            kind=body.kind,
            actor=actor,
        )
    return {"ok": True, "edge": _edge_to_public(edge)}


@router.delete("/family/link/parent")
def clear_parent_link(
    body: ClearParentBody,
    actor: Actor = require_role(UserRole.ADMIN, UserRole.EDITOR),
) -> dict[str, Any]:
    with graph_store() as graph:
        removed = guard.unlink_parent_child(
            graph, parent_id=body.parentId, child_id=body.childId, kind=body.kind
        )
    return {"ok": True, "removed": len(removed)}


# ---------------------------------------------------------------------------
# /relationships/parent-child: owner (or admin) writes, otherwise approval
# ---------------------------------------------------------------------------


class LinkBody(BaseModel):
    parentId: str = Field(min_length=1, max_length=64)
    childId: str = Field(min_length=1, max_length=64)
    role: ParentRole
    kind: ParentKind = ParentKind.BIOLOGICAL


class UnlinkBody(BaseModel):
    id: Optional[str] = None
    parentId: Optional[str] = None
    childId: Optional[str] = None
    kind: Optional[ParentKind] = None


@router.post("/relationships/parent-child", status_code=201)
def link_parent_child(body: LinkBody, request: Request) -> Any:
    actor = current_actor(request)
    if body.parentId == body.childId:
        raise SelfLink("Parent and child cannot be the same")

    with graph_store() as graph:
        people = _people_or_404(graph, body.parentId, body.childId)
        if not (actor.role == UserRole.ADMIN or owns_all(actor, people)):
            # The client follows up with POST /relationship-requests.
            return JSONResponse(
                {"error": "Needs approval", "code": "FORBIDDEN_NEEDS_APPROVAL"},
                status_code=403,
            )
        guard.validate_role_for_gender(body.role, people[0].gender)
        edge = guard.link_parent_child(
            graph,
            parent_id=body.parentId,
            child_id=body.childId,
            role=body.role,
            kind=body.kind,
            actor=actor,
        )
    return _edge_to_public(edge)


@router.delete("/relationships/parent-child")
def unlink_parent_child(body: UnlinkBody, request: Request) -> dict[str, Any]:
    actor = current_actor(request)

    with graph_store() as graph:
        if body.id:
            edges = [e for e in [graph.find_edge(body.id)] if e is not None]
        elif body.parentId and body.childId:
            edges = graph.find_edges(body.parentId, body.childId)
            if body.kind is not None:
                edges = [e for e in edges if e.kind == body.kind]
        else:
            raise HTTPException(status_code=400, detail="Missing id or (parentId, childId)")

        # Already gone: nothing to do.
        if not edges:
            return {"ok": True, "removed": []}

        if actor.role != UserRole.ADMIN and any(e.created_by_id != actor.user_id for e in edges):
            raise HTTPException(status_code=403, detail="Forbidden")

        removed = []
        for e in edges:
            removed.extend(guard.unlink_parent_child(graph, edge_id=e.id))

    return {"ok": True, "removed": [_edge_to_public(e) for e in removed]}


# ---------------------------------------------------------------------------
# /relationships/partnership
# ---------------------------------------------------------------------------


class PartnershipBody(BaseModel):
    aId: str = Field(min_length=1, max_length=64)
    bId: str = Field(min_length=1, max_length=64)
    kind: PartnershipKind = PartnershipKind.PARTNER
    status: PartnershipStatus = PartnershipStatus.ACTIVE
    startDate: Optional[date] = None
    endDate: Optional[date] = None


class PartnershipDeleteBody(BaseModel):
    id: str = Field(min_length=1)


@router.post("/relationships/partnership", status_code=201)
def upsert_partnership(body: PartnershipBody, request: Request) -> dict[str, Any]:
    actor = current_actor(request)
    if body.aId == body.bId:
        raise SelfLink("Cannot partner a person with themselves.")

    with graph_store() as graph:
        people = _people_or_404(graph, body.aId, body.bId)
        assert_owns_all_or_adminish(actor, people)
        p = guard.upsert_partnership(
            graph,
            a_id=body.aId,
            b_id=body.bId,
            kind=body.kind,
            status=body.status,
            start_date=body.startDate,
            end_date=body.endDate,
            actor=actor,
        )
    return _partnership_to_public(p)


@router.delete("/relationships/partnership")
def delete_partnership(body: PartnershipDeleteBody, request: Request) -> dict[str, Any]:
    actor = current_actor(request)

    with graph_store() as graph:
        record = graph.find_partnership(body.id)
        if record is None:
            raise HTTPException(status_code=404, detail="Not found")
        people = [p for p in (graph.get_person(record.a_id), graph.get_person(record.b_id)) if p]
        assert_owns_all_or_adminish(actor, people)
        p = guard.delete_partnership(graph, body.id)
    return {"ok": True, "partnership": _partnership_to_public(p)}
