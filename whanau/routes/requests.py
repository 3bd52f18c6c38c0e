from __future__ import annotations

from typing import Annotated, Any, Literal, Optional, Union

from fastapi import APIRouter, Body, Request, Response
from pydantic import BaseModel, Field

from .. import approvals
from ..auth import current_actor
from ..graph import graph_store
from ..models import ParentKind, ParentRole, PartnershipKind, PartnershipStatus
from ..serialize import _edge_to_public, _partnership_to_public, _request_to_public

router = APIRouter(tags=["relationship-requests"])


class ParentChildRequestBody(BaseModel):
    type: Literal["PARENT_CHILD"]
    parentId: str = Field(min_length=1, max_length=64)
    childId: str = Field(min_length=1, max_length=64)
    role: ParentRole
    kind: ParentKind = ParentKind.BIOLOGICAL
    message: Optional[str] = Field(default=None, max_length=2000)


class PartnershipRequestBody(BaseModel):
    type: Literal["PARTNERSHIP"]
    aId: str = Field(min_length=1, max_length=64)
    bId: str = Field(min_length=1, max_length=64)
    kind: PartnershipKind = PartnershipKind.PARTNER
    status: PartnershipStatus = PartnershipStatus.ACTIVE
    message: Optional[str] = Field(default=None, max_length=2000)


RequestBody = Annotated[
    Union[ParentChildRequestBody, PartnershipRequestBody],
    Body(discriminator="type"),
]


@router.post("/relationship-requests", status_code=201)
def create_request(request: Request, body: RequestBody) -> dict[str, Any]:
    """Link now if the caller owns every person involved, else open requests."""

    actor = current_actor(request)
    with graph_store() as graph:
        if isinstance(body, ParentChildRequestBody):
            outcome = approvals.submit_parent_child(
                graph,
                actor,
                parent_id=body.parentId,
                child_id=body.childId,
                role=body.role,
                kind=body.kind,
                message=body.message,
            )
        else:
            outcome = approvals.submit_partnership(
                graph,
                actor,
                a_id=body.aId,
                b_id=body.bId,
                kind=body.kind,
                status=body.status,
                message=body.message,
            )

    out: dict[str, Any] = {"ok": True, "linked": outcome.linked}
    if outcome.linked:
        link = outcome.link
        out["link"] = (
            _edge_to_public(link) if isinstance(body, ParentChildRequestBody) else _partnership_to_public(link)
        )
    else:
        out["requests"] = [_request_to_public(r) for r in outcome.requests]
    return out


@router.get("/me/relationship-requests")
def my_requests(request: Request, response: Response) -> dict[str, Any]:
    actor = current_actor(request)
    with graph_store() as graph:
        lists = approvals.list_requests(graph, actor.user_id)
    response.headers["Cache-Control"] = "no-store"
    return {
        "incoming": [_request_to_public(r) for r in lists["incoming"]],
        "outgoing": [_request_to_public(r) for r in lists["outgoing"]],
    }


@router.post("/relationship-requests/{request_id}/approve")
def approve(request_id: str, request: Request) -> dict[str, Any]:
    actor = current_actor(request)
    with graph_store() as graph:
        r = approvals.approve_request(graph, request_id, actor)
    return {"ok": True, "request": _request_to_public(r)}


@router.post("/relationship-requests/{request_id}/reject")
def reject(request_id: str, request: Request) -> dict[str, Any]:
    actor = current_actor(request)
    with graph_store() as graph:
        r = approvals.reject_request(graph, request_id, actor)
    return {"ok": True, "request": _request_to_public(r)}


@router.post("/relationship-requests/{request_id}/cancel")
def cancel(request_id: str, request: Request) -> dict[str, Any]:
    actor = current_actor(request)
    with graph_store() as graph:
        r = approvals.cancel_request(graph, request_id, actor)
    return {"ok": True, "request": _request_to_public(r)}
