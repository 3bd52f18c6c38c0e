"""Cross-ownership relationship requests.

When an account proposes a link between people it does not own outright, one
PENDING request is opened per foreign owner. The approver's decision applies
the link through :mod:`whanau.guard`, so approval can still fail with
``CycleDetected`` and friends.

Lifecycle: PENDING -> APPROVED | REJECTED | CANCELED (terminal).
"""

from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, Union

from . import guard
from .errors import (
    Forbidden,
    PersonNotFound,
    RequestAlreadyHandled,
    RequestNotFound,
    SelfLink,
    ValidationError,
)
from .graph import GraphStore
from .models import (
    Actor,
    ParentChildEdge,
    ParentKind,
    ParentRole,
    Partnership,
    PartnershipKind,
    PartnershipStatus,
    RelationshipRequest,
    RequestKind,
    RequestStatus,
)

log = logging.getLogger(__name__)


@dataclass
class SubmitOutcome:
    linked: bool
    link: Union[ParentChildEdge, Partnership, None] = None
    requests: list[RelationshipRequest] = field(default_factory=list)


def open_hash(
    kind: RequestKind,
    from_person_id: str,
    to_person_id: str,
    role: Optional[ParentRole],
    pc_kind: Optional[ParentKind],
    approver_user_id: str,
) -> str:
    """Stable dedup key for an open request (first 32 hex chars of SHA-256)."""
    parts = [
        kind.value,
        from_person_id,
        to_person_id,
        role.value if role else "",
        pc_kind.value if pc_kind else "",
        approver_user_id,
    ]
    return hashlib.sha256("|".join(parts).encode("utf-8")).hexdigest()[:32]


def _owners(graph: GraphStore, person_ids: list[str]) -> list[str]:
    owners: list[str] = []
    for pid in person_ids:
        person = graph.get_person(pid)
        if person is None:
            raise PersonNotFound(pid)
        if person.created_by_id and person.created_by_id not in owners:
            owners.append(person.created_by_id)
    return owners


def _open_requests(
    graph: GraphStore,
    actor: Actor,
    approvers: list[str],
    template: RelationshipRequest,
) -> list[RelationshipRequest]:
    created: list[RelationshipRequest] = []
    for approver in approvers:
        template.approver_user_id = approver
        template.open_hash = open_hash(
            template.kind,
            template.from_person_id,
            template.to_person_id,
            template.role,
            template.pc_kind,
            approver,
        )
        row = graph.upsert_request(template)
        created.append(row)
        log.info("relationship request %s opened by %s for approver %s", row.id, actor.user_id, approver)
    return created


def submit_parent_child(
    graph: GraphStore,
    actor: Actor,
    *,
    parent_id: str,
    child_id: str,
    role: ParentRole | str,
    kind: ParentKind | str = ParentKind.BIOLOGICAL,
    message: Optional[str] = None,
) -> SubmitOutcome:
    """Link directly when the actor may, otherwise open requests."""

    if parent_id == child_id:
        raise SelfLink("Parent and child cannot be the same")
    role = guard.coerce_enum(ParentRole, role, "role")
    kind = guard.coerce_enum(ParentKind, kind, "kind")

    owners = _owners(graph, [parent_id, child_id])
    approvers = [uid for uid in owners if uid != actor.user_id]
    if actor.is_adminish or not approvers:
        guard.validate_role_for_gender(role, graph.gender_of(parent_id))
        edge = guard.link_parent_child(
            graph, parent_id=parent_id, child_id=child_id, role=role, kind=kind, actor=actor
        )
        return SubmitOutcome(linked=True, link=edge)

    template = RelationshipRequest(
        id="",
        open_hash="",
        kind=RequestKind.PARENT_CHILD,
        from_person_id=parent_id,
        to_person_id=child_id,
        created_by_user_id=actor.user_id,
        approver_user_id="",
        role=role,
        pc_kind=kind,
        message=message,
    )
    return SubmitOutcome(linked=False, requests=_open_requests(graph, actor, approvers, template))


def submit_partnership(
    graph: GraphStore,
    actor: Actor,
    *,
    a_id: str,
    b_id: str,
    kind: PartnershipKind | str = PartnershipKind.PARTNER,
    status: PartnershipStatus | str = PartnershipStatus.ACTIVE,
    message: Optional[str] = None,
) -> SubmitOutcome:
    if a_id == b_id:
        raise SelfLink("Cannot partner a person with themselves.")
    kind = guard.coerce_enum(PartnershipKind, kind, "kind")
    status = guard.coerce_enum(PartnershipStatus, status, "status")
    a, b = guard.canonical_pair(a_id, b_id)

    owners = _owners(graph, [a, b])
    approvers = [uid for uid in owners if uid != actor.user_id]
    if actor.is_adminish or not approvers:
        p = guard.upsert_partnership(graph, a_id=a, b_id=b, kind=kind, status=status, actor=actor)
        return SubmitOutcome(linked=True, link=p)

    template = RelationshipRequest(
        id="",
        open_hash="",
        kind=RequestKind.PARTNERSHIP,
        from_person_id=a,
        to_person_id=b,
        created_by_user_id=actor.user_id,
        approver_user_id="",
        partnership_kind=kind,
        partnership_status=status,
        message=message,
    )
    return SubmitOutcome(linked=False, requests=_open_requests(graph, actor, approvers, template))


def _load(graph: GraphStore, request_id: str) -> RelationshipRequest:
    r = graph.find_request(request_id)
    if r is None:
        raise RequestNotFound(f"relationship request not found: {request_id}")
    return r


def _ensure_pending(r: RelationshipRequest) -> None:
    if r.status != RequestStatus.PENDING:
        raise RequestAlreadyHandled("Already handled")


def approve_request(graph: GraphStore, request_id: str, actor: Actor) -> RelationshipRequest:
    r = _load(graph, request_id)
    if r.approver_user_id != actor.user_id:
        raise Forbidden("Only the approver can approve this request")
    _ensure_pending(r)

    if r.kind == RequestKind.PARENT_CHILD:
        role = r.role or ParentRole.PARENT
        guard.validate_role_for_gender(role, graph.gender_of(r.from_person_id))
        guard.link_parent_child(
            graph,
            parent_id=r.from_person_id,
            child_id=r.to_person_id,
            role=role,
            kind=r.pc_kind or ParentKind.BIOLOGICAL,
            actor=actor,
        )
    elif r.kind == RequestKind.PARTNERSHIP:
        guard.upsert_partnership(
            graph,
            a_id=r.from_person_id,
            b_id=r.to_person_id,
            kind=r.partnership_kind or PartnershipKind.PARTNER,
            status=r.partnership_status or PartnershipStatus.ACTIVE,
            actor=actor,
        )
    else:  # pragma: no cover
        raise ValidationError(f"unsupported request kind: {r.kind}")

    log.info("relationship request %s approved by %s", r.id, actor.user_id)
    return graph.set_request_status(r.id, RequestStatus.APPROVED, approved_at=datetime.now(timezone.utc))


def reject_request(graph: GraphStore, request_id: str, actor: Actor) -> RelationshipRequest:
    r = _load(graph, request_id)
    if r.approver_user_id != actor.user_id:
        raise Forbidden("Only the approver can reject this request")
    _ensure_pending(r)
    log.info("relationship request %s rejected by %s", r.id, actor.user_id)
    return graph.set_request_status(r.id, RequestStatus.REJECTED)


def cancel_request(graph: GraphStore, request_id: str, actor: Actor) -> RelationshipRequest:
    r = _load(graph, request_id)
    if r.created_by_user_id != actor.user_id and not actor.is_adminish:
        raise Forbidden("Only the requester can cancel this request")
    _ensure_pending(r)
    log.info("relationship request %s canceled by %s", r.id, actor.user_id)
    return graph.set_request_status(r.id, RequestStatus.CANCELED)


def list_requests(graph: GraphStore, user_id: str) -> dict[str, list[RelationshipRequest]]:
    incoming, outgoing = graph.list_requests(user_id)
    return {"incoming": incoming, "outgoing": outgoing}
