from __future__ import annotations

from datetime import date, datetime
from typing import Any, Optional

from .models import ParentChildEdge, Partnership, Person, RelationshipRequest


def _iso(value: date | datetime | None) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _enum(value: Any) -> Any:
    return getattr(value, "value", value)


def _person_node(p: Person) -> dict[str, Any]:
    return {
        "id": p.id,
        "label": p.label,
        "gender": _enum(p.gender),
        "imageUrl": p.image_url,
        "locked": p.locked,
        "birthDate": _iso(p.birth_date),
        "notes": p.notes,
    }


def _graph_edge(e: ParentChildEdge) -> dict[str, Any]:
    # Cytoscape-style edge; id is stable per (parent, child, kind).
    return {
        "id": f"pc:{e.parent_id}-{e.child_id}-{_enum(e.kind)}",
        "key": e.key,
        "source": e.parent_id,
        "target": e.child_id,
        "type": "parent",
        "role": _enum(e.role),
        "kind": _enum(e.kind),
    }


def _edge_to_public(e: ParentChildEdge) -> dict[str, Any]:
    return {
        "id": e.id,
        "parentId": e.parent_id,
        "childId": e.child_id,
        "role": _enum(e.role),
        "kind": _enum(e.kind),
        "createdById": e.created_by_id,
    }


def _partnership_to_public(p: Partnership) -> dict[str, Any]:
    return {
        "id": p.id,
        "aId": p.a_id,
        "bId": p.b_id,
        "kind": _enum(p.kind),
        "status": _enum(p.status),
        "startDate": _iso(p.start_date),
        "endDate": _iso(p.end_date),
        "createdById": p.created_by_id,
    }


def _request_to_public(r: RelationshipRequest) -> dict[str, Any]:
    return {
        "id": r.id,
        "kind": _enum(r.kind),
        "fromPersonId": r.from_person_id,
        "toPersonId": r.to_person_id,
        "createdByUserId": r.created_by_user_id,
        "approverUserId": r.approver_user_id,
        "role": _enum(r.role),
        "pcKind": _enum(r.pc_kind),
        "partnershipKind": _enum(r.partnership_kind),
        "partnershipStatus": _enum(r.partnership_status),
        "message": r.message,
        "status": _enum(r.status),
        "createdAt": _iso(r.created_at),
        "approvedAt": _iso(r.approved_at),
    }
