"""Edge mutation guard: the only path by which parent/child edges and
partnerships are written.

Preconditions are checked fail-closed inside ``graph.transaction()`` so the
existence check, the cycle check and the upsert form one unit.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Optional

from .ancestry import is_descendant
from .errors import (
    CycleDetected,
    EdgeNotFound,
    PartnershipNotFound,
    PersonNotFound,
    SelfLink,
    ValidationError,
)
from .graph import GraphStore
from .models import (
    Actor,
    Gender,
    ParentChildEdge,
    ParentKind,
    ParentRole,
    Partnership,
    PartnershipKind,
    PartnershipStatus,
)

log = logging.getLogger(__name__)


def coerce_enum(enum_cls, value, field: str):
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(str(value).upper())
    except ValueError:
        allowed = ", ".join(m.value for m in enum_cls)
        raise ValidationError(f"{field} must be one of: {allowed}") from None


def canonical_pair(a_id: str, b_id: str) -> tuple[str, str]:
    return (a_id, b_id) if a_id < b_id else (b_id, a_id)


def validate_role_for_gender(role: ParentRole | str, gender: Optional[Gender]) -> ParentRole:
    """Boundary check: MOTHER needs a FEMALE parent, FATHER a MALE one.

    PARENT is accepted for any gender. Returns the coerced role.
    """

    role = coerce_enum(ParentRole, role, "role")
    if role == ParentRole.MOTHER and gender != Gender.FEMALE:
        raise ValidationError("Selected mother is not FEMALE")
    if role == ParentRole.FATHER and gender != Gender.MALE:
        raise ValidationError("Selected father is not MALE")
    return role


def _require_people(graph: GraphStore, *person_ids: str) -> None:
    for pid in person_ids:
        if graph.get_person(pid) is None:
            raise PersonNotFound(pid)


def _check_parent_child(graph: GraphStore, parent_id: str, child_id: str) -> None:
    if parent_id == child_id:
        raise SelfLink("Cannot link a person as their own parent.")
    _require_people(graph, parent_id, child_id)
    # The new edge parent -> child closes a loop iff parent already descends from child.
    if is_descendant(graph, child_id, parent_id):
        log.warning("rejected parent link %s -> %s: would create a cycle", parent_id, child_id)
        raise CycleDetected("Link would create a cycle in the family tree.")


def link_parent_child(
    graph: GraphStore,
    *,
    parent_id: str,
    child_id: str,
    role: ParentRole | str = ParentRole.PARENT,
    kind: ParentKind | str = ParentKind.BIOLOGICAL,
    actor: Actor,
) -> ParentChildEdge:
    """Insert or update the edge keyed on (parent_id, child_id, kind).

    An existing edge of the same kind has its role overwritten; a different
    kind for the same pair is a separate edge.
    """

    role = coerce_enum(ParentRole, role, "role")
    kind = coerce_enum(ParentKind, kind, "kind")
    if parent_id == child_id:
        raise SelfLink("Cannot link a person as their own parent.")

    with graph.transaction():
        _check_parent_child(graph, parent_id, child_id)
        edge = graph.upsert_edge(
            parent_id=parent_id,
            child_id=child_id,
            role=role,
            kind=kind,
            created_by_id=actor.user_id,
        )

    log.info("linked %s -> %s (%s, %s) by %s", parent_id, child_id, role.value, kind.value, actor.user_id)
    return edge


def set_parent(
    graph: GraphStore,
    *,
    parent_id: str,
    child_id: str,
    role: ParentRole | str,
    kind: ParentKind | str = ParentKind.BIOLOGICAL,
    actor: Actor,
) -> ParentChildEdge:
    """Make ``parent_id`` the child's parent for the (role, kind) slot.

    Any other parent currently holding the same role and kind for this child is
    unlinked first, so a child has at most one biological mother and so on.
    """

    role = coerce_enum(ParentRole, role, "role")
    kind = coerce_enum(ParentKind, kind, "kind")
    if parent_id == child_id:
        raise SelfLink("Cannot link a person as their own parent.")

    with graph.transaction():
        _check_parent_child(graph, parent_id, child_id)
        replaced = graph.delete_role_edges(
            child_id=child_id, kind=kind, role=role, keep_parent_id=parent_id
        )
        edge = graph.upsert_edge(
            parent_id=parent_id,
            child_id=child_id,
            role=role,
            kind=kind,
            created_by_id=actor.user_id,
        )

    if replaced:
        log.info(
            "replaced %s %s of %s: %s",
            kind.value,
            role.value,
            child_id,
            ", ".join(e.parent_id for e in replaced),
        )
    log.info("set %s %s of %s to %s by %s", kind.value, role.value, child_id, parent_id, actor.user_id)
    return edge


def unlink_parent_child(
    graph: GraphStore,
    *,
    edge_id: Optional[str] = None,
    parent_id: Optional[str] = None,
    child_id: Optional[str] = None,
    kind: ParentKind | str | None = None,
) -> list[ParentChildEdge]:
    """Remove an edge by id, or every edge between a (parent, child) pair.

    With a pair and no ``kind`` all kinds are removed; with ``kind`` only that
    one. Removing by an unknown id raises ``EdgeNotFound``; a pair with nothing
    to remove returns an empty list.
    """

    if edge_id:
        with graph.transaction():
            edge = graph.delete_edge(edge_id)
        if edge is None:
            raise EdgeNotFound(f"edge not found: {edge_id}")
        log.info("unlinked edge %s (%s -> %s)", edge.id, edge.parent_id, edge.child_id)
        return [edge]

    if not parent_id or not child_id:
        raise ValidationError("Provide edge id or both parentId and childId.")

    kind_value = coerce_enum(ParentKind, kind, "kind") if kind is not None else None
    with graph.transaction():
        removed = graph.delete_edges(parent_id, child_id, kind_value)
    log.info(
        "unlinked %d edge(s) %s -> %s (kind=%s)",
        len(removed),
        parent_id,
        child_id,
        kind_value.value if kind_value else "any",
    )
    return removed


def upsert_partnership(
    graph: GraphStore,
    *,
    a_id: str,
    b_id: str,
    kind: PartnershipKind | str = PartnershipKind.PARTNER,
    status: PartnershipStatus | str = PartnershipStatus.ACTIVE,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    actor: Actor,
) -> Partnership:
    if a_id == b_id:
        raise SelfLink("Cannot partner a person with themselves.")
    kind = coerce_enum(PartnershipKind, kind, "kind")
    status = coerce_enum(PartnershipStatus, status, "status")
    if start_date and end_date and end_date < start_date:
        raise ValidationError("endDate cannot be before startDate")

    a, b = canonical_pair(a_id, b_id)
    with graph.transaction():
        _require_people(graph, a, b)
        p = graph.upsert_partnership(
            a_id=a,
            b_id=b,
            kind=kind,
            status=status,
            start_date=start_date,
            end_date=end_date,
            created_by_id=actor.user_id,
        )

    log.info("partnership %s: %s + %s (%s, %s)", p.id, a, b, kind.value, status.value)
    return p


def delete_partnership(graph: GraphStore, partnership_id: str) -> Partnership:
    with graph.transaction():
        p = graph.delete_partnership(partnership_id)
    if p is None:
        raise PartnershipNotFound(f"partnership not found: {partnership_id}")
    log.info("deleted partnership %s (%s + %s)", p.id, p.a_id, p.b_id)
    return p
