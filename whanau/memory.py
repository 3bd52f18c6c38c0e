"""In-memory graph store.

An id-keyed arena of people, edges, partnerships and requests implementing the
same interface as :class:`whanau.graph.PgGraph`. Used by the tests and by any
caller that already holds the full edge set.
"""

from __future__ import annotations

import itertools
import threading
from contextlib import contextmanager
from dataclasses import replace
from datetime import date, datetime, timezone
from typing import Iterable, Iterator, Optional

from .models import (
    ChildLink,
    CoParentLink,
    Gender,
    ParentChildEdge,
    ParentKind,
    ParentLink,
    ParentRole,
    Partnership,
    PartnershipKind,
    PartnershipStatus,
    Person,
    RelationshipRequest,
    RequestStatus,
)


def _now() -> datetime:
    return datetime.now(timezone.utc)


class MemoryGraph:
    def __init__(
        self,
        people: Iterable[Person] = (),
        edges: Iterable[ParentChildEdge] = (),
        partnerships: Iterable[Partnership] = (),
    ) -> None:
        self._people: dict[str, Person] = {p.id: p for p in people}
        self._edges: dict[str, ParentChildEdge] = {e.id: e for e in edges}
        self._partnerships: dict[str, Partnership] = {p.id: p for p in partnerships}
        self._requests: dict[str, RelationshipRequest] = {}
        self._lock = threading.RLock()
        self._seq = itertools.count(1)

    # ------------------------------------------------------------------
    # Seeding helpers (bypass the guard; data is taken as-is)
    # ------------------------------------------------------------------

    def add_person(
        self,
        person_id: str,
        gender: Gender | str = Gender.UNKNOWN,
        *,
        first_name: str | None = None,
        last_name: str = "",
        created_by_id: str | None = None,
        locked: bool = False,
    ) -> Person:
        person = Person(
            id=person_id,
            first_name=first_name or person_id,
            last_name=last_name,
            gender=Gender(gender),
            created_by_id=created_by_id,
            locked=locked,
        )
        self._people[person_id] = person
        return person

    def add_edge(
        self,
        parent_id: str,
        child_id: str,
        role: ParentRole | str | None = ParentRole.PARENT,
        kind: ParentKind | str = ParentKind.BIOLOGICAL,
    ) -> ParentChildEdge:
        return self.upsert_edge(
            parent_id=parent_id,
            child_id=child_id,
            role=ParentRole(role) if role is not None else None,
            kind=ParentKind(kind),
            created_by_id=None,
        )

    def soft_delete_person(self, person_id: str) -> None:
        person = self._people[person_id]
        person.deleted_at = _now()

    def _next_id(self, prefix: str) -> str:
        return f"{prefix}_{next(self._seq)}"

    # ------------------------------------------------------------------
    # Soft-delete predicate (the only place it is spelled out)
    # ------------------------------------------------------------------

    def _is_active_person(self, person_id: str) -> bool:
        p = self._people.get(person_id)
        return p is not None and p.deleted_at is None

    def _active_edges(self) -> Iterator[ParentChildEdge]:
        for e in self._edges.values():
            if e.deleted_at is not None:
                continue
            if self._is_active_person(e.parent_id) and self._is_active_person(e.child_id):
                yield e

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_person(self, person_id: str) -> Optional[Person]:
        if not self._is_active_person(person_id):
            return None
        return self._people[person_id]

    def gender_of(self, person_id: str) -> Optional[Gender]:
        p = self.get_person(person_id)
        return p.gender if p else None

    def all_people(self) -> list[Person]:
        people = [p for p in self._people.values() if p.deleted_at is None]
        return sorted(people, key=lambda p: (p.last_name, p.first_name, p.id))

    def all_edges(self) -> list[ParentChildEdge]:
        return list(self._active_edges())

    def parents_of(self, child_id: str) -> list[ParentLink]:
        return [
            ParentLink(parent_id=e.parent_id, role=e.role, kind=e.kind)
            for e in self._active_edges()
            if e.child_id == child_id
        ]

    def parents_of_many(self, child_ids: list[str]) -> dict[str, list[ParentLink]]:
        wanted = set(child_ids)
        out: dict[str, list[ParentLink]] = {cid: [] for cid in child_ids}
        for e in self._active_edges():
            if e.child_id in wanted:
                out[e.child_id].append(ParentLink(parent_id=e.parent_id, role=e.role, kind=e.kind))
        return out

    def children_of(self, parent_id: str) -> list[ChildLink]:
        return [
            ChildLink(child_id=e.child_id, role=e.role, kind=e.kind)
            for e in self._active_edges()
            if e.parent_id == parent_id
        ]

    def co_parents_of(self, person_id: str) -> list[CoParentLink]:
        # child -> does any of my links to that child use whāngai?
        mine: dict[str, bool] = {}
        for e in self._active_edges():
            if e.parent_id == person_id:
                mine[e.child_id] = mine.get(e.child_id, False) or e.kind == ParentKind.WHANGAI
        if not mine:
            return []

        agg: dict[str, bool] = {}
        for e in self._active_edges():
            if e.child_id not in mine or e.parent_id == person_id:
                continue
            wh = e.kind == ParentKind.WHANGAI or mine[e.child_id]
            agg[e.parent_id] = agg.get(e.parent_id, False) or wh
        return [CoParentLink(co_parent_id=pid, whangai=wh) for pid, wh in agg.items()]

    def child_ids_unfiltered(self, parent_ids: list[str]) -> dict[str, list[str]]:
        wanted = set(parent_ids)
        out: dict[str, list[str]] = {pid: [] for pid in parent_ids}
        for e in self._edges.values():
            if e.deleted_at is None and e.parent_id in wanted:
                out[e.parent_id].append(e.child_id)
        return out

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    @contextmanager
    def transaction(self) -> Iterator[None]:
        with self._lock:
            yield

    def find_edge(self, edge_id: str) -> Optional[ParentChildEdge]:
        e = self._edges.get(edge_id)
        if e is None or e.deleted_at is not None:
            return None
        return e

    def find_edges(self, parent_id: str, child_id: str) -> list[ParentChildEdge]:
        found = [
            e
            for e in self._edges.values()
            if e.deleted_at is None and e.parent_id == parent_id and e.child_id == child_id
        ]
        return sorted(found, key=lambda e: e.kind.value)

    def upsert_edge(
        self,
        *,
        parent_id: str,
        child_id: str,
        role: Optional[ParentRole],
        kind: ParentKind,
        created_by_id: Optional[str],
    ) -> ParentChildEdge:
        with self._lock:
            for e in self._edges.values():
                if e.parent_id == parent_id and e.child_id == child_id and e.kind == kind:
                    e.role = role
                    e.deleted_at = None
                    return e
            edge = ParentChildEdge(
                id=self._next_id("pc"),
                parent_id=parent_id,
                child_id=child_id,
                role=role,
                kind=kind,
                created_by_id=created_by_id,
            )
            self._edges[edge.id] = edge
            return edge

    def delete_edge(self, edge_id: str) -> Optional[ParentChildEdge]:
        e = self.find_edge(edge_id)
        if e is None:
            return None
        e.deleted_at = _now()
        return e

    def delete_edges(
        self,
        parent_id: str,
        child_id: str,
        kind: Optional[ParentKind] = None,
    ) -> list[ParentChildEdge]:
        removed: list[ParentChildEdge] = []
        for e in self._edges.values():
            if e.deleted_at is not None:
                continue
            if e.parent_id != parent_id or e.child_id != child_id:
                continue
            if kind is not None and e.kind != kind:
                continue
            e.deleted_at = _now()
            removed.append(e)
        return removed

    def delete_role_edges(
        self,
        *,
        child_id: str,
        kind: ParentKind,
        role: ParentRole,
        keep_parent_id: str,
    ) -> list[ParentChildEdge]:
        removed: list[ParentChildEdge] = []
        for e in self._edges.values():
            if e.deleted_at is not None or e.child_id != child_id:
                continue
            if e.kind != kind or e.role != role or e.parent_id == keep_parent_id:
                continue
            e.deleted_at = _now()
            removed.append(e)
        return removed

    def find_partnership(self, partnership_id: str) -> Optional[Partnership]:
        p = self._partnerships.get(partnership_id)
        if p is None or p.deleted_at is not None:
            return None
        return p

    def partnerships_of(self, person_id: str) -> list[Partnership]:
        return [
            p
            for p in self._partnerships.values()
            if p.deleted_at is None and person_id in (p.a_id, p.b_id)
        ]

    def upsert_partnership(
        self,
        *,
        a_id: str,
        b_id: str,
        kind: PartnershipKind,
        status: PartnershipStatus,
        start_date: Optional[date],
        end_date: Optional[date],
        created_by_id: Optional[str],
    ) -> Partnership:
        with self._lock:
            for p in self._partnerships.values():
                if p.a_id == a_id and p.b_id == b_id:
                    p.kind = kind
                    p.status = status
                    if start_date is not None:
                        p.start_date = start_date
                    if end_date is not None:
                        p.end_date = end_date
                    p.deleted_at = None
                    return p
            p = Partnership(
                id=self._next_id("pt"),
                a_id=a_id,
                b_id=b_id,
                kind=kind,
                status=status,
                start_date=start_date,
                end_date=end_date,
                created_by_id=created_by_id,
            )
            self._partnerships[p.id] = p
            return p

    def delete_partnership(self, partnership_id: str) -> Optional[Partnership]:
        p = self.find_partnership(partnership_id)
        if p is None:
            return None
        p.deleted_at = _now()
        return p

    def upsert_request(self, request: RelationshipRequest) -> RelationshipRequest:
        with self._lock:
            for r in self._requests.values():
                if r.open_hash == request.open_hash and r.status == RequestStatus.PENDING:
                    return r
            stored = replace(request, id=self._next_id("rr"), created_at=_now())
            self._requests[stored.id] = stored
            return stored

    def find_request(self, request_id: str) -> Optional[RelationshipRequest]:
        return self._requests.get(request_id)

    def set_request_status(
        self,
        request_id: str,
        status: RequestStatus,
        *,
        approved_at: Optional[datetime] = None,
    ) -> RelationshipRequest:
        r = self._requests[request_id]
        r.status = status
        if approved_at is not None:
            r.approved_at = approved_at
        return r

    def list_requests(self, user_id: str) -> tuple[list[RelationshipRequest], list[RelationshipRequest]]:
        incoming = [
            r
            for r in self._requests.values()
            if r.approver_user_id == user_id and r.status == RequestStatus.PENDING
        ]
        outgoing = [r for r in self._requests.values() if r.created_by_user_id == user_id]
        return incoming, outgoing
