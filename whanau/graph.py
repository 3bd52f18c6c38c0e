"""Graph data access over PostgreSQL.

All reads go through the ``active_person`` / ``active_parent_child`` views
(see ``sql/schema.sql``) so soft-deleted people and edges never reach the
kinship algorithms. The cycle check is the one deliberate exception: it reads
``parent_child`` directly so a soft-deleted person cannot hide a cycle that a
later restore would expose.
"""

from __future__ import annotations

from contextlib import contextmanager
from datetime import date, datetime
from typing import Any, Iterator, Optional, Protocol

import psycopg

from .db import db_conn
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
    RequestKind,
    RequestStatus,
)

# pg_advisory_xact_lock key serialising parent/child mutations ("whnu").
_GRAPH_LOCK_KEY = 0x77686E75


class GraphReader(Protocol):
    def get_person(self, person_id: str) -> Optional[Person]: ...

    def gender_of(self, person_id: str) -> Optional[Gender]: ...

    def parents_of(self, child_id: str) -> list[ParentLink]: ...

    def parents_of_many(self, child_ids: list[str]) -> dict[str, list[ParentLink]]: ...

    def children_of(self, parent_id: str) -> list[ChildLink]: ...

    def co_parents_of(self, person_id: str) -> list[CoParentLink]: ...

    def child_ids_unfiltered(self, parent_ids: list[str]) -> dict[str, list[str]]: ...


class GraphStore(GraphReader, Protocol):
    def transaction(self) -> Any: ...

    def all_people(self) -> list[Person]: ...

    def all_edges(self) -> list[ParentChildEdge]: ...

    def find_edge(self, edge_id: str) -> Optional[ParentChildEdge]: ...

    def find_edges(self, parent_id: str, child_id: str) -> list[ParentChildEdge]: ...

    def upsert_edge(
        self,
        *,
        parent_id: str,
        child_id: str,
        role: Optional[ParentRole],
        kind: ParentKind,
        created_by_id: Optional[str],
    ) -> ParentChildEdge: ...

    def delete_edge(self, edge_id: str) -> Optional[ParentChildEdge]: ...

    def delete_edges(
        self, parent_id: str, child_id: str, kind: Optional[ParentKind] = None
    ) -> list[ParentChildEdge]: ...

    def delete_role_edges(
        self, *, child_id: str, kind: ParentKind, role: ParentRole, keep_parent_id: str
    ) -> list[ParentChildEdge]: ...

    def find_partnership(self, partnership_id: str) -> Optional[Partnership]: ...

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
    ) -> Partnership: ...

    def delete_partnership(self, partnership_id: str) -> Optional[Partnership]: ...

    def upsert_request(self, request: RelationshipRequest) -> RelationshipRequest: ...

    def find_request(self, request_id: str) -> Optional[RelationshipRequest]: ...

    def set_request_status(
        self, request_id: str, status: RequestStatus, *, approved_at: Optional[datetime] = None
    ) -> RelationshipRequest: ...

    def list_requests(
        self, user_id: str
    ) -> tuple[list[RelationshipRequest], list[RelationshipRequest]]: ...


# ---------------------------------------------------------------------------
# Row mapping
# ---------------------------------------------------------------------------

_PERSON_COLS = (
    "id, first_name, last_name, display_name, gender, birth_date, death_date, "
    "notes, image_url, locked, created_by_id"
)
_EDGE_COLS = "id, parent_id, child_id, role, kind, created_by_id"
_PARTNERSHIP_COLS = "id, a_id, b_id, kind, status, start_date, end_date, created_by_id"
_REQUEST_COLS = (
    "id, open_hash, kind, from_person_id, to_person_id, created_by_user_id, "
    "approver_user_id, role, pc_kind, partnership_kind, partnership_status, "
    "message, status, created_at, approved_at"
)


def _role(value: Any) -> Optional[ParentRole]:
    return ParentRole(value) if value else None


def _kind(value: Any) -> ParentKind:
    return ParentKind(value) if value else ParentKind.BIOLOGICAL


def _person_from_row(r: tuple[Any, ...]) -> Person:
    (pid, first, last, display, gender, birth, death, notes, image, locked, created_by) = tuple(r)
    return Person(
        id=str(pid),
        first_name=first or "",
        last_name=last or "",
        display_name=display,
        gender=Gender(gender) if gender else Gender.UNKNOWN,
        birth_date=birth,
        death_date=death,
        notes=notes,
        image_url=image,
        locked=bool(locked),
        created_by_id=created_by,
    )


def _edge_from_row(r: tuple[Any, ...]) -> ParentChildEdge:
    eid, parent_id, child_id, role, kind, created_by = tuple(r)
    return ParentChildEdge(
        id=str(eid),
        parent_id=str(parent_id),
        child_id=str(child_id),
        role=_role(role),
        kind=_kind(kind),
        created_by_id=created_by,
    )


def _partnership_from_row(r: tuple[Any, ...]) -> Partnership:
    pid, a_id, b_id, kind, status, start, end, created_by = tuple(r)
    return Partnership(
        id=str(pid),
        a_id=str(a_id),
        b_id=str(b_id),
        kind=PartnershipKind(kind),
        status=PartnershipStatus(status),
        start_date=start,
        end_date=end,
        created_by_id=created_by,
    )


def _request_from_row(r: tuple[Any, ...]) -> RelationshipRequest:
    (
        rid,
        open_hash,
        kind,
        from_id,
        to_id,
        created_by,
        approver,
        role,
        pc_kind,
        p_kind,
        p_status,
        message,
        status,
        created_at,
        approved_at,
    ) = tuple(r)
    return RelationshipRequest(
        id=str(rid),
        open_hash=open_hash,
        kind=RequestKind(kind),
        from_person_id=str(from_id),
        to_person_id=str(to_id),
        created_by_user_id=str(created_by),
        approver_user_id=str(approver),
        role=_role(role),
        pc_kind=ParentKind(pc_kind) if pc_kind else None,
        partnership_kind=PartnershipKind(p_kind) if p_kind else None,
        partnership_status=PartnershipStatus(p_status) if p_status else None,
        message=message,
        status=RequestStatus(status),
        created_at=created_at,
        approved_at=approved_at,
    )


def _val(e: Any) -> Any:
    return e.value if e is not None else None


# ---------------------------------------------------------------------------
# PostgreSQL store
# ---------------------------------------------------------------------------


class PgGraph:
    def __init__(self, conn: psycopg.Connection) -> None:
        self._conn = conn

    # -- reads ----------------------------------------------------------

    def get_person(self, person_id: str) -> Optional[Person]:
        row = self._conn.execute(
            f"SELECT {_PERSON_COLS} FROM active_person WHERE id = %s",
            (person_id,),
        ).fetchone()
        return _person_from_row(row) if row else None

    def gender_of(self, person_id: str) -> Optional[Gender]:
        row = self._conn.execute(
            "SELECT gender FROM active_person WHERE id = %s",
            (person_id,),
        ).fetchone()
        if not row or not row[0]:
            return None
        return Gender(row[0])

    def all_people(self) -> list[Person]:
        rows = self._conn.execute(
            f"SELECT {_PERSON_COLS} FROM active_person ORDER BY last_name, first_name, id",
        ).fetchall()
        return [_person_from_row(r) for r in rows]

    def all_edges(self) -> list[ParentChildEdge]:
        rows = self._conn.execute(
            f"SELECT {_EDGE_COLS} FROM active_parent_child ORDER BY created_at, id",
        ).fetchall()
        return [_edge_from_row(r) for r in rows]

    def parents_of(self, child_id: str) -> list[ParentLink]:
        return self.parents_of_many([child_id]).get(child_id, [])

    def parents_of_many(self, child_ids: list[str]) -> dict[str, list[ParentLink]]:
        if not child_ids:
            return {}

        out: dict[str, list[ParentLink]] = {cid: [] for cid in child_ids}
        for child_id, parent_id, role, kind in self._conn.execute(
            """
            SELECT child_id, parent_id, role, kind
            FROM active_parent_child
            WHERE child_id = ANY(%s)
            ORDER BY created_at, id
            """.strip(),
            (child_ids,),
        ).fetchall():
            out.setdefault(str(child_id), []).append(
                ParentLink(parent_id=str(parent_id), role=_role(role), kind=_kind(kind))
            )
        return out

    def children_of(self, parent_id: str) -> list[ChildLink]:
        rows = self._conn.execute(
            """
            SELECT child_id, role, kind
            FROM active_parent_child
            WHERE parent_id = %s
            ORDER BY created_at, id
            """.strip(),
            (parent_id,),
        ).fetchall()
        return [ChildLink(child_id=str(c), role=_role(role), kind=_kind(kind)) for c, role, kind in rows]

    def co_parents_of(self, person_id: str) -> list[CoParentLink]:
        """People sharing at least one child with ``person_id``.

        ``whangai`` is set when any shared-child link, on either side, is whāngai.
        """

        rows = self._conn.execute(
            """
            SELECT o.parent_id,
                   bool_or(o.kind = 'WHANGAI' OR m.kind = 'WHANGAI') AS whangai
            FROM active_parent_child m
            JOIN active_parent_child o
              ON o.child_id = m.child_id
             AND o.parent_id <> m.parent_id
            WHERE m.parent_id = %s
            GROUP BY o.parent_id
            ORDER BY o.parent_id
            """.strip(),
            (person_id,),
        ).fetchall()
        return [CoParentLink(co_parent_id=str(pid), whangai=bool(wh)) for pid, wh in rows]

    def child_ids_unfiltered(self, parent_ids: list[str]) -> dict[str, list[str]]:
        if not parent_ids:
            return {}

        out: dict[str, list[str]] = {pid: [] for pid in parent_ids}
        for parent_id, child_id in self._conn.execute(
            """
            SELECT parent_id, child_id
            FROM parent_child
            WHERE deleted_at IS NULL
              AND parent_id = ANY(%s)
            """.strip(),
            (parent_ids,),
        ).fetchall():
            out.setdefault(str(parent_id), []).append(str(child_id))
        return out

    # -- parent/child writes ----------------------------------------------

    @contextmanager
    def transaction(self) -> Iterator[None]:
        with self._conn.transaction():
            self._conn.execute("SELECT pg_advisory_xact_lock(%s)", (_GRAPH_LOCK_KEY,))
            yield

    def find_edge(self, edge_id: str) -> Optional[ParentChildEdge]:
        row = self._conn.execute(
            f"SELECT {_EDGE_COLS} FROM parent_child WHERE id = %s AND deleted_at IS NULL",
            (edge_id,),
        ).fetchone()
        return _edge_from_row(row) if row else None

    def find_edges(self, parent_id: str, child_id: str) -> list[ParentChildEdge]:
        rows = self._conn.execute(
            f"""
            SELECT {_EDGE_COLS}
            FROM parent_child
            WHERE parent_id = %s AND child_id = %s AND deleted_at IS NULL
            ORDER BY kind
            """.strip(),
            (parent_id, child_id),
        ).fetchall()
        return [_edge_from_row(r) for r in rows]

    def upsert_edge(
        self,
        *,
        parent_id: str,
        child_id: str,
        role: Optional[ParentRole],
        kind: ParentKind,
        created_by_id: Optional[str],
    ) -> ParentChildEdge:
        row = self._conn.execute(
            f"""
            INSERT INTO parent_child (parent_id, child_id, role, kind, created_by_id)
            VALUES (%s, %s, %s, %s, %s)
            ON CONFLICT (parent_id, child_id, kind) DO UPDATE
              SET role = EXCLUDED.role,
                  deleted_at = NULL
            RETURNING {_EDGE_COLS}
            """.strip(),
            (parent_id, child_id, _val(role) or ParentRole.PARENT.value, kind.value, created_by_id),
        ).fetchone()
        return _edge_from_row(row)

    def delete_edge(self, edge_id: str) -> Optional[ParentChildEdge]:
        row = self._conn.execute(
            f"""
            UPDATE parent_child SET deleted_at = now()
            WHERE id = %s AND deleted_at IS NULL
            RETURNING {_EDGE_COLS}
            """.strip(),
            (edge_id,),
        ).fetchone()
        return _edge_from_row(row) if row else None

    def delete_edges(
        self,
        parent_id: str,
        child_id: str,
        kind: Optional[ParentKind] = None,
    ) -> list[ParentChildEdge]:
        kind_value = _val(kind)
        rows = self._conn.execute(
            f"""
            UPDATE parent_child SET deleted_at = now()
            WHERE parent_id = %s
              AND child_id = %s
              AND deleted_at IS NULL
              AND (%s::text IS NULL OR kind = %s)
            RETURNING {_EDGE_COLS}
            """.strip(),
            (parent_id, child_id, kind_value, kind_value),
        ).fetchall()
        return [_edge_from_row(r) for r in rows]

    def delete_role_edges(
        self,
        *,
        child_id: str,
        kind: ParentKind,
        role: ParentRole,
        keep_parent_id: str,
    ) -> list[ParentChildEdge]:
        rows = self._conn.execute(
            f"""
            UPDATE parent_child SET deleted_at = now()
            WHERE child_id = %s
              AND kind = %s
              AND role = %s
              AND parent_id <> %s
              AND deleted_at IS NULL
            RETURNING {_EDGE_COLS}
            """.strip(),
            (child_id, kind.value, role.value, keep_parent_id),
        ).fetchall()
        return [_edge_from_row(r) for r in rows]

    # -- partnerships -----------------------------------------------------

    def find_partnership(self, partnership_id: str) -> Optional[Partnership]:
        row = self._conn.execute(
            f"SELECT {_PARTNERSHIP_COLS} FROM partnership WHERE id = %s AND deleted_at IS NULL",
            (partnership_id,),
        ).fetchone()
        return _partnership_from_row(row) if row else None

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
        row = self._conn.execute(
            f"""
            INSERT INTO partnership (a_id, b_id, kind, status, start_date, end_date, created_by_id)
            VALUES (%s, %s, %s, %s, %s, %s, %s)
            ON CONFLICT (a_id, b_id) DO UPDATE
              SET kind = EXCLUDED.kind,
                  status = EXCLUDED.status,
                  start_date = COALESCE(EXCLUDED.start_date, partnership.start_date),
                  end_date = COALESCE(EXCLUDED.end_date, partnership.end_date),
                  deleted_at = NULL
            RETURNING {_PARTNERSHIP_COLS}
            """.strip(),
            (a_id, b_id, kind.value, status.value, start_date, end_date, created_by_id),
        ).fetchone()
        return _partnership_from_row(row)

    def delete_partnership(self, partnership_id: str) -> Optional[Partnership]:
        row = self._conn.execute(
            f"""
            UPDATE partnership SET deleted_at = now()
            WHERE id = %s AND deleted_at IS NULL
            RETURNING {_PARTNERSHIP_COLS}
            """.strip(),
            (partnership_id,),
        ).fetchone()
        return _partnership_from_row(row) if row else None

    # -- relationship requests ---------------------------------------------

    def upsert_request(self, request: RelationshipRequest) -> RelationshipRequest:
        row = self._conn.execute(
            f"""
            INSERT INTO relationship_request (
              open_hash, kind, from_person_id, to_person_id, created_by_user_id,
              approver_user_id, role, pc_kind, partnership_kind, partnership_status, message
            )
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
            ON CONFLICT (open_hash) WHERE status = 'PENDING' DO NOTHING
            RETURNING {_REQUEST_COLS}
            """.strip(),
            (
                request.open_hash,
                request.kind.value,
                request.from_person_id,
                request.to_person_id,
                request.created_by_user_id,
                request.approver_user_id,
                _val(request.role),
                _val(request.pc_kind),
                _val(request.partnership_kind),
                _val(request.partnership_status),
                request.message,
            ),
        ).fetchone()
        if row is None:
            # An open request with the same hash already exists; keep it as-is.
            row = self._conn.execute(
                f"""
                SELECT {_REQUEST_COLS}
                FROM relationship_request
                WHERE open_hash = %s AND status = 'PENDING'
                """.strip(),
                (request.open_hash,),
            ).fetchone()
        return _request_from_row(row)

    def find_request(self, request_id: str) -> Optional[RelationshipRequest]:
        row = self._conn.execute(
            f"SELECT {_REQUEST_COLS} FROM relationship_request WHERE id = %s",
            (request_id,),
        ).fetchone()
        return _request_from_row(row) if row else None

    def set_request_status(
        self,
        request_id: str,
        status: RequestStatus,
        *,
        approved_at: Optional[datetime] = None,
    ) -> RelationshipRequest:
        row = self._conn.execute(
            f"""
            UPDATE relationship_request
            SET status = %s,
                approved_at = COALESCE(%s, approved_at)
            WHERE id = %s
            RETURNING {_REQUEST_COLS}
            """.strip(),
            (status.value, approved_at, request_id),
        ).fetchone()
        return _request_from_row(row)

    def list_requests(self, user_id: str) -> tuple[list[RelationshipRequest], list[RelationshipRequest]]:
        incoming = self._conn.execute(
            f"""
            SELECT {_REQUEST_COLS}
            FROM relationship_request
            WHERE approver_user_id = %s AND status = 'PENDING'
            ORDER BY created_at DESC
            """.strip(),
            (user_id,),
        ).fetchall()
        outgoing = self._conn.execute(
            f"""
            SELECT {_REQUEST_COLS}
            FROM relationship_request
            WHERE created_by_user_id = %s
            ORDER BY created_at DESC
            """.strip(),
            (user_id,),
        ).fetchall()
        return [_request_from_row(r) for r in incoming], [_request_from_row(r) for r in outgoing]


@contextmanager
def graph_store() -> Iterator[PgGraph]:
    """Yield a :class:`PgGraph` on a fresh connection, committing on success."""
    with db_conn() as conn:
        yield PgGraph(conn)
        conn.commit()
