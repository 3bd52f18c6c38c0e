"""Core records and enums for the whānau graph.

Everything here is a plain value object; persistence lives in ``graph.py`` /
``memory.py`` and the algorithms in ``ancestry.py``, ``kinship.py``,
``guard.py`` and ``views.py``.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Optional


class Gender(str, Enum):
    MALE = "MALE"
    FEMALE = "FEMALE"
    OTHER = "OTHER"
    UNKNOWN = "UNKNOWN"


class ParentRole(str, Enum):
    MOTHER = "MOTHER"
    FATHER = "FATHER"
    PARENT = "PARENT"


class ParentKind(str, Enum):
    BIOLOGICAL = "BIOLOGICAL"
    WHANGAI = "WHANGAI"


class PartnershipKind(str, Enum):
    MARRIED = "MARRIED"
    PARTNER = "PARTNER"
    CIVIL_UNION = "CIVIL_UNION"
    DE_FACTO = "DE_FACTO"
    OTHER = "OTHER"


class PartnershipStatus(str, Enum):
    ACTIVE = "ACTIVE"
    SEPARATED = "SEPARATED"
    DIVORCED = "DIVORCED"
    WIDOWED = "WIDOWED"
    ENDED = "ENDED"


class RequestKind(str, Enum):
    PARENT_CHILD = "PARENT_CHILD"
    PARTNERSHIP = "PARTNERSHIP"


class RequestStatus(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    CANCELED = "CANCELED"


class UserRole(str, Enum):
    ADMIN = "ADMIN"
    EDITOR = "EDITOR"
    MEMBER = "MEMBER"


class ViewKind(str, Enum):
    BIOLOGICAL = "BIOLOGICAL"
    WHANGAI = "WHANGAI"
    ALL = "ALL"


class LineChoice(str, Enum):
    MOTHER = "MOTHER"
    FATHER = "FATHER"
    ANY = "ANY"


class LineSide(str, Enum):
    MATERNAL = "MATERNAL"
    PATERNAL = "PATERNAL"
    BOTH = "BOTH"


@dataclass
class Person:
    id: str
    first_name: str
    last_name: str
    gender: Gender = Gender.UNKNOWN
    display_name: Optional[str] = None
    birth_date: Optional[date] = None
    death_date: Optional[date] = None
    notes: Optional[str] = None
    image_url: Optional[str] = None
    locked: bool = False
    created_by_id: Optional[str] = None
    deleted_at: Optional[datetime] = None

    @property
    def label(self) -> str:
        if self.display_name:
            return self.display_name
        return f"{self.first_name} {self.last_name}".strip()


@dataclass
class ParentChildEdge:
    id: str
    parent_id: str
    child_id: str
    role: Optional[ParentRole] = ParentRole.PARENT
    kind: ParentKind = ParentKind.BIOLOGICAL
    created_by_id: Optional[str] = None
    deleted_at: Optional[datetime] = None

    @property
    def key(self) -> str:
        return edge_key(self.parent_id, self.child_id)


@dataclass
class Partnership:
    id: str
    a_id: str
    b_id: str
    kind: PartnershipKind = PartnershipKind.PARTNER
    status: PartnershipStatus = PartnershipStatus.ACTIVE
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    created_by_id: Optional[str] = None
    deleted_at: Optional[datetime] = None


@dataclass
class RelationshipRequest:
    id: str
    open_hash: str
    kind: RequestKind
    from_person_id: str
    to_person_id: str
    created_by_user_id: str
    approver_user_id: str
    role: Optional[ParentRole] = None
    pc_kind: Optional[ParentKind] = None
    partnership_kind: Optional[PartnershipKind] = None
    partnership_status: Optional[PartnershipStatus] = None
    message: Optional[str] = None
    status: RequestStatus = RequestStatus.PENDING
    created_at: Optional[datetime] = None
    approved_at: Optional[datetime] = None


# Read-side rows returned by the graph data access layer.


@dataclass(frozen=True)
class ParentLink:
    parent_id: str
    role: Optional[ParentRole]
    kind: ParentKind


@dataclass(frozen=True)
class ChildLink:
    child_id: str
    role: Optional[ParentRole]
    kind: ParentKind


@dataclass(frozen=True)
class CoParentLink:
    co_parent_id: str
    whangai: bool


@dataclass(frozen=True)
class Actor:
    user_id: str
    role: UserRole = UserRole.MEMBER

    @property
    def is_adminish(self) -> bool:
        return self.role in (UserRole.ADMIN, UserRole.EDITOR)


def edge_key(parent_id: str, child_id: str) -> str:
    return f"{parent_id}->{child_id}"
