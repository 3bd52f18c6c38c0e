"""Relationship inference between two people in the whānau graph.

``describe_relationship`` walks an ordered list of structural tests and
returns the first label that fits:

1. same person
2. direct line (ancestor / descendant, any number of generations)
3. siblings (any shared parent)
4. aunt/uncle <-> niece/nephew
5. cousins, with degree and removal from the nearest common ancestor
6. co-parents (share a child; partnerships are not consulted)
7. in-law approximations through siblings and co-parents
8. fallback

Terms are gendered by the *second* person's gender. Any whāngai edge on the
connecting path appends ``(whangai)`` to the label.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .ancestry import DEFAULT_MAX_DEPTH, AncestorInfo, ancestors_depth_map, shared_parent
from .graph import GraphReader
from .models import Gender, ParentKind

SAME_PERSON = "the same person"
FALLBACK_LABEL = "related (complex/step) or unknown"
WHANGAI_SUFFIX = "(whangai)"

_ORDINALS = (
    "zeroth",
    "first",
    "second",
    "third",
    "fourth",
    "fifth",
    "sixth",
    "seventh",
    "eighth",
    "ninth",
    "tenth",
)

# (neutral term, gender) -> label. OTHER/UNKNOWN/missing fall back to the neutral term.
_GENDERED: dict[tuple[str, Gender], str] = {
    ("parent", Gender.FEMALE): "mother",
    ("parent", Gender.MALE): "father",
    ("grandparent", Gender.FEMALE): "grandmother",
    ("grandparent", Gender.MALE): "grandfather",
    ("child", Gender.FEMALE): "daughter",
    ("child", Gender.MALE): "son",
    ("grandchild", Gender.FEMALE): "granddaughter",
    ("grandchild", Gender.MALE): "grandson",
    ("sibling", Gender.FEMALE): "sister",
    ("sibling", Gender.MALE): "brother",
    ("aunt/uncle", Gender.FEMALE): "aunt",
    ("aunt/uncle", Gender.MALE): "uncle",
    ("niece/nephew", Gender.FEMALE): "niece",
    ("niece/nephew", Gender.MALE): "nephew",
    ("brother-/sister-in-law", Gender.FEMALE): "sister-in-law",
    ("brother-/sister-in-law", Gender.MALE): "brother-in-law",
    ("parent-in-law", Gender.FEMALE): "mother-in-law",
    ("parent-in-law", Gender.MALE): "father-in-law",
    ("child-in-law", Gender.FEMALE): "daughter-in-law",
    ("child-in-law", Gender.MALE): "son-in-law",
}


class RelationKind(str, Enum):
    SELF = "SELF"
    ANCESTOR = "ANCESTOR"
    DESCENDANT = "DESCENDANT"
    SIBLING = "SIBLING"
    AUNT_UNCLE = "AUNT_UNCLE"
    NIECE_NEPHEW = "NIECE_NEPHEW"
    COUSIN = "COUSIN"
    CO_PARENT = "CO_PARENT"
    SIBLING_IN_LAW = "SIBLING_IN_LAW"
    PARENT_IN_LAW = "PARENT_IN_LAW"
    CHILD_IN_LAW = "CHILD_IN_LAW"
    UNKNOWN = "UNKNOWN"


@dataclass(frozen=True)
class Relationship:
    kind: RelationKind
    label: str
    whangai: bool = False
    generations: Optional[int] = None
    degree: Optional[int] = None
    removed: Optional[int] = None
    common_ancestor_id: Optional[str] = None


def ordinal(n: int) -> str:
    if 0 <= n < len(_ORDINALS):
        return _ORDINALS[n]
    return f"{n}th"


def gendered(term: str, gender: Optional[Gender]) -> str:
    if gender is None:
        return term
    return _GENDERED.get((term, gender), term)


def with_kind(label: str, whangai: bool) -> str:
    return f"{label}{WHANGAI_SUFFIX}" if whangai else label


def ancestor_label(generations: int, gender: Optional[Gender] = None) -> str:
    if generations == 1:
        return gendered("parent", gender)
    return "great-" * (generations - 2) + gendered("grandparent", gender)


def descendant_label(generations: int, gender: Optional[Gender] = None) -> str:
    if generations == 1:
        return gendered("child", gender)
    return "great-" * (generations - 2) + gendered("grandchild", gender)


def cousin_label(degree: int, removed: int) -> str:
    label = f"{ordinal(degree)} cousin"
    if removed == 1:
        label += " once removed"
    elif removed > 1:
        label += f" {ordinal(removed)} removed"
    return label


def _nearest_common_ancestor(
    a_anc: dict[str, AncestorInfo],
    b_anc: dict[str, AncestorInfo],
) -> Optional[tuple[str, int, int, bool]]:
    """Pick the common ancestor minimising m + n.

    On equal sums a non-whāngai path replaces a whāngai one; any other tie keeps
    the first candidate in A's BFS order.
    """

    best: Optional[tuple[str, int, int, bool]] = None
    for anc, info_a in a_anc.items():
        info_b = b_anc.get(anc)
        if info_b is None:
            continue
        total = info_a.distance + info_b.distance
        wh = info_a.whangai or info_b.whangai
        if best is None or total < best[1] + best[2] or (total == best[1] + best[2] and best[3] and not wh):
            best = (anc, info_a.distance, info_b.distance, wh)
    return best


def classify_relationship(
    graph: GraphReader,
    a_id: str,
    b_id: str,
    *,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> Relationship:
    """Classify how ``b_id`` is related to ``a_id`` (i.e. "B is A's ...")."""

    if a_id == b_id:
        return Relationship(RelationKind.SELF, SAME_PERSON)

    b_gender = graph.gender_of(b_id)
    a_anc = ancestors_depth_map(graph, a_id, max_depth)
    b_anc = ancestors_depth_map(graph, b_id, max_depth)

    # Direct line.
    if b_id in a_anc:
        info = a_anc[b_id]
        return Relationship(
            RelationKind.ANCESTOR,
            with_kind(ancestor_label(info.distance, b_gender), info.whangai),
            whangai=info.whangai,
            generations=info.distance,
        )
    if a_id in b_anc:
        info = b_anc[a_id]
        return Relationship(
            RelationKind.DESCENDANT,
            with_kind(descendant_label(info.distance, b_gender), info.whangai),
            whangai=info.whangai,
            generations=info.distance,
        )

    # Siblings, ahead of co-parents.
    sib = shared_parent(graph, a_id, b_id)
    if sib.shared:
        return Relationship(
            RelationKind.SIBLING,
            with_kind(gendered("sibling", b_gender), sib.whangai),
            whangai=sib.whangai,
        )

    # Aunt/uncle <-> niece/nephew.
    a_parents = graph.parents_of(a_id)
    for ap in a_parents:
        sp = shared_parent(graph, ap.parent_id, b_id)
        if sp.shared:
            w = sp.whangai or ap.kind == ParentKind.WHANGAI
            return Relationship(
                RelationKind.AUNT_UNCLE,
                with_kind(gendered("aunt/uncle", b_gender), w),
                whangai=w,
            )
    for bp in graph.parents_of(b_id):
        sp = shared_parent(graph, bp.parent_id, a_id)
        if sp.shared:
            w = sp.whangai or bp.kind == ParentKind.WHANGAI
            return Relationship(
                RelationKind.NIECE_NEPHEW,
                with_kind(gendered("niece/nephew", b_gender), w),
                whangai=w,
            )

    # Cousins.
    best = _nearest_common_ancestor(a_anc, b_anc)
    if best is not None:
        anc, m, n, wh = best
        if m == 1 and n == 1:
            return Relationship(
                RelationKind.SIBLING,
                with_kind(gendered("sibling", b_gender), wh),
                whangai=wh,
                common_ancestor_id=anc,
            )
        degree = min(m, n) - 1
        removed = abs(m - n)
        return Relationship(
            RelationKind.COUSIN,
            with_kind(cousin_label(degree, removed), wh),
            whangai=wh,
            degree=degree,
            removed=removed,
            common_ancestor_id=anc,
        )

    # Co-parents.
    a_co = {c.co_parent_id: c.whangai for c in graph.co_parents_of(a_id)}
    if b_id in a_co:
        return Relationship(
            RelationKind.CO_PARENT,
            with_kind("co-parent", a_co[b_id]),
            whangai=a_co[b_id],
        )

    # In-law approximations.
    siblings: dict[str, None] = {}
    for ap in a_parents:
        for kid in graph.children_of(ap.parent_id):
            siblings.setdefault(kid.child_id, None)
    siblings.pop(a_id, None)

    sibling_co: dict[str, bool] = {}
    for s in siblings:
        for c in graph.co_parents_of(s):
            sibling_co[c.co_parent_id] = sibling_co.get(c.co_parent_id, False) or c.whangai
    if b_id in sibling_co:
        w = sibling_co[b_id]
        return Relationship(
            RelationKind.SIBLING_IN_LAW,
            with_kind(gendered("brother-/sister-in-law", b_gender), w),
            whangai=w,
        )

    if a_co:
        my_children = {c.child_id for c in graph.children_of(a_id)}
        for co_id, w in a_co.items():
            if any(p.parent_id == b_id for p in graph.parents_of(co_id)):
                return Relationship(
                    RelationKind.PARENT_IN_LAW,
                    with_kind(gendered("parent-in-law", b_gender), w),
                    whangai=w,
                )
            for kid in graph.children_of(co_id):
                if kid.child_id == b_id and kid.child_id not in my_children:
                    return Relationship(
                        RelationKind.CHILD_IN_LAW,
                        with_kind(gendered("child-in-law", b_gender), w),
                        whangai=w,
                    )

    return Relationship(RelationKind.UNKNOWN, FALLBACK_LABEL)


def describe_relationship(
    graph: GraphReader,
    a_id: str,
    b_id: str,
    *,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> str:
    """Human-readable label for what ``b_id`` is to ``a_id``."""
    return classify_relationship(graph, a_id, b_id, max_depth=max_depth).label
