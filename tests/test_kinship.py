from __future__ import annotations

import pytest

from whanau.kinship import (
    FALLBACK_LABEL,
    SAME_PERSON,
    RelationKind,
    ancestor_label,
    classify_relationship,
    cousin_label,
    descendant_label,
    describe_relationship,
    ordinal,
)
from whanau.memory import MemoryGraph
from whanau.models import Gender


# ---------------------------------------------------------------------------
# Label helpers
# ---------------------------------------------------------------------------


class TestLabelHelpers:
    def test_ordinals(self) -> None:
        assert ordinal(0) == "zeroth"
        assert ordinal(1) == "first"
        assert ordinal(10) == "tenth"
        assert ordinal(11) == "11th"

    def test_ancestor_and_descendant_labels(self) -> None:
        assert ancestor_label(1, Gender.FEMALE) == "mother"
        assert ancestor_label(2, Gender.MALE) == "grandfather"
        assert ancestor_label(4, None) == "great-great-grandparent"
        assert descendant_label(1, Gender.OTHER) == "child"
        assert descendant_label(3, Gender.FEMALE) == "great-granddaughter"

    def test_cousin_labels(self) -> None:
        assert cousin_label(1, 0) == "first cousin"
        assert cousin_label(1, 1) == "first cousin once removed"
        assert cousin_label(2, 2) == "second cousin second removed"
        assert cousin_label(0, 1) == "zeroth cousin once removed"


# ---------------------------------------------------------------------------
# describe_relationship over the shared fixture
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    ("a", "b", "expected"),
    [
        ("tama", "tama", SAME_PERSON),
        # direct line
        ("tama", "aroha", "mother"),
        ("aroha", "tama", "son"),
        ("tama", "mere", "grandmother"),
        ("ari", "mere", "great-grandmother"),
        ("mere", "ari", "great-grandson"),
        ("pita", "mere", "grandmother(whangai)"),
        ("pita", "aroha", "mother(whangai)"),
        # siblings
        ("tama", "kiri", "sister"),
        ("kiri", "tama", "brother"),
        ("tama", "pita", "brother(whangai)"),
        ("aroha", "rangi", "sibling"),
        # aunt/uncle and niece/nephew
        ("tama", "rawiri", "uncle"),
        ("tama", "ana", "aunt"),
        ("tama", "rangi", "aunt/uncle"),
        ("pita", "rawiri", "uncle(whangai)"),
        ("rawiri", "tama", "nephew"),
        ("tama", "hine", "niece"),
        ("hine", "tama", "uncle"),
        # cousins
        ("tama", "nikau", "first cousin"),
        ("tama", "manaia", "first cousin once removed"),
        ("manaia", "tama", "first cousin once removed"),
        ("ari", "manaia", "second cousin"),
        # co-parents and in-laws
        ("aroha", "wiremu", "co-parent"),
        ("tama", "moana", "co-parent"),
        ("tama", "tane", "brother-in-law"),
        ("moana", "aroha", "mother-in-law"),
        ("moana", "wiremu", "father-in-law"),
        ("rawiri", "kahu", "son-in-law"),
        # nothing structural
        ("tama", "stranger", FALLBACK_LABEL),
        ("tama", "nobody-by-this-id", FALLBACK_LABEL),
    ],
)
def test_describe_relationship(whanau: MemoryGraph, a: str, b: str, expected: str) -> None:
    assert describe_relationship(whanau, a, b) == expected


def test_cousin_degree_is_symmetric(whanau: MemoryGraph) -> None:
    ab = classify_relationship(whanau, "ari", "nikau")
    ba = classify_relationship(whanau, "nikau", "ari")
    assert ab.kind == ba.kind == RelationKind.COUSIN
    assert (ab.degree, ab.removed) == (ba.degree, ba.removed) == (1, 1)
    assert ab.common_ancestor_id in {"mere", "hemi"}


def test_direct_line_reports_generations(whanau: MemoryGraph) -> None:
    rel = classify_relationship(whanau, "ari", "hemi")
    assert rel.kind == RelationKind.ANCESTOR
    assert rel.generations == 3
    assert rel.label == "great-grandfather"


def test_sibling_wins_over_co_parent() -> None:
    # Two half-siblings who (oddly) also share a child: the sibling test runs first.
    g = MemoryGraph()
    for pid, gender in [("p", "FEMALE"), ("a", "MALE"), ("b", "FEMALE"), ("c", "UNKNOWN")]:
        g.add_person(pid, gender)
    g.add_edge("p", "a", "MOTHER")
    g.add_edge("p", "b", "MOTHER")
    g.add_edge("a", "c", "FATHER")
    g.add_edge("b", "c", "MOTHER")
    assert describe_relationship(g, "a", "b") == "sister"


def test_cousin_tie_prefers_non_whangai_path() -> None:
    # g2 reaches p via whāngai and is listed first; g1 is an equally near
    # biological common ancestor, so the label carries no suffix.
    g = MemoryGraph()
    for pid in ("g1", "g2", "p", "q", "a", "b"):
        g.add_person(pid)
    g.add_edge("g2", "p", kind="WHANGAI")
    g.add_edge("g1", "p")
    g.add_edge("g1", "q")
    g.add_edge("g2", "q")
    g.add_edge("p", "a")
    g.add_edge("q", "b")

    rel = classify_relationship(g, "a", "b")
    assert rel.label == "first cousin"
    assert rel.whangai is False
    assert rel.common_ancestor_id == "g1"


def test_whangai_cousins_get_suffix() -> None:
    g = MemoryGraph()
    for pid in ("g", "p", "q", "a", "b"):
        g.add_person(pid)
    g.add_edge("g", "p")
    g.add_edge("g", "q", kind="WHANGAI")
    g.add_edge("p", "a")
    g.add_edge("q", "b")
    assert describe_relationship(g, "a", "b") == "first cousin(whangai)"


def test_soft_deleted_people_are_invisible(whanau: MemoryGraph) -> None:
    whanau.soft_delete_person("aroha")
    # Tama and Kiri now only share Wiremu; Mere is out of reach.
    assert describe_relationship(whanau, "tama", "kiri") == "sister"
    assert describe_relationship(whanau, "tama", "mere") == FALLBACK_LABEL


def test_max_depth_truncates_silently() -> None:
    g = MemoryGraph()
    chain = [f"p{i}" for i in range(6)]
    for pid in chain:
        g.add_person(pid, "FEMALE")
    for parent, child in zip(chain[1:], chain):
        g.add_edge(parent, child, "MOTHER")

    assert describe_relationship(g, "p0", "p5") == "great-great-great-grandmother"
    assert describe_relationship(g, "p0", "p5", max_depth=4) == FALLBACK_LABEL
