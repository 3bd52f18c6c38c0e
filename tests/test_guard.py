from __future__ import annotations

import logging
from datetime import date

import pytest

from whanau import guard
from whanau.errors import (
    CycleDetected,
    EdgeNotFound,
    PartnershipNotFound,
    PersonNotFound,
    SelfLink,
    ValidationError,
)
from whanau.memory import MemoryGraph
from whanau.models import Actor, Gender, ParentKind, ParentRole, PartnershipStatus


@pytest.fixture()
def chain() -> MemoryGraph:
    g = MemoryGraph()
    for pid, gender in [("a", "FEMALE"), ("b", "MALE"), ("c", "FEMALE"), ("d", "MALE")]:
        g.add_person(pid, gender)
    return g


# ---------------------------------------------------------------------------
# link_parent_child
# ---------------------------------------------------------------------------


class TestLinkParentChild:
    def test_creates_edge_with_actor(self, chain: MemoryGraph, admin: Actor) -> None:
        e = guard.link_parent_child(chain, parent_id="a", child_id="b", role="MOTHER", actor=admin)
        assert (e.parent_id, e.child_id, e.role, e.kind) == ("a", "b", ParentRole.MOTHER, ParentKind.BIOLOGICAL)
        assert e.created_by_id == admin.user_id
        assert [p.parent_id for p in chain.parents_of("b")] == ["a"]

    def test_rejects_cycle(self, chain: MemoryGraph, admin: Actor, caplog: pytest.LogCaptureFixture) -> None:
        guard.link_parent_child(chain, parent_id="a", child_id="b", actor=admin)
        guard.link_parent_child(chain, parent_id="b", child_id="c", actor=admin)

        with caplog.at_level(logging.WARNING, logger="whanau.guard"):
            with pytest.raises(CycleDetected):
                guard.link_parent_child(chain, parent_id="c", child_id="a", actor=admin)
        assert "cycle" in caplog.text
        assert chain.parents_of("a") == []

    def test_rejects_direct_two_cycle(self, chain: MemoryGraph, admin: Actor) -> None:
        guard.link_parent_child(chain, parent_id="a", child_id="b", actor=admin)
        with pytest.raises(CycleDetected):
            guard.link_parent_child(chain, parent_id="b", child_id="a", actor=admin)

    def test_cycle_check_sees_soft_deleted_intermediary(self, chain: MemoryGraph, admin: Actor) -> None:
        guard.link_parent_child(chain, parent_id="a", child_id="b", actor=admin)
        guard.link_parent_child(chain, parent_id="b", child_id="c", actor=admin)
        chain.soft_delete_person("b")
        with pytest.raises(CycleDetected):
            guard.link_parent_child(chain, parent_id="c", child_id="a", actor=admin)

    def test_self_link(self, chain: MemoryGraph, admin: Actor) -> None:
        with pytest.raises(SelfLink):
            guard.link_parent_child(chain, parent_id="a", child_id="a", actor=admin)

    def test_missing_person(self, chain: MemoryGraph, admin: Actor) -> None:
        with pytest.raises(PersonNotFound) as exc:
            guard.link_parent_child(chain, parent_id="a", child_id="zz", actor=admin)
        assert exc.value.person_id == "zz"
        assert exc.value.status_code == 404

    def test_soft_deleted_person_is_missing(self, chain: MemoryGraph, admin: Actor) -> None:
        chain.soft_delete_person("b")
        with pytest.raises(PersonNotFound):
            guard.link_parent_child(chain, parent_id="a", child_id="b", actor=admin)

    def test_bad_enum(self, chain: MemoryGraph, admin: Actor) -> None:
        with pytest.raises(ValidationError, match="kind must be one of"):
            guard.link_parent_child(chain, parent_id="a", child_id="b", kind="ADOPTED", actor=admin)

    def test_same_kind_upserts_role(self, chain: MemoryGraph, admin: Actor) -> None:
        first = guard.link_parent_child(chain, parent_id="a", child_id="b", role="PARENT", actor=admin)
        second = guard.link_parent_child(chain, parent_id="a", child_id="b", role="MOTHER", actor=admin)
        assert first.id == second.id
        assert len(chain.all_edges()) == 1
        assert chain.all_edges()[0].role == ParentRole.MOTHER

    def test_other_kind_is_separate_edge(self, chain: MemoryGraph, admin: Actor) -> None:
        guard.link_parent_child(chain, parent_id="a", child_id="b", actor=admin)
        guard.link_parent_child(chain, parent_id="a", child_id="b", kind="WHANGAI", actor=admin)
        kinds = sorted(e.kind.value for e in chain.all_edges())
        assert kinds == ["BIOLOGICAL", "WHANGAI"]


class TestSetParent:
    def test_replaces_previous_holder_of_slot(self, chain: MemoryGraph, admin: Actor) -> None:
        guard.set_parent(chain, parent_id="a", child_id="d", role="MOTHER", actor=admin)
        guard.set_parent(chain, parent_id="c", child_id="d", role="MOTHER", actor=admin)
        assert [(p.parent_id, p.role) for p in chain.parents_of("d")] == [("c", ParentRole.MOTHER)]

    def test_keeps_other_kind(self, chain: MemoryGraph, admin: Actor) -> None:
        guard.set_parent(chain, parent_id="a", child_id="d", role="MOTHER", actor=admin)
        guard.set_parent(chain, parent_id="c", child_id="d", role="MOTHER", kind="WHANGAI", actor=admin)
        assert sorted(p.parent_id for p in chain.parents_of("d")) == ["a", "c"]

    def test_cycle_leaves_slot_untouched(self, chain: MemoryGraph, admin: Actor) -> None:
        guard.set_parent(chain, parent_id="a", child_id="b", role="MOTHER", actor=admin)
        guard.set_parent(chain, parent_id="c", child_id="a", role="MOTHER", actor=admin)
        with pytest.raises(CycleDetected):
            guard.set_parent(chain, parent_id="b", child_id="a", role="FATHER", actor=admin)
        assert [p.parent_id for p in chain.parents_of("a")] == ["c"]


class TestValidateRoleForGender:
    def test_mother_must_be_female(self) -> None:
        assert guard.validate_role_for_gender("MOTHER", Gender.FEMALE) == ParentRole.MOTHER
        with pytest.raises(ValidationError, match="Selected mother is not FEMALE"):
            guard.validate_role_for_gender("MOTHER", Gender.MALE)

    def test_father_must_be_male(self) -> None:
        with pytest.raises(ValidationError, match="Selected father is not MALE"):
            guard.validate_role_for_gender(ParentRole.FATHER, Gender.UNKNOWN)

    def test_parent_any_gender(self) -> None:
        assert guard.validate_role_for_gender("parent", None) == ParentRole.PARENT


# ---------------------------------------------------------------------------
# unlink_parent_child
# ---------------------------------------------------------------------------


class TestUnlink:
    def test_by_id(self, chain: MemoryGraph, admin: Actor) -> None:
        e = guard.link_parent_child(chain, parent_id="a", child_id="b", actor=admin)
        removed = guard.unlink_parent_child(chain, edge_id=e.id)
        assert [r.id for r in removed] == [e.id]
        assert chain.all_edges() == []

    def test_unknown_id(self, chain: MemoryGraph) -> None:
        with pytest.raises(EdgeNotFound):
            guard.unlink_parent_child(chain, edge_id="pc_999")

    def test_pair_without_kind_removes_all_kinds(self, chain: MemoryGraph, admin: Actor) -> None:
        guard.link_parent_child(chain, parent_id="a", child_id="b", actor=admin)
        guard.link_parent_child(chain, parent_id="a", child_id="b", kind="WHANGAI", actor=admin)
        removed = guard.unlink_parent_child(chain, parent_id="a", child_id="b")
        assert len(removed) == 2
        assert chain.all_edges() == []

    def test_pair_with_kind(self, chain: MemoryGraph, admin: Actor) -> None:
        guard.link_parent_child(chain, parent_id="a", child_id="b", actor=admin)
        guard.link_parent_child(chain, parent_id="a", child_id="b", kind="WHANGAI", actor=admin)
        guard.unlink_parent_child(chain, parent_id="a", child_id="b", kind="WHANGAI")
        assert [e.kind for e in chain.all_edges()] == [ParentKind.BIOLOGICAL]

    def test_pair_with_nothing_to_remove(self, chain: MemoryGraph) -> None:
        assert guard.unlink_parent_child(chain, parent_id="a", child_id="b") == []

    def test_requires_id_or_pair(self, chain: MemoryGraph) -> None:
        with pytest.raises(ValidationError):
            guard.unlink_parent_child(chain, parent_id="a")

    def test_relink_revives_edge(self, chain: MemoryGraph, admin: Actor) -> None:
        e = guard.link_parent_child(chain, parent_id="a", child_id="b", actor=admin)
        guard.unlink_parent_child(chain, edge_id=e.id)
        again = guard.link_parent_child(chain, parent_id="a", child_id="b", role="MOTHER", actor=admin)
        assert again.id == e.id
        assert again.deleted_at is None


# ---------------------------------------------------------------------------
# Partnerships
# ---------------------------------------------------------------------------


class TestPartnership:
    def test_canonical_order(self, chain: MemoryGraph, admin: Actor) -> None:
        p = guard.upsert_partnership(chain, a_id="d", b_id="a", kind="MARRIED", actor=admin)
        assert (p.a_id, p.b_id) == ("a", "d")

    def test_upsert_same_pair_updates(self, chain: MemoryGraph, admin: Actor) -> None:
        p1 = guard.upsert_partnership(chain, a_id="a", b_id="b", actor=admin)
        p2 = guard.upsert_partnership(chain, a_id="b", b_id="a", status="SEPARATED", actor=admin)
        assert p1.id == p2.id
        assert p2.status == PartnershipStatus.SEPARATED

    def test_self_partnership(self, chain: MemoryGraph, admin: Actor) -> None:
        with pytest.raises(SelfLink):
            guard.upsert_partnership(chain, a_id="a", b_id="a", actor=admin)

    def test_end_before_start(self, chain: MemoryGraph, admin: Actor) -> None:
        with pytest.raises(ValidationError):
            guard.upsert_partnership(
                chain,
                a_id="a",
                b_id="b",
                start_date=date(2020, 1, 1),
                end_date=date(2019, 1, 1),
                actor=admin,
            )

    def test_missing_person(self, chain: MemoryGraph, admin: Actor) -> None:
        with pytest.raises(PersonNotFound):
            guard.upsert_partnership(chain, a_id="a", b_id="zz", actor=admin)

    def test_delete(self, chain: MemoryGraph, admin: Actor) -> None:
        p = guard.upsert_partnership(chain, a_id="a", b_id="b", actor=admin)
        guard.delete_partnership(chain, p.id)
        assert chain.find_partnership(p.id) is None
        with pytest.raises(PartnershipNotFound):
            guard.delete_partnership(chain, p.id)
