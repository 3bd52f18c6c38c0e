from __future__ import annotations

import pytest

from whanau.models import LineChoice, ParentChildEdge, ParentKind, ParentRole, ViewKind
from whanau.views import (
    ParentRef,
    ancestors_subview,
    ascend_line,
    build_parents_map,
    select_edges_for_view,
    walk_lineage,
)


def _e(parent: str, child: str, role: str | None = "PARENT", kind: str = "BIOLOGICAL") -> ParentChildEdge:
    return ParentChildEdge(
        id=f"{parent}-{child}-{kind}",
        parent_id=parent,
        child_id=child,
        role=ParentRole(role) if role else None,
        kind=ParentKind(kind),
    )


# kid has a biological and a whāngai mother, and only a whāngai father.
_EDGES = [
    _e("bio_mum", "kid", "MOTHER"),
    _e("wh_mum", "kid", "MOTHER", "WHANGAI"),
    _e("wh_dad", "kid", "FATHER", "WHANGAI"),
    _e("nan", "bio_mum", "MOTHER"),
]


class TestSelectEdgesForView:
    def test_all_returns_everything(self) -> None:
        assert select_edges_for_view(_EDGES, ViewKind.ALL) == _EDGES

    def test_biological_drops_whangai_only_groups(self) -> None:
        out = select_edges_for_view(_EDGES, "BIOLOGICAL")
        assert {(e.parent_id, e.child_id) for e in out} == {("bio_mum", "kid"), ("nan", "bio_mum")}

    def test_whangai_prefers_whangai_then_biological(self) -> None:
        out = select_edges_for_view(_EDGES, ViewKind.WHANGAI)
        assert {(e.parent_id, e.child_id) for e in out} == {
            ("wh_mum", "kid"),
            ("wh_dad", "kid"),
            ("nan", "bio_mum"),
        }

    def test_at_most_one_edge_per_child_role(self) -> None:
        for view in (ViewKind.BIOLOGICAL, ViewKind.WHANGAI):
            out = select_edges_for_view(_EDGES, view)
            keys = [(e.child_id, e.role) for e in out]
            assert len(keys) == len(set(keys))

    def test_missing_role_groups_as_parent(self) -> None:
        edges = [_e("x", "kid", None), _e("y", "kid", "PARENT", "WHANGAI"), _e("m", "kid", "MOTHER")]
        out = select_edges_for_view(edges, ViewKind.WHANGAI)
        assert {e.parent_id for e in out} == {"y", "m"}

    def test_unknown_view_rejected(self) -> None:
        with pytest.raises(ValueError):
            select_edges_for_view(_EDGES, "STEP")


def _line_map() -> dict[str, list[ParentRef]]:
    return build_parents_map(
        [
            _e("mum", "me", "MOTHER"),
            _e("dad", "me", "FATHER"),
            _e("nan", "mum", "MOTHER"),
            _e("koro", "mum", "FATHER"),
            _e("great_nan", "nan", "PARENT"),
            _e("dads_dad", "dad", "FATHER"),
        ]
    )


class TestAscendLine:
    def test_mother_line_stops_without_exact_role(self) -> None:
        t = ascend_line("me", _line_map(), LineChoice.MOTHER)
        assert t.nodes == {"me", "mum", "nan"}
        assert t.edges == {"mum->me", "nan->mum"}

    def test_father_line(self) -> None:
        t = ascend_line("me", _line_map(), "FATHER")
        assert t.nodes == {"me", "dad", "dads_dad"}

    def test_any_prefers_mother_then_father(self) -> None:
        parents = build_parents_map([_e("dad", "me", "FATHER"), _e("p", "dad", "PARENT")])
        t = ascend_line("me", parents, LineChoice.ANY)
        assert t.nodes == {"me", "dad", "p"}

        t = ascend_line("me", _line_map(), LineChoice.ANY)
        assert t.edges == {"mum->me", "nan->mum", "great_nan->nan"}

    def test_max_depth(self) -> None:
        t = ascend_line("me", _line_map(), LineChoice.MOTHER, max_depth=1)
        assert t.nodes == {"me", "mum"}

    def test_cyclic_data_terminates(self) -> None:
        parents = build_parents_map([_e("a", "b", "MOTHER"), _e("b", "a", "MOTHER")])
        t = ascend_line("a", parents, LineChoice.MOTHER, max_depth=50)
        assert t.nodes == {"a", "b"}


class TestWalkLineage:
    def test_falls_back_to_parent_role(self) -> None:
        t = walk_lineage("me", _line_map(), LineChoice.MOTHER)
        assert t.nodes == {"me", "mum", "nan", "great_nan"}
        assert "great_nan->nan" in t.edges

    def test_any_is_rejected(self) -> None:
        with pytest.raises(ValueError):
            walk_lineage("me", _line_map(), LineChoice.ANY)

    def test_start_without_parents(self) -> None:
        t = walk_lineage("nobody", _line_map(), "FATHER")
        assert t.nodes == {"nobody"}
        assert t.edges == set()


class TestAncestorsSubview:
    def test_both_sides(self) -> None:
        edges = [
            _e("mum", "me", "MOTHER"),
            _e("dad", "me", "FATHER"),
            _e("nan", "mum", "MOTHER"),
            _e("dads_dad", "dad", "FATHER"),
            _e("sis", "me", None),
        ]
        t = ancestors_subview(edges, "me")
        assert t.nodes == {"me", "mum", "nan", "dad", "dads_dad"}
        assert "sis->me" not in t.edges

    def test_one_side(self) -> None:
        edges = [_e("mum", "me", "MOTHER"), _e("dad", "me", "FATHER")]
        assert ancestors_subview(edges, "me", "PATERNAL").nodes == {"me", "dad"}
        assert ancestors_subview(edges, "me", "MATERNAL").nodes == {"me", "mum"}
