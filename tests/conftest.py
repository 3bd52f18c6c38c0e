from __future__ import annotations

import pytest

from whanau.memory import MemoryGraph
from whanau.models import Actor, UserRole


@pytest.fixture()
def whanau() -> MemoryGraph:
    """Four generations, one whāngai child and a couple of in-law branches.

        Mere (F) + Hemi (M)
        ├── Aroha (F) + Wiremu (M)
        │   ├── Tama (M) + Moana (F)
        │   │   └── Ari (M)
        │   ├── Kiri (F) + Tane (M)
        │   │   └── Hine (F)
        │   └── Pita (M)            whāngai, Aroha only
        ├── Rawiri (M) + Huia (F)
        │   ├── Nikau (M) + Ngaio (F)
        │   │   └── Manaia (F)
        │   └── Kahu (M)            Huia only
        ├── Ana (F)
        └── Rangi (OTHER)
    """

    g = MemoryGraph()
    for pid, gender in [
        ("mere", "FEMALE"),
        ("hemi", "MALE"),
        ("aroha", "FEMALE"),
        ("wiremu", "MALE"),
        ("rawiri", "MALE"),
        ("huia", "FEMALE"),
        ("ana", "FEMALE"),
        ("rangi", "OTHER"),
        ("tama", "MALE"),
        ("moana", "FEMALE"),
        ("kiri", "FEMALE"),
        ("tane", "MALE"),
        ("pita", "MALE"),
        ("nikau", "MALE"),
        ("ngaio", "FEMALE"),
        ("kahu", "MALE"),
        ("ari", "MALE"),
        ("hine", "FEMALE"),
        ("manaia", "FEMALE"),
        ("stranger", "UNKNOWN"),
    ]:
        g.add_person(pid, gender)

    for child in ("aroha", "rawiri", "ana", "rangi"):
        g.add_edge("mere", child, "MOTHER")
        g.add_edge("hemi", child, "FATHER")
    for child in ("tama", "kiri"):
        g.add_edge("aroha", child, "MOTHER")
        g.add_edge("wiremu", child, "FATHER")
    g.add_edge("aroha", "pita", "MOTHER", "WHANGAI")
    g.add_edge("rawiri", "nikau", "FATHER")
    g.add_edge("huia", "nikau", "MOTHER")
    g.add_edge("huia", "kahu", "MOTHER")
    g.add_edge("tama", "ari", "FATHER")
    g.add_edge("moana", "ari", "MOTHER")
    g.add_edge("kiri", "hine", "MOTHER")
    g.add_edge("tane", "hine", "FATHER")
    g.add_edge("nikau", "manaia", "FATHER")
    g.add_edge("ngaio", "manaia", "MOTHER")
    return g


@pytest.fixture()
def admin() -> Actor:
    return Actor(user_id="u-admin", role=UserRole.ADMIN)


@pytest.fixture()
def member() -> Actor:
    return Actor(user_id="u-member", role=UserRole.MEMBER)
