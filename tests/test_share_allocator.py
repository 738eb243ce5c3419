from __future__ import annotations

from fractions import Fraction
from itertools import product

import pytest

from warasat.services.estate.models import Party, Relation
from warasat.services.inheritance.allocator import (
    FIXED_SHARE_RULES,
    allocate,
    allocate_with_summary,
)


def _family(*relations: Relation) -> list[Party]:
    return [Party(name=f"{relation.value}-{idx}", relation=relation) for idx, relation in enumerate(relations)]


def test_husband_with_two_sons_and_daughter() -> None:
    parties = allocate(_family(Relation.HUSBAND, Relation.SON, Relation.SON, Relation.DAUGHTER))
    husband, son_a, son_b, daughter = parties
    assert husband.share == Fraction(1, 4)
    assert son_a.share == son_b.share == Fraction(3, 10)
    assert daughter.share == Fraction(3, 20)
    assert husband.percentage == pytest.approx(25)
    assert son_a.percentage == pytest.approx(30)
    assert daughter.percentage == pytest.approx(15)
    assert sum(party.percentage for party in parties) == pytest.approx(100)


def test_wife_with_children_takes_one_eighth() -> None:
    parties = allocate(_family(Relation.WIFE, Relation.SON, Relation.SON, Relation.DAUGHTER))
    assert parties[0].share == Fraction(1, 8)
    # 7/8 split into 5 units
    assert parties[1].share == Fraction(7, 20)
    assert parties[3].share == Fraction(7, 40)


def test_wife_alone_gets_quarter_and_rest_is_unallocated() -> None:
    summary = allocate_with_summary(_family(Relation.WIFE))
    assert summary.parties[0].percentage == pytest.approx(25)
    assert summary.unallocated == Fraction(3, 4)
    assert summary.is_complete is False


def test_father_takes_residue_without_descendants() -> None:
    wife, father = allocate(_family(Relation.WIFE, Relation.FATHER))
    assert wife.percentage == pytest.approx(25)
    assert father.share == Fraction(3, 4)
    assert father.percentage == pytest.approx(75)


def test_parents_with_children() -> None:
    father, mother, son, daughter = allocate(
        _family(Relation.FATHER, Relation.MOTHER, Relation.SON, Relation.DAUGHTER)
    )
    assert father.share == Fraction(1, 6)
    assert mother.share == Fraction(1, 6)
    assert son.share == Fraction(4, 9)
    assert daughter.share == Fraction(2, 9)


def test_mother_without_descendants_gets_third() -> None:
    summary = allocate_with_summary(_family(Relation.MOTHER))
    assert summary.parties[0].share == Fraction(1, 3)
    assert summary.unallocated == Fraction(2, 3)


def test_husband_wins_over_wife_record() -> None:
    husband, wife = allocate(_family(Relation.HUSBAND, Relation.WIFE))
    assert husband.share == Fraction(1, 2)
    assert wife.share == 0


def test_second_wife_record_is_not_split() -> None:
    first, second, son = allocate(_family(Relation.WIFE, Relation.WIFE, Relation.SON))
    assert first.share == Fraction(1, 8)
    assert second.share == 0
    assert son.share == Fraction(7, 8)


def test_other_relation_keeps_zero_share() -> None:
    summary = allocate_with_summary(
        [Party(name="Cousin", relation=Relation.OTHER, share=Fraction(1, 2))]
    )
    assert summary.parties[0].share == 0
    assert summary.unallocated == 1


def test_empty_list_produces_empty_allocation() -> None:
    summary = allocate_with_summary([])
    assert summary.parties == []
    assert summary.is_complete is True
    assert allocate([]) == []


def test_allocation_keeps_order_and_identity_fields() -> None:
    parties = _family(Relation.DAUGHTER, Relation.OTHER, Relation.HUSBAND)
    result = allocate(parties)
    assert [party.id for party in result] == [party.id for party in parties]
    assert [party.name for party in result] == [party.name for party in parties]
    assert all(party.share == 0 for party in parties)


@pytest.mark.parametrize("spouse", [Relation.HUSBAND, Relation.WIFE])
def test_spouse_and_descendants_always_cover_whole_estate(spouse: Relation) -> None:
    for sons, daughters in product(range(4), range(4)):
        if sons + daughters == 0:
            continue
        relations = [spouse] + [Relation.SON] * sons + [Relation.DAUGHTER] * daughters
        summary = allocate_with_summary(_family(*relations))
        assert summary.allocated == 1
        assert sum(party.percentage for party in summary.parties) == pytest.approx(100)


def test_fixed_share_rules_are_ordered_spouse_first() -> None:
    relations = [rule.relation for rule in FIXED_SHARE_RULES]
    assert relations == [Relation.HUSBAND, Relation.WIFE, Relation.FATHER, Relation.MOTHER]
