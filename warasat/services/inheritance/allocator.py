from __future__ import annotations

from dataclasses import dataclass, replace
from fractions import Fraction
from typing import Callable, Optional, Sequence

from warasat.services.estate.models import Party, Relation

ZERO = Fraction(0, 1)
ONE = Fraction(1, 1)

SON_UNITS = 2
DAUGHTER_UNITS = 1


@dataclass(frozen=True, slots=True)
class FixedShareRule:
    """
    A fixed (Quranic) share for the first inheritor of ``relation``.

    The rule is skipped when any relation in ``excluded_by`` is present.
    """

    relation: Relation
    with_descendants: Fraction
    without_descendants: Fraction
    excluded_by: tuple[Relation, ...] = ()

    def share(self, has_descendants: bool) -> Fraction:
        return self.with_descendants if has_descendants else self.without_descendants


# Evaluated in order; each share is subtracted from the remaining pool.
FIXED_SHARE_RULES: tuple[FixedShareRule, ...] = (
    FixedShareRule(Relation.HUSBAND, Fraction(1, 4), Fraction(1, 2)),
    # One wife record takes the whole wife-class share; co-wives are not split.
    FixedShareRule(Relation.WIFE, Fraction(1, 8), Fraction(1, 4), excluded_by=(Relation.HUSBAND,)),
    FixedShareRule(Relation.FATHER, Fraction(1, 6), Fraction(1, 6)),
    FixedShareRule(Relation.MOTHER, Fraction(1, 6), Fraction(1, 3)),
)


@dataclass(slots=True)
class _Family:
    parties: list[Party]
    first_index: dict[Relation, int]
    sons: list[int]
    daughters: list[int]

    @classmethod
    def classify(cls, parties: Sequence[Party]) -> "_Family":
        reset = [replace(party, share=ZERO) for party in parties]
        first_index: dict[Relation, int] = {}
        sons: list[int] = []
        daughters: list[int] = []
        for idx, party in enumerate(reset):
            first_index.setdefault(party.relation, idx)
            if party.relation is Relation.SON:
                sons.append(idx)
            elif party.relation is Relation.DAUGHTER:
                daughters.append(idx)
        return cls(parties=reset, first_index=first_index, sons=sons, daughters=daughters)

    @property
    def has_descendants(self) -> bool:
        return bool(self.sons or self.daughters)

    def first(self, relation: Relation) -> Optional[int]:
        return self.first_index.get(relation)

    def add(self, idx: int, amount: Fraction) -> None:
        party = self.parties[idx]
        self.parties[idx] = replace(party, share=party.share + amount)


# A residue rule distributes ``remaining`` and returns True, or returns False
# when it does not apply to the family.
ResidueRule = Callable[[_Family, Fraction], bool]


def _descendants_residue(family: _Family, remaining: Fraction) -> bool:
    units = SON_UNITS * len(family.sons) + DAUGHTER_UNITS * len(family.daughters)
    if units == 0:
        return False
    unit_value = remaining / units
    for idx in family.sons:
        family.add(idx, unit_value * SON_UNITS)
    for idx in family.daughters:
        family.add(idx, unit_value * DAUGHTER_UNITS)
    return True


def _father_residue(family: _Family, remaining: Fraction) -> bool:
    idx = family.first(Relation.FATHER)
    if idx is None:
        return False
    family.add(idx, remaining)
    return True


RESIDUE_RULES: tuple[ResidueRule, ...] = (
    _descendants_residue,
    _father_residue,
)


@dataclass(frozen=True, slots=True)
class Allocation:
    parties: list[Party]
    allocated: Fraction
    unallocated: Fraction

    @property
    def is_complete(self) -> bool:
        return self.unallocated == 0


def allocate_with_summary(parties: Sequence[Party]) -> Allocation:
    family = _Family.classify(parties)
    has_descendants = family.has_descendants
    remaining = ONE

    for rule in FIXED_SHARE_RULES:
        if any(family.first(blocker) is not None for blocker in rule.excluded_by):
            continue
        idx = family.first(rule.relation)
        if idx is None:
            continue
        share = rule.share(has_descendants)
        family.add(idx, share)
        remaining -= share

    if remaining > 0:
        for residue_rule in RESIDUE_RULES:
            if residue_rule(family, remaining):
                remaining = ZERO
                break

    allocated = sum((party.share for party in family.parties), ZERO)
    # ``other`` relations and duplicate spouse/parent records keep a zero share.
    unallocated = ONE - allocated if family.parties else ZERO
    return Allocation(parties=family.parties, allocated=allocated, unallocated=unallocated)


def allocate(parties: Sequence[Party]) -> list[Party]:
    """Same parties, same order, with ``share`` recomputed."""
    return allocate_with_summary(parties).parties
