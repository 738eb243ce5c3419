from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from fractions import Fraction
from typing import Optional

SQ_FT_PER_SQ_YARD = 9


class Relation(str, Enum):
    HUSBAND = "husband"
    WIFE = "wife"
    SON = "son"
    DAUGHTER = "daughter"
    FATHER = "father"
    MOTHER = "mother"
    OTHER = "other"


class PropertyType(str, Enum):
    RESIDENTIAL = "residential"
    COMMERCIAL = "commercial"
    AGRICULTURAL = "agricultural"
    PLOT = "plot"


class ValuationSource(str, Enum):
    MANUAL = "manual"
    ESTIMATED = "estimated"


def new_id() -> str:
    return uuid.uuid4().hex


@dataclass(frozen=True, slots=True)
class Party:
    """An inheritor. ``share`` is the exact fraction of the estate (0..1)."""

    name: str
    relation: Relation
    share: Fraction = Fraction(0, 1)
    id: str = field(default_factory=new_id)

    @property
    def percentage(self) -> float:
        return float(self.share * 100)


@dataclass(frozen=True, slots=True)
class Location:
    lat: float
    lng: float
    address: Optional[str] = None


@dataclass(slots=True)
class EstateProperty:
    """
    A valued item of the estate.

    ``total_value`` starts as ``price_per_sq_ft * area_sq_ft`` and may later be
    renegotiated independently of the rate. ``original_value`` never changes.
    """

    name: str
    type: PropertyType
    area_sq_ft: Decimal
    location: Location
    valuation_source: ValuationSource
    price_per_sq_ft: Decimal
    total_value: Decimal
    original_value: Decimal
    assigned_to: Optional[str] = None
    description: Optional[str] = None
    analysis: str = ""
    id: str = field(default_factory=new_id)

    @classmethod
    def create(
        cls,
        *,
        name: str,
        property_type: PropertyType,
        area_sq_ft: Decimal,
        location: Location,
        price_per_sq_ft: Decimal,
        valuation_source: ValuationSource = ValuationSource.MANUAL,
        description: Optional[str] = None,
        analysis: str = "",
    ) -> "EstateProperty":
        total = price_per_sq_ft * area_sq_ft
        return cls(
            name=name,
            type=property_type,
            area_sq_ft=area_sq_ft,
            location=location,
            valuation_source=valuation_source,
            price_per_sq_ft=price_per_sq_ft,
            total_value=total,
            original_value=total,
            description=description,
            analysis=analysis,
        )

    @property
    def area_sq_yards(self) -> Decimal:
        return self.area_sq_ft / SQ_FT_PER_SQ_YARD

    @property
    def drift_percentage(self) -> Decimal:
        if not self.original_value:
            return Decimal(0)
        return (self.total_value - self.original_value) / self.original_value * 100


@dataclass(frozen=True, slots=True)
class PartyFinancials:
    id: str
    name: str
    target_value: Decimal
    assigned_value: Decimal

    @property
    def balance(self) -> Decimal:
        # > 0: under-allocated, receives cash. < 0: over-allocated, pays cash.
        return self.target_value - self.assigned_value


@dataclass(frozen=True, slots=True)
class SettlementTransaction:
    from_id: str
    from_name: str
    to_id: str
    to_name: str
    amount: Decimal
