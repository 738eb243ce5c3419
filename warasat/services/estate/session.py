from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any, Optional

from warasat.services.estate.models import (
    EstateProperty,
    Location,
    Party,
    PartyFinancials,
    PropertyType,
    Relation,
    SettlementTransaction,
    ValuationSource,
    new_id,
)
from warasat.services.estate.parsing import NumberLike, parse_amount, parse_latitude, parse_longitude
from warasat.services.inheritance.allocator import Allocation, allocate_with_summary
from warasat.services.settlement.matcher import DEFAULT_THRESHOLD, build_financials, settle

logger = logging.getLogger(__name__)

DEFAULT_LOCATION = Location(lat=31.5204, lng=74.3587)
MAX_NAME_LENGTH = 120


class EstateError(Exception):
    pass


class EstateValidationError(EstateError, ValueError):
    pass


class UnknownPartyError(EstateError, KeyError):
    def __init__(self, party_id: str) -> None:
        super().__init__(party_id)
        self.party_id = party_id

    def __str__(self) -> str:
        return f"Unknown inheritor: {self.party_id}"


class UnknownPropertyError(EstateError, KeyError):
    def __init__(self, property_id: str) -> None:
        super().__init__(property_id)
        self.property_id = property_id

    def __str__(self) -> str:
        return f"Unknown property: {self.property_id}"


def _normalize_choice(value: Any) -> Any:
    if isinstance(value, str):
        return value.strip().lower()
    return value


def _clean_name(name: Optional[str]) -> str:
    text = " ".join((name or "").split())
    if not text:
        raise EstateValidationError("Name must not be empty")
    return text[:MAX_NAME_LENGTH]


class EstateSession:
    """
    Holds the inheritors and properties of one estate.

    Every mutation recomputes what depends on it explicitly: membership
    changes re-run the share allocation, everything else is derived on read.
    """

    def __init__(
        self,
        deceased_name: str = "",
        *,
        settlement_threshold: Decimal = DEFAULT_THRESHOLD,
        default_location: Location = DEFAULT_LOCATION,
        session_id: Optional[str] = None,
    ) -> None:
        self.id = session_id or new_id()
        self.deceased_name = (deceased_name or "").strip()
        self.settlement_threshold = settlement_threshold
        self.default_location = default_location
        self._parties: list[Party] = []
        self._properties: list[EstateProperty] = []
        self._allocation = allocate_with_summary([])

    # Inheritors

    @property
    def parties(self) -> list[Party]:
        return list(self._parties)

    @property
    def allocation(self) -> Allocation:
        return self._allocation

    def get_party(self, party_id: str) -> Party:
        for party in self._parties:
            if party.id == party_id:
                return party
        raise UnknownPartyError(party_id)

    def add_party(self, name: str, relation: Relation | str) -> Party:
        try:
            relation = Relation(_normalize_choice(relation))
        except ValueError as exc:
            raise EstateValidationError(f"Unknown relation: {relation}") from exc
        party = Party(name=_clean_name(name), relation=relation)
        self._parties.append(party)
        self._reallocate()
        logger.info("Estate %s: added inheritor %s (%s)", self.id, party.id, relation.value)
        return self.get_party(party.id)

    def remove_party(self, party_id: str) -> None:
        self.get_party(party_id)
        self._parties = [party for party in self._parties if party.id != party_id]
        for item in self._properties:
            if item.assigned_to == party_id:
                item.assigned_to = None
        self._reallocate()
        logger.info("Estate %s: removed inheritor %s", self.id, party_id)

    def _reallocate(self) -> None:
        self._allocation = allocate_with_summary(self._parties)
        self._parties = list(self._allocation.parties)
        if self._parties and not self._allocation.is_complete:
            logger.warning(
                "Estate %s: shares cover %.2f%% of the estate, %.2f%% left unallocated",
                self.id,
                float(self._allocation.allocated * 100),
                float(self._allocation.unallocated * 100),
            )

    # Properties

    @property
    def properties(self) -> list[EstateProperty]:
        return list(self._properties)

    def get_property(self, property_id: str) -> EstateProperty:
        for item in self._properties:
            if item.id == property_id:
                return item
        raise UnknownPropertyError(property_id)

    def add_property(
        self,
        name: str,
        property_type: PropertyType | str,
        area: NumberLike,
        *,
        latitude: NumberLike = None,
        longitude: NumberLike = None,
        address: Optional[str] = None,
        rate: NumberLike = None,
        valuation_source: ValuationSource | str = ValuationSource.MANUAL,
        analysis: str = "",
        description: Optional[str] = None,
    ) -> EstateProperty:
        try:
            property_type = PropertyType(_normalize_choice(property_type))
            valuation_source = ValuationSource(_normalize_choice(valuation_source))
        except ValueError as exc:
            raise EstateValidationError(str(exc)) from exc
        lat = parse_latitude(latitude)
        lng = parse_longitude(longitude)
        location = Location(
            lat=self.default_location.lat if lat is None else lat,
            lng=self.default_location.lng if lng is None else lng,
            address=(address or "").strip() or None,
        )
        item = EstateProperty.create(
            name=_clean_name(name),
            property_type=property_type,
            area_sq_ft=parse_amount(area),
            location=location,
            price_per_sq_ft=parse_amount(rate),
            valuation_source=valuation_source,
            description=(description or "").strip() or None,
            analysis=analysis or "",
        )
        self._properties.append(item)
        logger.info(
            "Estate %s: added property %s (%s sq ft at %s, %s)",
            self.id,
            item.id,
            item.area_sq_ft,
            item.price_per_sq_ft,
            item.valuation_source.value,
        )
        return item

    def remove_property(self, property_id: str) -> None:
        self.get_property(property_id)
        self._properties = [item for item in self._properties if item.id != property_id]
        logger.info("Estate %s: removed property %s", self.id, property_id)

    def assign(self, property_id: str, party_id: Optional[str]) -> EstateProperty:
        item = self.get_property(property_id)
        if party_id is not None:
            self.get_party(party_id)
        item.assigned_to = party_id
        return item

    def renegotiate(self, property_id: str, total_value: NumberLike) -> EstateProperty:
        """Set the agreed deal price. The rate and the original value stay put."""
        item = self.get_property(property_id)
        if isinstance(total_value, str) and total_value.strip().startswith("-"):
            raise EstateValidationError("Total value must not be negative")
        if isinstance(total_value, (int, float, Decimal)) and not isinstance(total_value, bool):
            if total_value < 0:
                raise EstateValidationError("Total value must not be negative")
        item.total_value = parse_amount(total_value)
        logger.info(
            "Estate %s: property %s renegotiated to %s (%.2f%% vs original)",
            self.id,
            property_id,
            item.total_value,
            float(item.drift_percentage),
        )
        return item

    # Derived values

    @property
    def total_estate_value(self) -> Decimal:
        return sum((item.total_value for item in self._properties), Decimal(0))

    def financials(self) -> list[PartyFinancials]:
        return build_financials(self._parties, self._properties)

    def settlements(self) -> list[SettlementTransaction]:
        return settle(self.financials(), self.settlement_threshold)

    # Serialization

    def snapshot(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "deceased_name": self.deceased_name,
            "parties": [
                {
                    "id": party.id,
                    "name": party.name,
                    "relation": party.relation.value,
                    "share": f"{party.share.numerator}/{party.share.denominator}",
                    "percentage": party.percentage,
                }
                for party in self._parties
            ],
            "properties": [
                {
                    "id": item.id,
                    "name": item.name,
                    "type": item.type.value,
                    "area_sq_ft": str(item.area_sq_ft),
                    "area_sq_yards": str(item.area_sq_yards),
                    "location": {
                        "lat": item.location.lat,
                        "lng": item.location.lng,
                        "address": item.location.address,
                    },
                    "valuation_source": item.valuation_source.value,
                    "price_per_sq_ft": str(item.price_per_sq_ft),
                    "total_value": str(item.total_value),
                    "original_value": str(item.original_value),
                    "assigned_to": item.assigned_to,
                    "description": item.description,
                    "analysis": item.analysis,
                }
                for item in self._properties
            ],
        }

    @classmethod
    def from_snapshot(
        cls,
        data: dict[str, Any],
        *,
        settlement_threshold: Decimal = DEFAULT_THRESHOLD,
        default_location: Location = DEFAULT_LOCATION,
    ) -> "EstateSession":
        """
        Rebuild a session from :meth:`snapshot` output.

        Shares in the snapshot are ignored and recomputed; ``total_value`` and
        ``original_value`` are restored as stored so renegotiations survive.
        """
        session = cls(
            data.get("deceased_name") or "",
            settlement_threshold=settlement_threshold,
            default_location=default_location,
            session_id=data.get("id") or None,
        )
        for raw in data.get("parties") or []:
            try:
                relation = Relation(_normalize_choice(raw.get("relation") or Relation.OTHER))
            except ValueError as exc:
                raise EstateValidationError(f"Unknown relation: {raw.get('relation')}") from exc
            party = Party(
                name=_clean_name(raw.get("name")),
                relation=relation,
                id=str(raw.get("id") or new_id()),
            )
            if any(existing.id == party.id for existing in session._parties):
                raise EstateValidationError(f"Duplicate inheritor id: {party.id}")
            session._parties.append(party)
        session._reallocate()

        party_ids = {party.id for party in session._parties}
        for raw in data.get("properties") or []:
            location = raw.get("location") or {}
            item = session.add_property(
                raw.get("name"),
                raw.get("type") or PropertyType.RESIDENTIAL,
                raw.get("area_sq_ft"),
                latitude=location.get("lat"),
                longitude=location.get("lng"),
                address=location.get("address"),
                rate=raw.get("price_per_sq_ft"),
                valuation_source=raw.get("valuation_source") or ValuationSource.MANUAL,
                analysis=raw.get("analysis") or "",
                description=raw.get("description"),
            )
            if raw.get("id"):
                item.id = str(raw["id"])
            if raw.get("original_value") is not None:
                item.original_value = parse_amount(raw["original_value"])
            if raw.get("total_value") is not None:
                item.total_value = parse_amount(raw["total_value"])
            assigned_to = raw.get("assigned_to")
            if assigned_to is not None and assigned_to not in party_ids:
                raise UnknownPartyError(str(assigned_to))
            item.assigned_to = assigned_to
        return session


