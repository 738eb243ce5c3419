from __future__ import annotations

import math
from decimal import Decimal

import pytest

from warasat.services.estate.models import Location, PropertyType, Relation, ValuationSource
from warasat.services.estate.parsing import parse_amount, parse_latitude, parse_longitude
from warasat.services.estate.session import (
    DEFAULT_LOCATION,
    EstateSession,
    EstateValidationError,
    UnknownPartyError,
    UnknownPropertyError,
)


def _family_estate() -> tuple[EstateSession, dict[str, str]]:
    session = EstateSession("Abdul Rahman")
    ids = {
        "husband": session.add_party("Yusuf", Relation.HUSBAND).id,
        "son_a": session.add_party("Bilal", Relation.SON).id,
        "son_b": session.add_party("Hamza", Relation.SON).id,
        "daughter": session.add_party("Maryam", Relation.DAUGHTER).id,
    }
    return session, ids


def test_property_total_and_renegotiation() -> None:
    session = EstateSession()
    item = session.add_property("DHA Plot", PropertyType.PLOT, "2000", rate="1000")
    assert item.total_value == Decimal(2_000_000)
    assert item.original_value == Decimal(2_000_000)

    session.renegotiate(item.id, Decimal(1_800_000))
    assert item.total_value == Decimal(1_800_000)
    assert item.price_per_sq_ft == Decimal(1_000)
    assert item.original_value == Decimal(2_000_000)
    assert item.drift_percentage == Decimal(-10)


def test_area_in_square_yards_is_derived() -> None:
    session = EstateSession()
    item = session.add_property("House", "Residential", 900, rate=0)
    assert item.area_sq_yards == Decimal(100)
    assert item.type is PropertyType.RESIDENTIAL


def test_unparsable_numbers_become_zero() -> None:
    session = EstateSession()
    item = session.add_property("Shop", PropertyType.COMMERCIAL, "abc", rate="n/a")
    assert item.area_sq_ft == 0
    assert item.total_value == 0
    assert item.drift_percentage == 0


def test_missing_coordinates_fall_back_to_default_location() -> None:
    session = EstateSession()
    item = session.add_property("Farm", PropertyType.AGRICULTURAL, 10_000, latitude="", longitude=None)
    assert item.location.lat == DEFAULT_LOCATION.lat
    assert item.location.lng == DEFAULT_LOCATION.lng

    custom = EstateSession(default_location=Location(lat=24.86, lng=67.0))
    item = custom.add_property("Flat", PropertyType.RESIDENTIAL, 1_000, latitude="33.6", longitude="73.0")
    assert (item.location.lat, item.location.lng) == (33.6, 73.0)


def test_shares_recomputed_on_membership_change() -> None:
    session, ids = _family_estate()
    assert session.get_party(ids["husband"]).percentage == pytest.approx(25)
    assert session.get_party(ids["son_a"]).percentage == pytest.approx(30)

    session.remove_party(ids["son_b"])
    # 3/4 over 3 units
    assert session.get_party(ids["son_a"]).percentage == pytest.approx(50)
    assert session.get_party(ids["daughter"]).percentage == pytest.approx(25)
    assert session.allocation.is_complete


def test_removing_party_clears_its_assignments() -> None:
    session, ids = _family_estate()
    item = session.add_property("House", PropertyType.RESIDENTIAL, 1_000, rate=1_000)
    session.assign(item.id, ids["daughter"])
    session.remove_party(ids["daughter"])
    assert item.assigned_to is None


def test_assign_validates_ids() -> None:
    session, ids = _family_estate()
    item = session.add_property("House", PropertyType.RESIDENTIAL, 1_000, rate=1_000)
    with pytest.raises(UnknownPartyError):
        session.assign(item.id, "missing")
    with pytest.raises(UnknownPropertyError):
        session.assign("missing", ids["husband"])
    session.assign(item.id, ids["husband"])
    session.assign(item.id, None)
    assert item.assigned_to is None


def test_invalid_input_rejected() -> None:
    session = EstateSession()
    with pytest.raises(EstateValidationError):
        session.add_party("   ", Relation.SON)
    with pytest.raises(EstateValidationError):
        session.add_party("Ali", "cousin")
    item = session.add_property("House", PropertyType.RESIDENTIAL, 1_000, rate=1_000)
    with pytest.raises(EstateValidationError):
        session.renegotiate(item.id, -5)
    with pytest.raises(UnknownPartyError):
        session.remove_party("missing")


def test_settlement_plan_for_uneven_assignments() -> None:
    session, ids = _family_estate()
    house = session.add_property("House", PropertyType.RESIDENTIAL, 1_000, rate=1_000)
    shop = session.add_property("Shop", PropertyType.COMMERCIAL, 500, rate=2_000)
    session.assign(house.id, ids["husband"])
    session.assign(shop.id, ids["son_a"])
    assert session.total_estate_value == Decimal(2_000_000)

    balances = {row.id: row.balance for row in session.financials()}
    assert balances[ids["husband"]] == Decimal(-500_000)
    assert balances[ids["son_a"]] == Decimal(-400_000)
    assert balances[ids["son_b"]] == Decimal(600_000)
    assert balances[ids["daughter"]] == Decimal(300_000)

    plan = [(tx.from_name, tx.to_name, tx.amount) for tx in session.settlements()]
    assert plan == [
        ("Yusuf", "Hamza", Decimal(500_000)),
        ("Bilal", "Hamza", Decimal(100_000)),
        ("Bilal", "Maryam", Decimal(300_000)),
    ]


def test_snapshot_round_trip_keeps_negotiated_values() -> None:
    session, ids = _family_estate()
    item = session.add_property(
        "House",
        PropertyType.RESIDENTIAL,
        1_000,
        rate=1_000,
        valuation_source=ValuationSource.ESTIMATED,
        analysis="Prime location",
    )
    session.assign(item.id, ids["daughter"])
    session.renegotiate(item.id, 900_000)

    restored = EstateSession.from_snapshot(session.snapshot())
    restored_item = restored.get_property(item.id)
    assert restored.deceased_name == "Abdul Rahman"
    assert restored_item.total_value == Decimal(900_000)
    assert restored_item.original_value == Decimal(1_000_000)
    assert restored_item.assigned_to == ids["daughter"]
    assert restored_item.valuation_source is ValuationSource.ESTIMATED
    assert [p.share for p in restored.parties] == [p.share for p in session.parties]


def test_snapshot_with_unknown_assignee_is_rejected() -> None:
    data = {
        "parties": [{"id": "a", "name": "Ali", "relation": "son"}],
        "properties": [{"name": "House", "type": "plot", "area_sq_ft": "10", "assigned_to": "b"}],
    }
    with pytest.raises(UnknownPartyError):
        EstateSession.from_snapshot(data)


def test_parse_amount_rules() -> None:
    assert parse_amount("1,500,000") == Decimal(1_500_000)
    assert parse_amount("12,5") == Decimal("12.5")
    assert parse_amount(" 2000 sq ft") == Decimal(2_000)
    assert parse_amount("abc") == 0
    assert parse_amount("-5") == 0
    assert parse_amount(None) == 0
    assert parse_amount(math.nan) == 0
    assert parse_amount(Decimal("-1")) == 0
    assert parse_amount("Rs. 1,500") == Decimal(1_500)
    assert parse_amount("PKR 12,000") == Decimal(12_000)
    assert parse_amount("1e5") == Decimal(100_000)
    assert parse_amount("5.000.000") == 0
    assert parse_amount("12.5.3") == 0
    assert parse_amount("1,50,000") == Decimal(150_000)


def test_parse_coordinates() -> None:
    assert parse_latitude("31.5204") == pytest.approx(31.5204)
    assert parse_latitude("95") is None
    assert parse_longitude("-181") is None
    assert parse_longitude("abc") is None


def test_snapshot_with_repeated_inheritor_id_is_rejected() -> None:
    data = {
        "parties": [
            {"id": "a", "name": "Ali", "relation": "son"},
            {"id": "a", "name": "Sara", "relation": "daughter"},
        ],
    }
    with pytest.raises(EstateValidationError):
        EstateSession.from_snapshot(data)
