from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from fractions import Fraction
from typing import Iterable, Sequence

from warasat.services.estate.models import (
    EstateProperty,
    Party,
    PartyFinancials,
    SettlementTransaction,
)

DEFAULT_THRESHOLD = Decimal("100")


@dataclass(slots=True)
class _Position:
    id: str
    name: str
    amount: Decimal


def share_of(amount: Decimal, share: Fraction) -> Decimal:
    return amount * Decimal(share.numerator) / Decimal(share.denominator)


def build_financials(
    parties: Sequence[Party],
    properties: Iterable[EstateProperty],
) -> list[PartyFinancials]:
    properties = list(properties)
    total_estate = sum((item.total_value for item in properties), Decimal(0))
    assigned: dict[str, Decimal] = {}
    for item in properties:
        if item.assigned_to is not None:
            assigned[item.assigned_to] = assigned.get(item.assigned_to, Decimal(0)) + item.total_value
    return [
        PartyFinancials(
            id=party.id,
            name=party.name,
            target_value=share_of(total_estate, party.share),
            assigned_value=assigned.get(party.id, Decimal(0)),
        )
        for party in parties
    ]


def settle(
    financials: Sequence[PartyFinancials],
    threshold: Decimal = DEFAULT_THRESHOLD,
) -> list[SettlementTransaction]:
    """
    Greedy payer/receiver matching.

    Balances inside ``[-threshold, threshold]`` count as settled. Both queues
    are worked largest-first (stable sort, so ties keep input order); every
    step moves ``min(payer, receiver)`` and advances whichever side dropped
    below the threshold. This keeps the plan short in practice but is not
    guaranteed to be the minimum number of transfers.
    """
    payers = [
        _Position(item.id, item.name, -item.balance)
        for item in financials
        if item.balance < -threshold
    ]
    receivers = [
        _Position(item.id, item.name, item.balance)
        for item in financials
        if item.balance > threshold
    ]
    payers.sort(key=lambda position: position.amount, reverse=True)
    receivers.sort(key=lambda position: position.amount, reverse=True)

    transactions: list[SettlementTransaction] = []
    i = 0
    j = 0
    while i < len(payers) and j < len(receivers):
        payer = payers[i]
        receiver = receivers[j]
        amount = min(payer.amount, receiver.amount)
        if amount > 0:
            transactions.append(
                SettlementTransaction(
                    from_id=payer.id,
                    from_name=payer.name,
                    to_id=receiver.id,
                    to_name=receiver.name,
                    amount=amount,
                )
            )
            payer.amount -= amount
            receiver.amount -= amount
        if payer.amount < threshold or not payer.amount:
            i += 1
        if receiver.amount < threshold or not receiver.amount:
            j += 1
    return transactions
