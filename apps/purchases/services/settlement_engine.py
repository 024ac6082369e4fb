"""
Settlement Engine
=================

Pure computation over a single purchase: derives each member's balance
from a split configuration and reduces the balances to pairwise transfers.

Nothing here touches the database or shared state, so it is safe to call
concurrently from any number of request handlers.

Example:
    Equal split of 125.50 among four members, A fronted the money::

        from decimal import Decimal
        from apps.purchases.services import (
            EqualSplit, PurchaseSnapshot, compute_settlements,
        )

        purchase = PurchaseSnapshot(
            id='p1', total_amount=Decimal('125.50'), purchased_by='A',
        )
        result = compute_settlements(purchase, EqualSplit(), ['A', 'B', 'C', 'D'])

        # shares: A 31.38, B 31.38, C 31.37, D 31.37
        # settlements: B -> A 31.38, C -> A 31.37, D -> A 31.37
"""

from decimal import Decimal
from typing import Dict, List, Mapping, Sequence

from .split_calculation import minor_unit, owed_shares, validate_split
from .split_types import (
    MemberId,
    PurchaseSnapshot,
    QuantitySplit,
    Settlement,
    SettlementResult,
    Split,
)


def compute_balances(
    purchase: PurchaseSnapshot,
    shares: Mapping[MemberId, Decimal],
    member_ids: Sequence[MemberId],
) -> Dict[MemberId, Decimal]:
    """
    Net position per member (negative = owes, positive = is owed).

    Every member's balance is reduced by their own share. The purchaser is
    then credited once with the full total for fronting the money.
    """
    balances = {m: Decimal('0') for m in member_ids}

    for member_id in member_ids:
        balances[member_id] -= shares.get(member_id, Decimal('0'))

    balances[purchase.purchased_by] += purchase.total_amount

    return balances


def net_balances(
    balances: Mapping[MemberId, Decimal],
    member_ids: Sequence[MemberId],
) -> List[Settlement]:
    """
    Reduce balances to pairwise transfers with a greedy pass.

    Debtors are processed in ``member_ids`` order; each is matched against
    creditors, also in ``member_ids`` order, transferring
    ``min(remaining debt, remaining credit)`` per match.

    The result is deterministic for a fixed member order but does not
    necessarily use the fewest possible transfers.
    """
    debtors = [(m, -balances[m]) for m in member_ids if balances[m] < 0]
    credits = {m: balances[m] for m in member_ids if balances[m] > 0}

    settlements = []
    for debtor, debt in debtors:
        for creditor in credits:
            if debt <= 0:
                break
            available = credits[creditor]
            if available <= 0:
                continue

            amount = min(debt, available)
            settlements.append(Settlement(
                from_member_id=debtor,
                to_member_id=creditor,
                amount=amount,
            ))
            debt -= amount
            credits[creditor] -= amount

    return settlements


def compute_settlements(
    purchase: PurchaseSnapshot,
    split: Split,
    member_ids: Sequence[MemberId],
    *,
    decimal_places: int = 2,
) -> SettlementResult:
    """
    Compute balances and settlement transfers for one purchase.

    Args:
        purchase: The purchase being split
        split: EqualSplit, QuantitySplit or CustomSplit
        member_ids: Group members in a stable order; the order decides
            remainder distribution and settlement order
        decimal_places: Decimal places of the currency's minor unit

    Returns:
        SettlementResult. When ``validation_errors`` is non-empty, no
        balances and no settlements are included.

    Raises:
        InvalidSplitError: If ``split`` is not a supported configuration
    """
    member_ids = list(member_ids)
    if not member_ids:
        return SettlementResult()

    quantum = minor_unit(decimal_places)

    errors = validate_split(purchase, split, member_ids, quantum)
    if errors:
        return SettlementResult(validation_errors=errors)

    shares = owed_shares(purchase, split, member_ids, quantum)
    balances = compute_balances(purchase, shares, member_ids)

    unallocated = Decimal('0')
    if isinstance(split, QuantitySplit):
        unallocated = purchase.total_amount - purchase.items_total

    return SettlementResult(
        balances=balances,
        settlements=net_balances(balances, member_ids),
        shares=shares,
        unallocated_amount=unallocated,
    )
