"""
Split calculation.

Turns a purchase and a split configuration into each member's owed share,
in the currency's minor unit, and reports field-level validation errors
when the configuration does not reconcile with the purchase.

Rounding policy:
    Exact shares are expressed in minor units (e.g. cents, haléře), floored,
    and the leftover units are handed out one each by largest remainder.
    Ties go to the member listed first. For an equal split this means the
    first K members pay one extra minor unit, exactly like the classic
    "distribute the remainder" rule:

        >>> allocate_minor_units(
        ...     {'a': Decimal(1000) / 3, 'b': Decimal(1000) / 3, 'c': Decimal(1000) / 3},
        ...     ['a', 'b', 'c'],
        ...     Decimal('1'),
        ... )
        {'a': Decimal('334'), 'b': Decimal('333'), 'c': Decimal('333')}

    The rounded shares always sum to the rounded sum of the exact shares.
"""

from decimal import Decimal, ROUND_FLOOR, ROUND_HALF_UP
from typing import Dict, List, Mapping, Sequence

from .exceptions import InvalidSplitError
from .split_types import (
    CustomSplit,
    EqualSplit,
    MemberId,
    PurchaseSnapshot,
    QuantitySplit,
    Split,
)


# Reconciliation tolerance for quantities, percentages and amounts
TOLERANCE = Decimal('0.01')
HUNDRED = Decimal('100')


def minor_unit(decimal_places: int) -> Decimal:
    """Smallest currency unit for the given number of decimal places."""
    return Decimal(1).scaleb(-decimal_places)


def allocate_minor_units(
    exact_shares: Mapping[MemberId, Decimal],
    member_ids: Sequence[MemberId],
    quantum: Decimal,
) -> Dict[MemberId, Decimal]:
    """
    Round exact shares to ``quantum`` without losing or creating money.

    Args:
        exact_shares: member id -> exact (unrounded) share
        member_ids: stable member order, used to break remainder ties
        quantum: minor unit, e.g. ``Decimal('0.01')``

    Returns:
        member id -> share rounded to ``quantum``
    """
    units = {m: exact_shares.get(m, Decimal('0')) / quantum for m in member_ids}
    floors = {m: units[m].to_integral_value(rounding=ROUND_FLOOR) for m in member_ids}

    target = sum(units.values(), Decimal('0')).to_integral_value(rounding=ROUND_HALF_UP)
    leftover = int(target - sum(floors.values(), Decimal('0')))

    # sorted() is stable, so equal remainders keep member order
    by_remainder = sorted(member_ids, key=lambda m: floors[m] - units[m])
    for member_id in by_remainder[:leftover]:
        floors[member_id] += 1

    return {m: (floors[m] * quantum).quantize(quantum) for m in member_ids}


# =============================================================================
# Validation
# =============================================================================

def validate_split(
    purchase: PurchaseSnapshot,
    split: Split,
    member_ids: Sequence[MemberId],
    quantum: Decimal,
) -> Dict[str, str]:
    """
    Check that a split configuration reconciles with the purchase.

    Returns a dict of field -> message; empty when the split is valid.
    """
    errors: Dict[str, str] = {}
    members = set(member_ids)

    if len(members) != len(member_ids):
        errors['members'] = 'Member list contains duplicates'

    if purchase.purchased_by not in members:
        errors['purchased_by'] = 'Purchaser must be a member of the group'

    if purchase.total_amount != purchase.total_amount.quantize(quantum):
        errors['total_amount'] = (
            f'Total amount cannot have more than {-quantum.as_tuple().exponent} decimal places'
        )

    if isinstance(split, QuantitySplit):
        errors.update(_validate_quantity_split(purchase, split, member_ids))
    elif isinstance(split, CustomSplit):
        errors.update(_validate_custom_split(purchase, split, member_ids))
    elif not isinstance(split, EqualSplit):
        raise InvalidSplitError(f"Unsupported split configuration: {split!r}")

    return errors


def _unknown_members_error(referenced, member_ids) -> Dict[str, str]:
    unknown = [m for m in referenced if m not in set(member_ids)]
    if unknown:
        listed = ', '.join(str(m) for m in unknown)
        return {'split_rules': f'Split rules reference non-members: {listed}'}
    return {}


def _validate_quantity_split(purchase, split, member_ids) -> Dict[str, str]:
    errors = _unknown_members_error(split.allocations.keys(), member_ids)

    known_items = {item.item_id for item in purchase.items}
    unknown_items = [
        item_id
        for quantities in split.allocations.values()
        for item_id in quantities
        if item_id not in known_items
    ]
    if unknown_items:
        listed = ', '.join(sorted({str(i) for i in unknown_items}))
        errors['items'] = f'Split rules reference unknown items: {listed}'

    for item in purchase.items:
        quantities = [split.quantity_for(m, item.item_id) for m in member_ids]

        if any(q < 0 for q in quantities):
            errors[f'quantity-{item.item_id}'] = 'Quantities cannot be negative'
            continue

        distributed = sum(quantities, Decimal('0'))
        if abs(distributed - item.purchased_quantity) > TOLERANCE:
            errors[f'quantity-{item.item_id}'] = (
                f'Quantities must add up to {item.purchased_quantity.normalize()}'
            )

    return errors


def _validate_custom_split(purchase, split, member_ids) -> Dict[str, str]:
    errors = _unknown_members_error(split.shares.keys(), member_ids)
    shares = [split.share_for(m) for m in member_ids]

    for share in shares:
        if share.percentage is not None and share.amount is not None:
            errors['split'] = 'A share can set a percentage or an amount, not both'
            return errors
        if share.percentage is not None and not (0 <= share.percentage <= 100):
            errors['split'] = 'Percentages must be between 0 and 100'
            return errors
        if share.amount is not None and share.amount < 0:
            errors['split'] = 'Amounts cannot be negative'
            return errors

    has_percentages = any(s.percentage is not None for s in shares)
    has_amounts = any(s.amount is not None for s in shares)
    total_percentage = sum((s.percentage or Decimal('0') for s in shares), Decimal('0'))
    total_amount = sum((s.amount or Decimal('0') for s in shares), Decimal('0'))

    if has_percentages and has_amounts:
        # Each member owes exactly one of the two, so compare what they owe
        owed = total_amount + purchase.total_amount * total_percentage / HUNDRED
        if abs(owed - purchase.total_amount) > TOLERANCE:
            errors['split'] = (
                'Amounts plus percentage shares of the total must equal '
                'total purchase amount'
            )
        return errors

    if has_percentages:
        reconciles = abs(total_percentage - HUNDRED) <= TOLERANCE
    else:
        reconciles = abs(total_amount - purchase.total_amount) <= TOLERANCE
    if not reconciles:
        errors['split'] = (
            'Percentages must add up to 100% or amounts must equal '
            'total purchase amount'
        )

    return errors


# =============================================================================
# Owed shares
# =============================================================================

def exact_shares(
    purchase: PurchaseSnapshot,
    split: Split,
    member_ids: Sequence[MemberId],
) -> Dict[MemberId, Decimal]:
    """Unrounded owed share per member. Assumes the split validated."""
    if isinstance(split, EqualSplit):
        share = purchase.total_amount / len(member_ids)
        return {m: share for m in member_ids}

    if isinstance(split, QuantitySplit):
        return {
            m: sum(
                (item.unit_price * split.quantity_for(m, item.item_id)
                 for item in purchase.items),
                Decimal('0')
            )
            for m in member_ids
        }

    if isinstance(split, CustomSplit):
        shares = {}
        for m in member_ids:
            share = split.share_for(m)
            if share.amount is not None:
                shares[m] = share.amount
            else:
                percentage = share.percentage or Decimal('0')
                shares[m] = purchase.total_amount * percentage / HUNDRED
        return shares

    raise InvalidSplitError(f"Unsupported split configuration: {split!r}")


def owed_shares(
    purchase: PurchaseSnapshot,
    split: Split,
    member_ids: List[MemberId],
    quantum: Decimal,
) -> Dict[MemberId, Decimal]:
    """Owed share per member, rounded to the minor unit."""
    return allocate_minor_units(
        exact_shares(purchase, split, member_ids),
        member_ids,
        quantum,
    )
