"""
Purchase ledger service.

Records group purchases, computes and persists their splits, and tracks
completion of the resulting settlement transfers. The arithmetic lives in
the settlement engine; this module only loads, stores and announces.

Example:
    Splitting a recorded purchase equally::

        from apps.purchases.services import EqualSplit, save_split

        result = save_split(
            purchase_id=purchase.id,
            split=EqualSplit(),
            user=request.user,
        )
        if not result.is_valid:
            return Response({'validation_errors': result.validation_errors}, status=400)
"""

import logging
from decimal import Decimal
from typing import Any, Dict, Iterable, Mapping
from uuid import UUID

from django.conf import settings
from django.db import transaction
from django.db.models import Q, QuerySet
from django.utils import timezone

from apps.accounts.models import User
from apps.groups.models import Group
from apps.groups.services.exceptions import GroupNotFoundError
from apps.purchases.models import (
    Purchase,
    PurchaseItem as PurchaseItemModel,
    Settlement as SettlementModel,
    SettlementStatus,
    SplitRule,
)
from apps.realtime.publishers import broadcast_purchase_update

from .exceptions import (
    InsufficientPermissionsError,
    NotGroupMemberError,
    PurchaseNotFoundError,
    SettlementAlreadyCompletedError,
    SettlementNotFoundError,
)
from .settlement_engine import compute_settlements
from .split_types import (
    CustomSplit,
    PurchaseItem,
    PurchaseSnapshot,
    QuantitySplit,
    SettlementResult,
    Split,
)


logger = logging.getLogger(__name__)


def _decimal_places() -> int:
    return settings.LEDGER['DECIMAL_PLACES']


def _announce(purchase: Purchase, data: Dict[str, Any], exclude_member_id=None) -> None:
    """Broadcast a purchase_update to the group once the transaction commits."""
    group_id = purchase.group_id
    purchase_id = purchase.id
    transaction.on_commit(
        lambda: broadcast_purchase_update(
            group_id, purchase_id, data, exclude_member_id=exclude_member_id
        )
    )


# =============================================================================
# Purchases
# =============================================================================

def record_purchase(
    *,
    group_id: UUID,
    purchased_by: User,
    total_amount,
    items: Iterable[Mapping[str, Any]] = (),
    note: str = '',
    purchased_at=None,
) -> Purchase:
    """
    Record a purchase made by a group member.

    The purchase total is authoritative; item prices are kept for quantity
    splits and are not reconciled against it.

    Args:
        group_id: UUID of the group
        purchased_by: Member who fronted the money
        total_amount: Amount paid
        items: Iterable of dicts with ``name``, ``purchased_quantity`` and
            ``actual_price`` (the line total)
        note: Optional free-text note
        purchased_at: When the purchase happened (defaults to now)

    Returns:
        Created Purchase instance with items

    Raises:
        GroupNotFoundError: If group doesn't exist
        NotGroupMemberError: If the purchaser is not a group member
        InvalidPurchaseError: If the total, a quantity or a price is invalid
    """
    items = list(items)

    # Malformed numbers fail here, before anything is written
    snapshot = PurchaseSnapshot(
        id=None,
        total_amount=total_amount,
        purchased_by=str(purchased_by.id),
        items=tuple(
            PurchaseItem(
                item_id=position,
                purchased_quantity=item['purchased_quantity'],
                actual_price=item['actual_price'],
            )
            for position, item in enumerate(items)
        ),
    )

    with transaction.atomic():
        try:
            group = Group.objects.get(id=group_id)
        except Group.DoesNotExist:
            raise GroupNotFoundError(f"Group with ID {group_id} not found")

        if not group.has_member(purchased_by):
            raise NotGroupMemberError(
                f"User is not a member of {group.name}"
            )

        purchase = Purchase.objects.create(
            group=group,
            purchased_by=purchased_by,
            total_amount=snapshot.total_amount,
            note=note,
            purchased_at=purchased_at or timezone.now(),
        )

        PurchaseItemModel.objects.bulk_create([
            PurchaseItemModel(
                purchase=purchase,
                name=item.get('name', ''),
                purchased_quantity=line.purchased_quantity,
                actual_price=line.actual_price,
                position=line.item_id,
            )
            for item, line in zip(items, snapshot.items)
        ])

        _announce(
            purchase,
            {
                'action': 'created',
                'purchased_by': str(purchased_by.id),
                'total_amount': str(purchase.total_amount),
            },
            exclude_member_id=purchased_by.id,
        )

    logger.info(
        "Purchase %s recorded in group %s (%s %s)",
        purchase.id, group.id, purchase.total_amount, purchase.currency
    )
    return purchase


def get_purchase(*, purchase_id: UUID) -> Purchase:
    """
    Get a purchase with its group and items.

    Raises:
        PurchaseNotFoundError: If purchase doesn't exist
    """
    try:
        return (
            Purchase.objects
            .select_related('group', 'purchased_by')
            .prefetch_related('items')
            .get(id=purchase_id)
        )
    except Purchase.DoesNotExist:
        raise PurchaseNotFoundError(f"Purchase with ID {purchase_id} not found")


# =============================================================================
# Splits
# =============================================================================

def preview_split(*, purchase: Purchase, split: Split) -> SettlementResult:
    """
    Compute the settlements a split would produce, without saving anything.

    Members are the purchase group's current members in join order.
    """
    return compute_settlements(
        PurchaseSnapshot.from_model(purchase),
        split,
        purchase.group.get_member_ids(),
        decimal_places=_decimal_places(),
    )


def _split_rule_fields(split: Split, member_id: str) -> Dict[str, Any]:
    if isinstance(split, CustomSplit):
        share = split.share_for(member_id)
        return {'percentage': share.percentage, 'amount': share.amount}

    if isinstance(split, QuantitySplit):
        return {
            'item_quantities': {
                str(item_id): str(quantity)
                for item_id, quantity in split.allocations.get(member_id, {}).items()
            }
        }

    return {}


def save_split(*, purchase_id: UUID, split: Split, user: User) -> SettlementResult:
    """
    Compute a split and replace the purchase's split rules and settlements.

    Nothing is written when the split does not validate; the returned
    result then carries the validation errors. Saving the same split twice
    produces identical settlement rows.

    Args:
        purchase_id: UUID of the purchase
        split: EqualSplit, QuantitySplit or CustomSplit
        user: Member saving the split

    Returns:
        SettlementResult

    Raises:
        PurchaseNotFoundError: If purchase doesn't exist
        NotGroupMemberError: If user is not a member of the purchase group
    """
    with transaction.atomic():
        try:
            purchase = (
                Purchase.objects
                .select_for_update()
                .select_related('group')
                .get(id=purchase_id)
            )
        except Purchase.DoesNotExist:
            raise PurchaseNotFoundError(f"Purchase with ID {purchase_id} not found")

        if not purchase.group.has_member(user):
            raise NotGroupMemberError(
                f"User is not a member of {purchase.group.name}"
            )

        member_ids = purchase.group.get_member_ids()
        result = compute_settlements(
            PurchaseSnapshot.from_model(purchase),
            split,
            member_ids,
            decimal_places=_decimal_places(),
        )

        if not result.is_valid:
            logger.debug(
                "Split for purchase %s rejected: %s",
                purchase.id, result.validation_errors
            )
            return result

        purchase.split_rules.all().delete()
        purchase.settlements.all().delete()

        SplitRule.objects.bulk_create([
            SplitRule(
                purchase=purchase,
                member_id=member_id,
                owed_amount=result.shares[member_id],
                **_split_rule_fields(split, member_id),
            )
            for member_id in member_ids
        ])

        SettlementModel.objects.bulk_create([
            SettlementModel(
                purchase=purchase,
                from_member_id=settlement.from_member_id,
                to_member_id=settlement.to_member_id,
                amount=settlement.amount,
                position=position,
            )
            for position, settlement in enumerate(result.settlements)
        ])

        purchase.split_method = split.method
        purchase.save(update_fields=['split_method', 'updated_at'])

        _announce(
            purchase,
            {
                'action': 'split_saved',
                'split_method': str(split.method),
                'settlement_count': len(result.settlements),
            },
            exclude_member_id=user.id,
        )

    logger.info(
        "Saved %s split for purchase %s (%d settlement(s))",
        split.method, purchase.id, len(result.settlements)
    )
    return result


# =============================================================================
# Settlements
# =============================================================================

def complete_settlement(*, settlement_id: UUID, user: User) -> SettlementModel:
    """
    Mark a settlement transfer as completed.

    Either party of the transfer or the group owner may confirm it.

    Args:
        settlement_id: UUID of the settlement
        user: User confirming the transfer

    Returns:
        The updated Settlement

    Raises:
        SettlementNotFoundError: If settlement doesn't exist
        InsufficientPermissionsError: If user is neither party nor group owner
        SettlementAlreadyCompletedError: If it was already completed
    """
    with transaction.atomic():
        try:
            settlement = (
                SettlementModel.objects
                .select_for_update()
                .select_related('purchase__group')
                .get(id=settlement_id)
            )
        except SettlementModel.DoesNotExist:
            raise SettlementNotFoundError(f"Settlement with ID {settlement_id} not found")

        purchase = settlement.purchase
        if not (settlement.involves(user) or purchase.group.owner_id == user.pk):
            raise InsufficientPermissionsError(
                "Only the payer, the payee or the group owner can complete a settlement"
            )

        if settlement.status == SettlementStatus.COMPLETED:
            raise SettlementAlreadyCompletedError("Settlement already completed")

        settlement.mark_completed(completed_by=user)

        _announce(
            purchase,
            {
                'action': 'settlement_completed',
                'settlement_id': str(settlement.id),
                'amount': str(settlement.amount),
            },
            exclude_member_id=user.id,
        )

    logger.info(
        "Settlement %s on purchase %s completed by %s",
        settlement.id, purchase.id, user.id
    )
    return settlement


def get_outstanding_settlements(*, user: User) -> QuerySet[SettlementModel]:
    """Pending settlements the user owes or is owed, oldest first."""
    return (
        SettlementModel.objects
        .filter(Q(from_member=user) | Q(to_member=user), status=SettlementStatus.PENDING)
        .select_related('purchase', 'from_member', 'to_member')
        .order_by('created_at', 'position')
    )


def get_purchase_summary(*, purchase_id: UUID) -> Dict[str, Any]:
    """
    Get a summary of a purchase and the state of its settlements.

    Returns:
        dict with:
            - purchase: The Purchase object
            - total_amount: Purchase total
            - items_total: Sum of item prices
            - split_method: Saved split method, or None
            - settled_amount: Sum of completed transfers
            - outstanding_amount: Sum of pending transfers
            - is_fully_settled: Whether a split is saved and nothing is pending
            - pending_settlements / completed_settlements: Settlement lists
            - shares: Saved SplitRule rows (owed amount per member)

    Raises:
        PurchaseNotFoundError: If purchase doesn't exist
    """
    try:
        purchase = (
            Purchase.objects
            .select_related('group', 'purchased_by')
            .prefetch_related(
                'items',
                'settlements__from_member',
                'settlements__to_member',
                'split_rules__member',
            )
            .get(id=purchase_id)
        )
    except Purchase.DoesNotExist:
        raise PurchaseNotFoundError(f"Purchase with ID {purchase_id} not found")

    settlements = list(purchase.settlements.all())
    pending = [s for s in settlements if s.status == SettlementStatus.PENDING]
    completed = [s for s in settlements if s.status == SettlementStatus.COMPLETED]

    return {
        'purchase': purchase,
        'total_amount': purchase.total_amount,
        'items_total': purchase.get_items_total(),
        'split_method': purchase.split_method,
        'settled_amount': sum((s.amount for s in completed), Decimal('0.00')),
        'outstanding_amount': sum((s.amount for s in pending), Decimal('0.00')),
        'is_fully_settled': purchase.split_method is not None and not pending,
        'pending_settlements': pending,
        'completed_settlements': completed,
        'shares': list(purchase.split_rules.all()),
    }
