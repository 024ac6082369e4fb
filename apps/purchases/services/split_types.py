"""
Value types for the settlement engine.

These are plain, immutable snapshots decoupled from the ORM so that the
engine can be called from a request handler, a test, or a preview endpoint
without touching the database.

The split configuration is a tagged union: one dataclass per split method,
so that data belonging to one method (e.g. item quantities) can never be
attached to another.
"""

from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Hashable, List, Mapping, Optional, Tuple, Union

from apps.purchases.choices import SettlementStatus, SplitMethod

from .exceptions import InvalidPurchaseError, InvalidSplitError


MemberId = Hashable
ItemId = Hashable


def to_decimal(value: Any, *, error_class=InvalidSplitError) -> Decimal:
    """Coerce ints, strings and floats to Decimal (floats via their repr)."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise error_class(f"Expected a number, got {value!r}")
    try:
        if isinstance(value, float):
            return Decimal(repr(value))
        return Decimal(value)
    except (InvalidOperation, TypeError, ValueError):
        raise error_class(f"Expected a number, got {value!r}")


@dataclass(frozen=True)
class PurchaseItem:
    """A purchased line. ``actual_price`` is the line total."""

    item_id: ItemId
    purchased_quantity: Decimal
    actual_price: Decimal

    def __post_init__(self):
        quantity = to_decimal(self.purchased_quantity, error_class=InvalidPurchaseError)
        price = to_decimal(self.actual_price, error_class=InvalidPurchaseError)

        if quantity <= 0:
            raise InvalidPurchaseError(
                f"Item {self.item_id}: purchased quantity must be positive"
            )
        if price < 0:
            raise InvalidPurchaseError(
                f"Item {self.item_id}: price cannot be negative"
            )

        object.__setattr__(self, 'purchased_quantity', quantity)
        object.__setattr__(self, 'actual_price', price)

    @property
    def unit_price(self) -> Decimal:
        return self.actual_price / self.purchased_quantity


@dataclass(frozen=True)
class PurchaseSnapshot:
    """Immutable view of a recorded purchase."""

    id: Hashable
    total_amount: Decimal
    purchased_by: MemberId
    items: Tuple[PurchaseItem, ...] = ()

    def __post_init__(self):
        total = to_decimal(self.total_amount, error_class=InvalidPurchaseError)
        if total < 0:
            raise InvalidPurchaseError("Purchase total cannot be negative")

        object.__setattr__(self, 'total_amount', total)
        object.__setattr__(self, 'items', tuple(self.items))

    @property
    def items_total(self) -> Decimal:
        return sum((item.actual_price for item in self.items), Decimal('0'))

    @classmethod
    def from_model(cls, purchase) -> 'PurchaseSnapshot':
        """Build a snapshot from a ``Purchase`` model instance."""
        return cls(
            id=str(purchase.id),
            total_amount=purchase.total_amount,
            purchased_by=str(purchase.purchased_by_id),
            items=tuple(
                PurchaseItem(
                    item_id=str(item.id),
                    purchased_quantity=item.purchased_quantity,
                    actual_price=item.actual_price,
                )
                for item in purchase.items.all()
            ),
        )


# =============================================================================
# Split configurations
# =============================================================================

@dataclass(frozen=True)
class EqualSplit:
    """Every member owes ``total / member_count``."""

    method = SplitMethod.EQUAL


@dataclass(frozen=True)
class QuantitySplit:
    """Members owe the unit price of each item times their quantity of it."""

    allocations: Mapping[MemberId, Mapping[ItemId, Decimal]] = field(default_factory=dict)

    method = SplitMethod.QUANTITY

    def __post_init__(self):
        object.__setattr__(self, 'allocations', {
            member_id: {
                item_id: to_decimal(quantity)
                for item_id, quantity in quantities.items()
            }
            for member_id, quantities in self.allocations.items()
        })

    def quantity_for(self, member_id: MemberId, item_id: ItemId) -> Decimal:
        return self.allocations.get(member_id, {}).get(item_id, Decimal('0'))


@dataclass(frozen=True)
class CustomShare:
    """A member's custom share: an absolute amount, a percentage, or neither."""

    percentage: Optional[Decimal] = None
    amount: Optional[Decimal] = None

    def __post_init__(self):
        if self.percentage is not None:
            object.__setattr__(self, 'percentage', to_decimal(self.percentage))
        if self.amount is not None:
            object.__setattr__(self, 'amount', to_decimal(self.amount))


@dataclass(frozen=True)
class CustomSplit:
    """Members owe an explicit amount, or a percentage of the total."""

    shares: Mapping[MemberId, CustomShare] = field(default_factory=dict)

    method = SplitMethod.CUSTOM

    def __post_init__(self):
        object.__setattr__(self, 'shares', dict(self.shares))

    def share_for(self, member_id: MemberId) -> CustomShare:
        return self.shares.get(member_id, CustomShare())


Split = Union[EqualSplit, QuantitySplit, CustomSplit]


# =============================================================================
# Results
# =============================================================================

@dataclass(frozen=True)
class Settlement:
    """Directed transfer from a debtor to a creditor. Amount is always > 0."""

    from_member_id: MemberId
    to_member_id: MemberId
    amount: Decimal
    status: str = SettlementStatus.PENDING


@dataclass
class SettlementResult:
    balances: Dict[MemberId, Decimal] = field(default_factory=dict)
    settlements: List[Settlement] = field(default_factory=list)
    validation_errors: Dict[str, str] = field(default_factory=dict)
    shares: Dict[MemberId, Decimal] = field(default_factory=dict)
    unallocated_amount: Decimal = Decimal('0')

    @property
    def is_valid(self) -> bool:
        return not self.validation_errors
