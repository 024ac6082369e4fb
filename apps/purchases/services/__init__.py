"""
Purchases app services layer.

- settlement_engine: pure split and settlement computation (no database)
- split_calculation: rounding and validation used by the engine
- split_types: immutable value types the engine works on
- purchase_management: recording purchases, persisting splits and
  completing settlements
"""

from .exceptions import (
    LedgerServiceError,
    InvalidPurchaseError,
    InvalidSplitError,
    PurchaseNotFoundError,
    SettlementNotFoundError,
    SettlementAlreadyCompletedError,
    NotGroupMemberError,
    InsufficientPermissionsError,
)

from .split_types import (
    PurchaseItem,
    PurchaseSnapshot,
    EqualSplit,
    QuantitySplit,
    CustomShare,
    CustomSplit,
    Settlement,
    SettlementResult,
)

from .settlement_engine import (
    compute_balances,
    compute_settlements,
    net_balances,
)

from .purchase_management import (
    record_purchase,
    get_purchase,
    preview_split,
    save_split,
    complete_settlement,
    get_outstanding_settlements,
    get_purchase_summary,
)


__all__ = [
    # Exceptions
    'LedgerServiceError',
    'InvalidPurchaseError',
    'InvalidSplitError',
    'PurchaseNotFoundError',
    'SettlementNotFoundError',
    'SettlementAlreadyCompletedError',
    'NotGroupMemberError',
    'InsufficientPermissionsError',

    # Engine types
    'PurchaseItem',
    'PurchaseSnapshot',
    'EqualSplit',
    'QuantitySplit',
    'CustomShare',
    'CustomSplit',
    'Settlement',
    'SettlementResult',

    # Engine
    'compute_balances',
    'compute_settlements',
    'net_balances',

    # Ledger
    'record_purchase',
    'get_purchase',
    'preview_split',
    'save_split',
    'complete_settlement',
    'get_outstanding_settlements',
    'get_purchase_summary',
]
