"""
Purchases App - Group Purchase Ledger

This app records purchases made by one group member on behalf of the group,
splits their cost among members, and tracks the resulting settlement
transfers until they are completed.

Key Features:
- Equal, quantity-based and custom (percentage or amount) splits
- Minor-unit precise rounding (shares always add up exactly)
- Deterministic debt netting into pairwise settlements
- Split preview without persistence
- Realtime purchase_update events to the rest of the group

Architecture:
- Models: Purchase, PurchaseItem, SplitRule, Settlement
- Services: settlement engine (pure) and purchase management (persistence)
- Views: RESTful API with ViewSets
- Permissions: Custom permission classes
- Exceptions: Domain exception hierarchy in services.exceptions
"""
