import uuid
from decimal import Decimal

from rest_framework import serializers
from .models import Purchase, PurchaseItem, SplitRule, Settlement, SplitMethod, SettlementStatus
from .services import CustomShare, CustomSplit, EqualSplit, QuantitySplit
from apps.accounts.models import User


# =============================================================================
# Input Serializers
# =============================================================================

class PurchaseFilterSerializer(serializers.Serializer):
    """
    Validate query parameters for purchase filtering.

    Query Parameters:
        group (UUID): Filter by group ID
        purchased_by (UUID): Filter by purchaser
        date_from (date): Filter purchases from this date
        date_to (date): Filter purchases to this date
    """

    group = serializers.UUIDField(required=False)
    purchased_by = serializers.UUIDField(required=False)
    date_from = serializers.DateField(required=False)
    date_to = serializers.DateField(required=False)

    def validate(self, attrs):
        """Validate date range."""
        date_from = attrs.get('date_from')
        date_to = attrs.get('date_to')

        if date_from and date_to:
            if date_from > date_to:
                raise serializers.ValidationError({
                    'date_to': 'End date must be after start date'
                })

        return attrs


class PurchaseItemInputSerializer(serializers.Serializer):
    """One purchased line. ``actual_price`` is the line total."""

    name = serializers.CharField(max_length=200)
    purchased_quantity = serializers.DecimalField(
        max_digits=10,
        decimal_places=3,
        min_value=Decimal('0.001')
    )
    actual_price = serializers.DecimalField(
        max_digits=10,
        decimal_places=2,
        min_value=Decimal('0.00')
    )


class PurchaseCreateSerializer(serializers.Serializer):
    """Validate input for recording a purchase."""

    group = serializers.UUIDField()
    total_amount = serializers.DecimalField(
        max_digits=10,
        decimal_places=2,
        min_value=Decimal('0.00')
    )
    note = serializers.CharField(required=False, allow_blank=True, default='')
    purchased_at = serializers.DateTimeField(required=False)
    items = PurchaseItemInputSerializer(many=True, required=False)


class SplitRuleInputSerializer(serializers.Serializer):
    """
    One member's split data.

    Which keys are allowed depends on the split method; the enclosing
    SplitRequestSerializer enforces that.
    """

    member_id = serializers.UUIDField()
    percentage = serializers.DecimalField(
        max_digits=6,
        decimal_places=3,
        required=False,
        allow_null=True
    )
    amount = serializers.DecimalField(
        max_digits=10,
        decimal_places=2,
        required=False,
        allow_null=True
    )
    item_quantities = serializers.DictField(
        child=serializers.DecimalField(max_digits=10, decimal_places=3),
        required=False
    )

    def validate_item_quantities(self, value):
        """Normalize item id keys to canonical UUID strings."""
        normalized = {}
        for item_id, quantity in value.items():
            try:
                normalized[str(uuid.UUID(str(item_id)))] = quantity
            except ValueError:
                raise serializers.ValidationError(f'"{item_id}" is not a valid item id')
        return normalized


class SplitRequestSerializer(serializers.Serializer):
    """
    Parse ``split_method`` + ``split_rules`` into a split configuration.

    The validated data carries the configuration under ``split``:
    EqualSplit, QuantitySplit or CustomSplit. Rule data that does not belong
    to the chosen method is rejected.

    Body:
        {
            "split_method": "custom",
            "split_rules": [
                {"member_id": "...", "percentage": "60"},
                {"member_id": "...", "percentage": "40"}
            ]
        }
    """

    split_method = serializers.ChoiceField(choices=SplitMethod.choices)
    split_rules = SplitRuleInputSerializer(many=True, required=False)

    # Rule keys each method accepts
    ALLOWED_KEYS = {
        SplitMethod.EQUAL: set(),
        SplitMethod.QUANTITY: {'item_quantities'},
        SplitMethod.CUSTOM: {'percentage', 'amount'},
    }

    def validate(self, attrs):
        method = attrs['split_method']
        rules = attrs.get('split_rules', [])
        allowed = self.ALLOWED_KEYS[method]

        seen = set()
        for rule in rules:
            member_id = str(rule['member_id'])
            if member_id in seen:
                raise serializers.ValidationError({
                    'split_rules': f'Duplicate split rule for member {member_id}'
                })
            seen.add(member_id)

            illegal = sorted(
                key for key, value in rule.items()
                if key != 'member_id' and value is not None and key not in allowed
            )
            if illegal:
                raise serializers.ValidationError({
                    'split_rules': (
                        f'{", ".join(illegal)} not allowed for {method} split'
                    )
                })

        attrs['split'] = self._build_split(method, rules)
        return attrs

    def _build_split(self, method, rules):
        if method == SplitMethod.QUANTITY:
            return QuantitySplit(allocations={
                str(rule['member_id']): rule.get('item_quantities', {})
                for rule in rules
            })

        if method == SplitMethod.CUSTOM:
            return CustomSplit(shares={
                str(rule['member_id']): CustomShare(
                    percentage=rule.get('percentage'),
                    amount=rule.get('amount'),
                )
                for rule in rules
            })

        return EqualSplit()


# =============================================================================
# Output Serializers
# =============================================================================


class UserMinimalSerializer(serializers.ModelSerializer):
    """Minimal user info for nested serialization."""

    display_name = serializers.SerializerMethodField()

    class Meta:
        model = User
        fields = ['id', 'email', 'display_name']
        read_only_fields = fields

    def get_display_name(self, obj):
        return obj.get_display_name()


class PurchaseItemSerializer(serializers.ModelSerializer):
    """Serializer for purchase items."""

    class Meta:
        model = PurchaseItem
        fields = ['id', 'name', 'purchased_quantity', 'actual_price', 'position']
        read_only_fields = fields


class SplitRuleSerializer(serializers.ModelSerializer):
    """Saved split configuration of one member."""

    member = UserMinimalSerializer(read_only=True)

    class Meta:
        model = SplitRule
        fields = ['id', 'member', 'percentage', 'amount', 'item_quantities', 'owed_amount']
        read_only_fields = fields


class SettlementSerializer(serializers.ModelSerializer):
    """Serializer for persisted settlement transfers."""

    from_member = UserMinimalSerializer(read_only=True)
    to_member = UserMinimalSerializer(read_only=True)

    class Meta:
        model = Settlement
        fields = [
            'id',
            'purchase',
            'from_member',
            'to_member',
            'amount',
            'status',
            'position',
            'completed_at',
            'completed_by',
            'created_at',
        ]
        read_only_fields = fields


class PurchaseSerializer(serializers.ModelSerializer):
    """Main serializer for purchases."""

    purchased_by = UserMinimalSerializer(read_only=True)
    items = PurchaseItemSerializer(many=True, read_only=True)

    class Meta:
        model = Purchase
        fields = [
            'id',
            'group',
            'purchased_by',
            'total_amount',
            'currency',
            'note',
            'purchased_at',
            'split_method',
            'items',
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields


class PurchaseListSerializer(serializers.ModelSerializer):
    """Lightweight serializer for list views."""

    purchased_by = UserMinimalSerializer(read_only=True)

    class Meta:
        model = Purchase
        fields = [
            'id',
            'group',
            'purchased_by',
            'total_amount',
            'currency',
            'purchased_at',
            'split_method',
            'created_at',
        ]
        read_only_fields = fields


class ComputedSettlementSerializer(serializers.Serializer):
    """Settlement transfer as computed by the engine (not yet saved)."""

    from_member_id = serializers.CharField()
    to_member_id = serializers.CharField()
    amount = serializers.DecimalField(max_digits=None, decimal_places=None)
    status = serializers.ChoiceField(choices=SettlementStatus.choices)


class SettlementResultSerializer(serializers.Serializer):
    """Serializer for engine results (preview and save)."""

    is_valid = serializers.BooleanField()
    balances = serializers.DictField(
        child=serializers.DecimalField(max_digits=None, decimal_places=None)
    )
    shares = serializers.DictField(
        child=serializers.DecimalField(max_digits=None, decimal_places=None)
    )
    settlements = ComputedSettlementSerializer(many=True)
    unallocated_amount = serializers.DecimalField(max_digits=None, decimal_places=None)
    validation_errors = serializers.DictField(child=serializers.CharField())


class PurchaseSummarySerializer(serializers.Serializer):
    """Serializer for purchase summary."""

    purchase = PurchaseSerializer()
    total_amount = serializers.DecimalField(max_digits=10, decimal_places=2)
    items_total = serializers.DecimalField(max_digits=12, decimal_places=2)
    split_method = serializers.CharField(allow_null=True)
    settled_amount = serializers.DecimalField(max_digits=12, decimal_places=2)
    outstanding_amount = serializers.DecimalField(max_digits=12, decimal_places=2)
    is_fully_settled = serializers.BooleanField()
    shares = SplitRuleSerializer(many=True)
    pending_settlements = SettlementSerializer(many=True)
    completed_settlements = SettlementSerializer(many=True)
