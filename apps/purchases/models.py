from django.db import models
from django.conf import settings
from django.core.validators import MinValueValidator
from decimal import Decimal
import uuid

from .choices import SplitMethod, SettlementStatus


def default_currency():
    return settings.LEDGER['CURRENCY']


class Purchase(models.Model):
    """Money spent by one group member on behalf of the group."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    group = models.ForeignKey(
        'groups.Group',
        on_delete=models.CASCADE,
        related_name='purchases'
    )

    # Purchaser is always credited for the full total
    purchased_by = models.ForeignKey(
        'accounts.User',
        on_delete=models.CASCADE,
        related_name='purchases_made'
    )

    # Authoritative total (may differ from the sum of item prices)
    total_amount = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0.00'))]
    )
    currency = models.CharField(max_length=3, default=default_currency)

    note = models.TextField(blank=True)
    purchased_at = models.DateTimeField()

    # Set once a split configuration has been saved
    split_method = models.CharField(
        max_length=20,
        choices=SplitMethod.choices,
        null=True,
        blank=True
    )

    # Timestamps
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'purchases'
        indexes = [
            models.Index(fields=['group', 'purchased_at'], name='purchases_group_date_idx'),
            models.Index(fields=['purchased_by', 'purchased_at'], name='purchases_buyer_date_idx'),
        ]
        ordering = ['-purchased_at', '-created_at']

    def __str__(self):
        return f"{self.group.name} - {self.total_amount} {self.currency}"

    def get_items_total(self):
        """Sum of line prices; not reconciled against total_amount."""
        return sum(
            (item.actual_price for item in self.items.all()),
            Decimal('0.00')
        )

    def get_settled_amount(self):
        """Sum of completed settlement transfers."""
        from django.db.models import Sum

        return self.settlements.filter(
            status=SettlementStatus.COMPLETED
        ).aggregate(total=Sum('amount'))['total'] or Decimal('0.00')

    def get_outstanding_amount(self):
        """Sum of pending settlement transfers."""
        from django.db.models import Sum

        return self.settlements.filter(
            status=SettlementStatus.PENDING
        ).aggregate(total=Sum('amount'))['total'] or Decimal('0.00')


class PurchaseItem(models.Model):
    """One purchased line; actual_price is the line total, not a unit price."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    purchase = models.ForeignKey(
        Purchase,
        on_delete=models.CASCADE,
        related_name='items'
    )
    name = models.CharField(max_length=200)
    purchased_quantity = models.DecimalField(
        max_digits=10,
        decimal_places=3,
        validators=[MinValueValidator(Decimal('0.001'))]
    )
    actual_price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0.00'))]
    )
    position = models.PositiveIntegerField(default=0)

    class Meta:
        db_table = 'purchase_items'
        ordering = ['position']

    def __str__(self):
        return f"{self.name} x{self.purchased_quantity} ({self.actual_price})"


class SplitRule(models.Model):
    """One member's share configuration for a purchase."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    purchase = models.ForeignKey(
        Purchase,
        on_delete=models.CASCADE,
        related_name='split_rules'
    )
    member = models.ForeignKey(
        'accounts.User',
        on_delete=models.CASCADE,
        related_name='split_rules'
    )

    # Custom method: percentage or absolute amount
    percentage = models.DecimalField(
        max_digits=6,
        decimal_places=3,
        null=True,
        blank=True
    )
    amount = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        null=True,
        blank=True
    )

    # Quantity method: item id -> quantity attributed to this member
    item_quantities = models.JSONField(default=dict, blank=True)

    owed_amount = models.DecimalField(max_digits=10, decimal_places=2)

    class Meta:
        db_table = 'split_rules'
        unique_together = [['purchase', 'member']]

    def __str__(self):
        return f"{self.member.get_display_name()} owes {self.owed_amount}"


class Settlement(models.Model):
    """Directed transfer obligation derived from purchase balances."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    purchase = models.ForeignKey(
        Purchase,
        on_delete=models.CASCADE,
        related_name='settlements'
    )
    from_member = models.ForeignKey(
        'accounts.User',
        on_delete=models.CASCADE,
        related_name='settlements_owed'
    )
    to_member = models.ForeignKey(
        'accounts.User',
        on_delete=models.CASCADE,
        related_name='settlements_due'
    )
    amount = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0.01'))]
    )

    status = models.CharField(
        max_length=20,
        choices=SettlementStatus.choices,
        default=SettlementStatus.PENDING
    )

    # Engine output order
    position = models.PositiveIntegerField(default=0)

    # Completion tracking
    completed_at = models.DateTimeField(null=True, blank=True)
    completed_by = models.ForeignKey(
        'accounts.User',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='confirmed_settlements'
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'settlements'
        indexes = [
            models.Index(fields=['from_member', 'status'], name='settlements_from_status_idx'),
            models.Index(fields=['to_member', 'status'], name='settlements_to_status_idx'),
            models.Index(fields=['purchase', 'status'], name='settlements_purch_status_idx'),
        ]
        ordering = ['position']

    def __str__(self):
        return (
            f"{self.from_member.get_display_name()} -> "
            f"{self.to_member.get_display_name()}: {self.amount} ({self.status})"
        )

    def involves(self, user):
        return user.pk in (self.from_member_id, self.to_member_id)

    def mark_completed(self, completed_by=None):
        """Mark transfer as completed."""
        from django.utils import timezone

        self.status = SettlementStatus.COMPLETED
        self.completed_at = timezone.now()
        self.completed_by = completed_by
        self.save(update_fields=['status', 'completed_at', 'completed_by', 'updated_at'])
