# ==========================================
# apps/purchases/admin.py
# ==========================================

from django.contrib import admin
from django.utils.html import format_html
from .models import Purchase, PurchaseItem, SplitRule, Settlement, SettlementStatus


STATUS_COLORS = {
    SettlementStatus.PENDING: ('#E5C49A', '#2C1810'),
    SettlementStatus.COMPLETED: ('#6B8E5E', 'white'),
}


def status_badge(obj):
    """Display settlement status as colored badge."""
    bg, fg = STATUS_COLORS.get(obj.status, ('#ccc', '#666'))
    return format_html(
        '<span style="background: {}; color: {}; padding: 3px 8px; '
        'border-radius: 10px; font-size: 11px;">{}</span>',
        bg, fg, obj.get_status_display()
    )


class PurchaseItemInline(admin.TabularInline):
    """Inline admin for purchase items."""
    model = PurchaseItem
    extra = 0
    fields = ['position', 'name', 'purchased_quantity', 'actual_price']


class SplitRuleInline(admin.TabularInline):
    """Inline admin for saved split rules."""
    model = SplitRule
    extra = 0
    fields = ['member', 'percentage', 'amount', 'item_quantities', 'owed_amount']
    readonly_fields = fields

    def has_add_permission(self, request, obj=None):
        """Split rules are written by the ledger service only."""
        return False


class SettlementInline(admin.TabularInline):
    """Inline admin for settlements within a purchase."""
    model = Settlement
    extra = 0
    fields = ['position', 'from_member', 'to_member', 'amount', 'status_display', 'completed_at']
    readonly_fields = fields

    def status_display(self, obj):
        return status_badge(obj)
    status_display.short_description = 'Status'

    def has_add_permission(self, request, obj=None):
        """Settlements are computed, never added by hand."""
        return False


@admin.register(Purchase)
class PurchaseAdmin(admin.ModelAdmin):
    """
    Admin interface for Purchases.

    Provides purchase listing with split and settlement state, inline
    items, split rules and settlements.
    """

    list_display = [
        'id',
        'group',
        'purchased_by',
        'total_amount',
        'currency',
        'split_method',
        'get_outstanding_display',
        'purchased_at',
    ]

    list_filter = [
        'split_method',
        'currency',
        'purchased_at',
    ]

    search_fields = [
        'purchased_by__email',
        'purchased_by__display_name',
        'group__name',
        'note',
    ]

    readonly_fields = [
        'split_method',
        'created_at',
        'updated_at',
    ]

    inlines = [PurchaseItemInline, SplitRuleInline, SettlementInline]
    date_hierarchy = 'purchased_at'
    ordering = ['-purchased_at', '-created_at']

    fieldsets = (
        ('Purchase Information', {
            'fields': (
                'group',
                'purchased_by',
                'purchased_at',
            )
        }),
        ('Financial Details', {
            'fields': (
                'total_amount',
                'currency',
                'split_method',
            )
        }),
        ('Notes', {
            'fields': ('note',),
            'classes': ('collapse',),
        }),
        ('Metadata', {
            'fields': ('created_at', 'updated_at'),
            'classes': ('collapse',),
        }),
    )

    def get_outstanding_display(self, obj):
        """Display outstanding transfer amount."""
        return f"{obj.get_outstanding_amount()} {obj.currency}"
    get_outstanding_display.short_description = 'Outstanding'

    def get_queryset(self, request):
        """Optimize query with select_related."""
        qs = super().get_queryset(request)
        return qs.select_related('purchased_by', 'group')


@admin.register(Settlement)
class SettlementAdmin(admin.ModelAdmin):
    """Admin interface for Settlements."""

    list_display = [
        'from_member',
        'to_member',
        'amount',
        'status_display',
        'purchase',
        'completed_at',
        'created_at',
    ]

    list_filter = [
        'status',
        'created_at',
        'completed_at',
    ]

    search_fields = [
        'from_member__email',
        'to_member__email',
        'purchase__group__name',
    ]

    readonly_fields = [
        'purchase',
        'from_member',
        'to_member',
        'amount',
        'position',
        'completed_at',
        'completed_by',
        'created_at',
        'updated_at',
    ]

    date_hierarchy = 'created_at'
    ordering = ['-created_at', 'position']

    def status_display(self, obj):
        return status_badge(obj)
    status_display.short_description = 'Status'
    status_display.admin_order_field = 'status'

    actions = ['mark_as_completed']

    @admin.action(description='Mark selected as COMPLETED')
    def mark_as_completed(self, request, queryset):
        """Mark selected pending settlements as completed."""
        count = 0
        for settlement in queryset.filter(status=SettlementStatus.PENDING):
            settlement.mark_completed(completed_by=request.user)
            count += 1
        self.message_user(request, f'Marked {count} settlement(s) as completed.')

    def get_queryset(self, request):
        """Optimize query with select_related."""
        qs = super().get_queryset(request)
        return qs.select_related('from_member', 'to_member', 'purchase', 'purchase__group')
