# payments/admin.py

from django.contrib import admin
from .models import BatchRevenueAggregate, PaymentAccount, PaymentProof, PaymentTransaction


# =============================================================================
# INLINE ADMINS
# =============================================================================

class PaymentTransactionInline(admin.TabularInline):
    model = PaymentTransaction
    extra = 0
    can_delete = False
    fields = ('order_id', 'amount_paid', 'payment_method', 'status', 'payment_id', 'payment_date')
    readonly_fields = fields


class PaymentProofInline(admin.TabularInline):
    model = PaymentProof
    extra = 0
    can_delete = False
    fields = ('file', 'file_type', 'uploaded_by', 'status', 'is_active', 'reviewed_at')
    readonly_fields = fields


# =============================================================================
# MODEL ADMINS
# =============================================================================

@admin.register(PaymentAccount)
class PaymentAccountAdmin(admin.ModelAdmin):
    list_display = ('student', 'batch', 'full_amount_payable', 'amount_paid', 'payment_completed')
    list_filter = ('payment_completed', 'batch')
    search_fields = ('student__first_name', 'student__last_name', 'student__registration_number')
    # reconciliation owns these
    readonly_fields = ('full_amount_payable', 'amount_paid', 'payment_completed', 'created_at', 'updated_at')
    inlines = [PaymentTransactionInline]


@admin.register(PaymentTransaction)
class PaymentTransactionAdmin(admin.ModelAdmin):
    list_display = ('order_id', 'account', 'amount_paid', 'payment_method', 'status', 'payment_date')
    list_filter = ('status', 'payment_method')
    search_fields = ('order_id', 'payment_id')
    readonly_fields = (
        'account', 'order_id', 'amount_paid', 'payment_method',
        'status', 'payment_id', 'payment_date', 'created_at'
    )
    inlines = [PaymentProofInline]

    def has_add_permission(self, request):
        return False


@admin.register(PaymentProof)
class PaymentProofAdmin(admin.ModelAdmin):
    list_display = ('file_name', 'transaction', 'status', 'is_active', 'uploaded_by', 'reviewed_at')
    list_filter = ('status', 'is_active')
    readonly_fields = ('transaction', 'file', 'file_name', 'file_type', 'uploaded_by',
                       'status', 'is_active', 'reviewed_by_id', 'reviewed_at', 'review_notes')

    def has_add_permission(self, request):
        return False


@admin.register(BatchRevenueAggregate)
class BatchRevenueAggregateAdmin(admin.ModelAdmin):
    list_display = ('batch', 'no_of_participants', 'paid_no_of_participants',
                    'revenue_received_total', 'all_fees_collected_status')
    readonly_fields = ('batch', 'no_of_participants', 'paid_no_of_participants',
                       'revenue_received_total', 'all_fees_collected_status')
    actions = ['resync_selected']

    def has_add_permission(self, request):
        return False

    @admin.action(description="Resync selected batches from the ledger")
    def resync_selected(self, request, queryset):
        from payments.services import ReconciliationService
        for aggregate in queryset.select_related('batch'):
            ReconciliationService.resync_batch(aggregate.batch, user=request.user, request=request)
        self.message_user(request, f"Resynced {queryset.count()} batch(es).")
