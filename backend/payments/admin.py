from django.contrib import admin, messages

from .exceptions import InvalidStatusTransition, ReconciliationConflict
from .models import (
    BankConfirmation,
    Debt,
    Payment,
    PaymentConcept,
    PaymentStatusTransition,
    PendingPayment,
    Receipt,
)
from .reconciliation import settle


class ReadOnlyAdmin(admin.ModelAdmin):
    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(PaymentConcept)
class PaymentConceptAdmin(admin.ModelAdmin):
    list_display = ("name", "description")
    search_fields = ("name",)


@admin.register(Debt)
class DebtAdmin(admin.ModelAdmin):
    list_display = ("id", "student", "concept", "amount", "due_date", "paid", "paid_at")
    list_filter = ("paid", "concept")
    search_fields = ("student__full_name", "student__enrollment_code")
    readonly_fields = ("paid", "paid_at")
    date_hierarchy = "due_date"


class PaymentStatusTransitionInline(admin.TabularInline):
    model = PaymentStatusTransition
    extra = 0
    can_delete = False
    readonly_fields = ("from_status", "to_status", "source", "detail", "created_at")

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(PendingPayment)
class PendingPaymentAdmin(ReadOnlyAdmin):
    list_display = ("reference", "student", "concept", "amount", "status", "expires_at", "bank_transaction_id", "receipt_handle")
    list_filter = ("status",)
    search_fields = ("reference", "bank_transaction_id", "student__full_name")
    inlines = [PaymentStatusTransitionInline]
    actions = ["settle_selected"]

    @admin.action(description="Liquidar referencias confirmadas")
    def settle_selected(self, request, queryset):
        settled = 0
        for pending in queryset.filter(status=PendingPayment.Status.CONFIRMED):
            try:
                settle(pending.reference, source="admin_panel", settled_by=request.user)
                settled += 1
            except (InvalidStatusTransition, ReconciliationConflict) as exc:
                self.message_user(request, f"{pending.reference}: {exc.detail}", level=messages.WARNING)
        self.message_user(request, f"Referencias liquidadas: {settled}")


@admin.register(Payment)
class PaymentAdmin(ReadOnlyAdmin):
    list_display = ("id", "student", "concept", "amount", "method", "reference", "paid_at")
    search_fields = ("reference", "student__full_name")


@admin.register(Receipt)
class ReceiptAdmin(ReadOnlyAdmin):
    list_display = ("handle", "payment", "issued_at")
    search_fields = ("handle",)


@admin.register(BankConfirmation)
class BankConfirmationAdmin(ReadOnlyAdmin):
    list_display = ("provider", "transaction_id", "reference", "amount", "received_at")
    search_fields = ("transaction_id", "reference")
