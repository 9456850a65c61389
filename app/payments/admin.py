"""
Payment admin configuration.

Registers the purchase chain, payment records, wallets and webhook events.
Status fields are read-only here: every state change goes through the
service layer (the invoice payment actions call ManualPaymentResolver).
"""

from django.contrib import admin, messages

from core.exceptions import BaseApplicationError
from payments.models import (
    Checkout,
    CheckoutItem,
    Invoice,
    InvoiceItem,
    InvoicePayment,
    Order,
    OrderItem,
    Transaction,
    Wallet,
    WalletTransaction,
    WebhookEvent,
)
from payments.services import ManualPaymentResolver
from payments.state_machines import InvoicePaymentStatus
from toolkit.helpers import format_naira


class ReadOnlyInline(admin.TabularInline):
    extra = 0
    can_delete = False

    def has_add_permission(self, request, obj=None) -> bool:
        return False


# =============================================================================
# Purchase Chain
# =============================================================================


class CheckoutItemInline(ReadOnlyInline):
    model = CheckoutItem
    readonly_fields = ["product_id", "title", "quantity", "unit_price", "fixed_price", "total_price"]


@admin.register(Checkout)
class CheckoutAdmin(admin.ModelAdmin):
    list_display = ["id", "user", "status", "payment_status", "payment_method", "total", "created_at"]
    list_filter = ["status", "payment_status", "payment_method"]
    search_fields = ["id", "user__email", "order__order_number", "session_token"]
    readonly_fields = ["id", "status", "payment_status", "order", "session_token", "created_at", "updated_at"]
    inlines = [CheckoutItemInline]
    ordering = ["-created_at"]


class OrderItemInline(ReadOnlyInline):
    model = OrderItem
    readonly_fields = ["product_id", "title", "quantity", "unit_price", "total_price", "selected_unit"]


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    """
    Admin configuration for Order.

    Provides visibility into orders and the payment references used to
    reconcile them with the gateways.
    """

    list_display = [
        "order_number",
        "user",
        "total_display",
        "status",
        "payment_status",
        "payment_method",
        "created_at",
    ]
    list_filter = ["status", "payment_status", "payment_method", "created_at"]
    search_fields = ["order_number", "payment_id", "transaction_id", "user__email", "email"]
    readonly_fields = [
        "id",
        "order_number",
        "status",
        "payment_status",
        "payment_id",
        "transaction_id",
        "confirmed_at",
        "cancelled_at",
        "version",
        "created_at",
        "updated_at",
    ]
    inlines = [OrderItemInline]
    date_hierarchy = "created_at"
    ordering = ["-created_at"]

    fieldsets = (
        (None, {"fields": ("id", "order_number", "user", "email", "phone")}),
        ("Status", {"fields": ("status", "payment_status", "failure_reason", "confirmed_at", "cancelled_at")}),
        ("Amount", {"fields": ("subtotal", "tax", "shipping_cost", "discount", "total", "currency")}),
        ("Payment", {"fields": ("payment_method", "payment_id", "transaction_id")}),
        ("Delivery", {"fields": ("shipping_address", "notes"), "classes": ("collapse",)}),
        ("Timestamps", {"fields": ("version", "created_at", "updated_at")}),
    )

    def total_display(self, obj: Order) -> str:
        return format_naira(obj.total)

    total_display.short_description = "Total"

    def has_delete_permission(self, request, obj=None) -> bool:
        """Disable delete for orders (audit trail)."""
        return False


# =============================================================================
# Invoices
# =============================================================================


class InvoiceItemInline(ReadOnlyInline):
    model = InvoiceItem
    readonly_fields = ["product_id", "title", "quantity", "unit_price", "total_price"]


class InvoicePaymentInline(ReadOnlyInline):
    model = InvoicePayment
    fields = [
        "amount",
        "payment_method",
        "payment_type",
        "status",
        "reference",
        "external_transaction_id",
        "verified_by",
        "created_at",
    ]
    readonly_fields = fields
    show_change_link = True


@admin.register(Invoice)
class InvoiceAdmin(admin.ModelAdmin):
    list_display = [
        "invoice_number",
        "user",
        "status",
        "total",
        "paid_amount",
        "balance_amount",
        "due_date",
    ]
    list_filter = ["status", "payment_method", "issue_date"]
    search_fields = ["invoice_number", "user__email", "customer_email", "payment_reference"]
    readonly_fields = [
        "id",
        "order",
        "invoice_number",
        "status",
        "payment_status",
        "paid_amount",
        "balance_amount",
        "paid_at",
        "version",
        "created_at",
        "updated_at",
    ]
    inlines = [InvoiceItemInline, InvoicePaymentInline]
    ordering = ["-created_at"]

    def has_delete_permission(self, request, obj=None) -> bool:
        return False


@admin.register(InvoicePayment)
class InvoicePaymentAdmin(admin.ModelAdmin):
    """
    Admin configuration for InvoicePayment.

    Pending bank transfer claims are verified or rejected with the bulk
    actions, which run the same resolver as the staff API.
    """

    list_display = [
        "id",
        "invoice",
        "amount",
        "payment_type",
        "status",
        "bank_name",
        "reference",
        "created_at",
    ]
    list_filter = ["status", "payment_method", "payment_type"]
    search_fields = ["id", "invoice__invoice_number", "reference", "account_name"]
    readonly_fields = [
        "id",
        "invoice",
        "transaction",
        "amount",
        "payment_method",
        "payment_type",
        "status",
        "verified_by",
        "verified_at",
        "paid_at",
        "created_at",
        "updated_at",
    ]
    actions = ["verify_payments", "reject_payments"]
    ordering = ["-created_at"]

    def _resolve(self, request, queryset, action: str) -> None:
        resolved = 0
        for payment in queryset.filter(status=InvoicePaymentStatus.PENDING):
            try:
                ManualPaymentResolver.resolve(request.user, payment.id, action, notes="Resolved in admin")
                resolved += 1
            except BaseApplicationError as e:
                self.message_user(request, f"{payment.id}: {e.message}", level=messages.ERROR)
        self.message_user(request, f"{action.capitalize()}: {resolved} payment(s).")

    @admin.action(description="Verify selected bank transfers")
    def verify_payments(self, request, queryset):
        self._resolve(request, queryset, "verify")

    @admin.action(description="Reject selected bank transfers")
    def reject_payments(self, request, queryset):
        self._resolve(request, queryset, "reject")

    def has_add_permission(self, request) -> bool:
        return False

    def has_delete_permission(self, request, obj=None) -> bool:
        return False


# =============================================================================
# Transactions & Wallets
# =============================================================================


@admin.register(Transaction)
class TransactionAdmin(admin.ModelAdmin):
    list_display = ["transaction_id", "reference", "provider", "type", "amount", "status", "reconciled", "created_at"]
    list_filter = ["status", "provider", "type", "reconciled"]
    search_fields = ["transaction_id", "reference", "order__order_number", "user__email"]
    readonly_fields = [
        "id",
        "transaction_id",
        "reference",
        "status",
        "reconciled",
        "reconciled_at",
        "processed_at",
        "provider_data",
        "created_at",
        "updated_at",
    ]
    date_hierarchy = "created_at"
    ordering = ["-created_at"]

    def has_add_permission(self, request) -> bool:
        return False

    def has_delete_permission(self, request, obj=None) -> bool:
        return False


class WalletTransactionInline(ReadOnlyInline):
    model = WalletTransaction
    fk_name = "wallet"
    fields = ["reference", "type", "status", "amount", "balance_before", "balance_after", "created_at"]
    readonly_fields = fields
    ordering = ["-created_at"]


@admin.register(Wallet)
class WalletAdmin(admin.ModelAdmin):
    list_display = ["id", "user", "balance", "currency", "is_active", "is_system"]
    list_filter = ["is_active", "is_system"]
    search_fields = ["id", "user__email"]
    # Balance only changes through WalletService
    readonly_fields = ["id", "user", "balance", "is_system", "version", "created_at", "updated_at"]
    inlines = [WalletTransactionInline]

    def has_delete_permission(self, request, obj=None) -> bool:
        return False


# =============================================================================
# Webhooks
# =============================================================================


@admin.register(WebhookEvent)
class WebhookEventAdmin(admin.ModelAdmin):
    list_display = ["event_id", "provider", "event_type", "status", "attempts", "created_at"]
    list_filter = ["provider", "status", "event_type"]
    search_fields = ["event_id"]
    readonly_fields = [
        "id",
        "provider",
        "event_id",
        "event_type",
        "payload",
        "processed_at",
        "attempts",
        "created_at",
        "updated_at",
    ]
    date_hierarchy = "created_at"
    ordering = ["-created_at"]

    fieldsets = (
        (None, {"fields": ("id", "provider", "event_id", "event_type", "status")}),
        ("Processing", {"fields": ("processed_at", "attempts")}),
        ("Error Info", {"fields": ("error_message",), "classes": ("collapse",)}),
        ("Payload", {"fields": ("payload",), "classes": ("collapse",)}),
        ("Timestamps", {"fields": ("created_at", "updated_at")}),
    )

    def has_delete_permission(self, request, obj=None) -> bool:
        """Disable delete for webhook events (audit trail)."""
        return False

    def has_add_permission(self, request) -> bool:
        return False
