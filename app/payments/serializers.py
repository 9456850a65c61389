"""
Serializers for the payments API.

Request serializers validate shape only; business rules (stock of the
cart, invoice ownership, balances) are enforced by the services.

Serializers:
    Requests:
        CartItemSerializer / SubmitCheckoutSerializer: Checkout submission
        VerifyPaymentSerializer: Gateway payment verification
        RecordManualPaymentSerializer: Bank transfer claim
        ResolveManualPaymentSerializer: Staff verify/reject
        UpdateOrderStatusSerializer / CancelOrderSerializer: Staff order management
        InitializeDepositSerializer / VerifyDepositSerializer: Wallet top-up
        PaginationSerializer: limit/offset query parameters
    Responses:
        CheckoutSerializer, OrderSerializer, OrderDetailSerializer,
        InvoiceSerializer, InvoicePaymentSerializer, TransactionSerializer,
        WalletSerializer, WalletTransactionSerializer, CheckoutOutcomeSerializer

Usage:
    from payments.serializers import SubmitCheckoutSerializer

    serializer = SubmitCheckoutSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
"""

from __future__ import annotations

from decimal import Decimal

from rest_framework import serializers

from payments.models import (
    Checkout,
    Invoice,
    InvoiceItem,
    InvoicePayment,
    Order,
    OrderItem,
    Transaction,
    Wallet,
    WalletTransaction,
)
from payments.state_machines import OrderStatus, PaymentMethod

MONEY = {"max_digits": 14, "decimal_places": 2}


# =============================================================================
# Request Serializers
# =============================================================================


class CartItemSerializer(serializers.Serializer):
    """One cart line as submitted by the storefront."""

    product_id = serializers.CharField(max_length=100)
    title = serializers.CharField(max_length=255)
    quantity = serializers.IntegerField(min_value=1)
    unit_price = serializers.DecimalField(**MONEY, min_value=Decimal("0.00"))
    fixed_price = serializers.DecimalField(**MONEY, required=False, allow_null=True)
    selected_unit = serializers.CharField(max_length=50, required=False, allow_blank=True)


class SubmitCheckoutSerializer(serializers.Serializer):
    """
    Checkout submission.

    payment_method is a plain string: unknown methods are rejected by the
    orchestrator with the list of supported methods.
    """

    payment_method = serializers.CharField(max_length=20)
    cart_items = CartItemSerializer(many=True, allow_empty=True)
    shipping_address = serializers.DictField()
    billing_address = serializers.DictField(required=False, allow_null=True)
    discount = serializers.DecimalField(**MONEY, required=False, default=Decimal("0.00"))


class VerifyPaymentSerializer(serializers.Serializer):
    """Reference may be a payment reference, provider transaction id or order number."""

    reference = serializers.CharField(max_length=100)
    payment_method = serializers.ChoiceField(
        choices=[PaymentMethod.PAYSTACK, PaymentMethod.OPAY],
    )


class BankDetailsSerializer(serializers.Serializer):
    bank_name = serializers.CharField(max_length=100, required=False, allow_blank=True)
    account_number = serializers.CharField(max_length=20, required=False, allow_blank=True)
    account_name = serializers.CharField(max_length=255, required=False, allow_blank=True)
    reference = serializers.CharField(max_length=100, required=False, allow_blank=True)
    transfer_date = serializers.DateField(required=False, allow_null=True)


class RecordManualPaymentSerializer(serializers.Serializer):
    """Bank transfer claim against an invoice (id or invoice number)."""

    invoice_ref = serializers.CharField(max_length=100)
    amount = serializers.DecimalField(**MONEY)
    bank_details = BankDetailsSerializer(required=False)
    notes = serializers.CharField(required=False, allow_blank=True, default="")


class ResolveManualPaymentSerializer(serializers.Serializer):
    action = serializers.ChoiceField(choices=["verify", "reject"])
    notes = serializers.CharField(required=False, allow_blank=True, default="")


class UpdateOrderStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(
        choices=[OrderStatus.PROCESSING, OrderStatus.SHIPPED, OrderStatus.DELIVERED]
    )


class CancelOrderSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, default="", max_length=500)


class InitializeDepositSerializer(serializers.Serializer):
    amount = serializers.DecimalField(**MONEY)


class VerifyDepositSerializer(serializers.Serializer):
    reference = serializers.CharField(max_length=100)


class PaginationSerializer(serializers.Serializer):
    """limit/offset query parameters; limit is capped by the services."""

    limit = serializers.IntegerField(required=False, min_value=1, default=20)
    offset = serializers.IntegerField(required=False, min_value=0, default=0)


# =============================================================================
# Response Serializers
# =============================================================================


class OrderItemSerializer(serializers.ModelSerializer):
    class Meta:
        model = OrderItem
        fields = ["product_id", "title", "quantity", "unit_price", "total_price", "selected_unit"]
        read_only_fields = fields


class InvoiceItemSerializer(serializers.ModelSerializer):
    class Meta:
        model = InvoiceItem
        fields = ["product_id", "title", "quantity", "unit_price", "total_price"]
        read_only_fields = fields


class InvoicePaymentSerializer(serializers.ModelSerializer):
    """
    Serializer for InvoicePayment model.

    verified_by is reported as the verifier's email, or None while the
    claim is pending.
    """

    verified_by = serializers.SerializerMethodField()

    class Meta:
        model = InvoicePayment
        fields = [
            "id",
            "amount",
            "payment_method",
            "payment_type",
            "status",
            "reference",
            "external_transaction_id",
            "bank_name",
            "account_number",
            "account_name",
            "transfer_date",
            "verified_by",
            "verified_at",
            "paid_at",
            "notes",
            "created_at",
        ]
        read_only_fields = fields

    def get_verified_by(self, obj: InvoicePayment) -> str | None:
        return obj.verified_by.email if obj.verified_by else None


class InvoiceSerializer(serializers.ModelSerializer):
    items = InvoiceItemSerializer(many=True, read_only=True)

    class Meta:
        model = Invoice
        fields = [
            "id",
            "invoice_number",
            "status",
            "payment_status",
            "subtotal",
            "tax",
            "shipping_cost",
            "discount",
            "total",
            "paid_amount",
            "balance_amount",
            "currency",
            "issue_date",
            "due_date",
            "paid_at",
            "payment_method",
            "customer_name",
            "customer_email",
            "billing_address",
            "company_name",
            "company_email",
            "terms",
            "footer",
            "items",
        ]
        read_only_fields = fields


class OrderSerializer(serializers.ModelSerializer):
    class Meta:
        model = Order
        fields = [
            "id",
            "order_number",
            "status",
            "payment_status",
            "payment_method",
            "subtotal",
            "shipping_cost",
            "discount",
            "total",
            "currency",
            "failure_reason",
            "confirmed_at",
            "cancelled_at",
            "created_at",
        ]
        read_only_fields = fields


class OrderDetailSerializer(OrderSerializer):
    """Order with its lines, shipping address and invoice."""

    items = OrderItemSerializer(many=True, read_only=True)
    invoice = serializers.SerializerMethodField()

    class Meta(OrderSerializer.Meta):
        fields = OrderSerializer.Meta.fields + ["shipping_address", "items", "invoice"]
        read_only_fields = fields

    def get_invoice(self, obj: Order) -> dict | None:
        invoice = Invoice.objects.filter(order=obj).prefetch_related("items").first()
        return InvoiceSerializer(invoice).data if invoice else None


class CheckoutSerializer(serializers.ModelSerializer):
    order_number = serializers.CharField(source="order.order_number", read_only=True, default=None)

    class Meta:
        model = Checkout
        fields = [
            "id",
            "status",
            "payment_status",
            "payment_method",
            "total",
            "currency",
            "order_number",
            "expires_at",
            "created_at",
        ]
        read_only_fields = fields


class TransactionSerializer(serializers.ModelSerializer):
    class Meta:
        model = Transaction
        fields = [
            "transaction_id",
            "reference",
            "provider",
            "type",
            "amount",
            "currency",
            "status",
            "processed_at",
        ]
        read_only_fields = fields


class WalletSerializer(serializers.ModelSerializer):
    class Meta:
        model = Wallet
        fields = ["balance", "currency", "is_active"]
        read_only_fields = fields


class WalletTransactionSerializer(serializers.ModelSerializer):
    class Meta:
        model = WalletTransaction
        fields = [
            "id",
            "reference",
            "type",
            "status",
            "amount",
            "balance_before",
            "balance_after",
            "description",
            "created_at",
        ]
        read_only_fields = fields


class CheckoutOutcomeSerializer(serializers.Serializer):
    """Response body of a checkout submission."""

    status = serializers.CharField()
    order_number = serializers.CharField(allow_null=True)
    redirect_url = serializers.CharField(allow_null=True)
    reason = serializers.CharField(allow_null=True)
    error_code = serializers.CharField(allow_null=True)
    payment_reference = serializers.CharField(allow_null=True)
    is_retry = serializers.BooleanField()
    bank_transfer = serializers.DictField(allow_null=True)
    invoice = InvoiceSerializer(allow_null=True)
