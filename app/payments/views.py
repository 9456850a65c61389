"""
DRF views for the payments app.

Endpoints (prefixed with /api/v1/payments/):
    POST checkout/                            - Submit a checkout
    GET  checkout/                            - List own checkouts
    POST verify/                              - Verify a gateway payment
    GET  orders/                              - List own orders
    GET  orders/{order_number}/               - Order detail with invoice
    POST invoices/payments/                   - Record a bank transfer claim
    GET  invoices/{invoice_ref}/payments/     - Invoice payment history
    POST admin/invoice-payments/{id}/resolve/ - Verify or reject a claim (staff)
    PATCH  admin/orders/{order_number}/       - Advance fulfilment (staff)
    DELETE admin/orders/{order_number}/       - Cancel an unpaid order (staff)
    GET  wallet/                              - Wallet balance
    GET  wallet/transactions/                 - Wallet history
    POST wallet/deposits/                     - Start a wallet top-up
    POST wallet/deposits/verify/              - Confirm a wallet top-up

Security:
    - Every endpoint requires authentication; webhooks live in
      payments.webhooks.views
    - request.user is read here once and passed into the services
    - Domain errors are returned as {"error", "error_code", "details"}
      with the status of their category
"""

from __future__ import annotations

import logging

from drf_spectacular.utils import OpenApiParameter, OpenApiResponse, extend_schema
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from core.exceptions import BaseApplicationError
from payments.models import Checkout, Order
from payments.serializers import (
    CancelOrderSerializer,
    CheckoutOutcomeSerializer,
    CheckoutSerializer,
    InitializeDepositSerializer,
    InvoicePaymentSerializer,
    OrderDetailSerializer,
    OrderSerializer,
    PaginationSerializer,
    RecordManualPaymentSerializer,
    ResolveManualPaymentSerializer,
    SubmitCheckoutSerializer,
    TransactionSerializer,
    UpdateOrderStatusSerializer,
    VerifyDepositSerializer,
    VerifyPaymentSerializer,
    WalletSerializer,
    WalletTransactionSerializer,
)
from payments.services import (
    BANK_TRANSFER_RECORDED_MESSAGE,
    InvoicePaymentService,
    ManualPaymentResolver,
    OrderService,
    PaymentVerificationService,
)
from payments.services.checkout_orchestrator import CheckoutOrchestrator
from payments.strategies import OutcomeStatus, SubmitCheckoutParams
from payments.wallet.services import WalletService

logger = logging.getLogger(__name__)

PAGINATION_PARAMETERS = [
    OpenApiParameter(
        name="limit",
        type=int,
        location=OpenApiParameter.QUERY,
        description="Page size",
        required=False,
    ),
    OpenApiParameter(
        name="offset",
        type=int,
        location=OpenApiParameter.QUERY,
        description="Number of records to skip",
        required=False,
    ),
]


def error_response(exc: BaseApplicationError) -> Response:
    return Response(exc.to_dict(), status=exc.status_code)


def get_pagination(request) -> tuple[int, int]:
    serializer = PaginationSerializer(data=request.query_params)
    serializer.is_valid(raise_exception=True)
    return serializer.validated_data["limit"], serializer.validated_data["offset"]


# =============================================================================
# Checkout
# =============================================================================


class CheckoutView(APIView):
    """
    Submit a checkout or list the user's checkout sessions.

    POST /api/v1/payments/checkout/

    Request body:
        {
            "payment_method": "paystack",
            "cart_items": [{"product_id": "sku-1", "title": "Rice", "quantity": 2, "unit_price": "5000.00"}],
            "shipping_address": {"street": "1 Marina", "city": "Lagos"}
        }

    Returns:
        200 with the outcome (success or pending), 400 for a failed outcome
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="submit_checkout",
        summary="Submit checkout",
        description=(
            "Price the cart and pay for it. An unresolved order from the last "
            "24 hours is resumed instead of creating a new one."
        ),
        request=SubmitCheckoutSerializer,
        responses={
            200: OpenApiResponse(response=CheckoutOutcomeSerializer, description="Paid or awaiting payment"),
            400: OpenApiResponse(description="Invalid cart or failed payment"),
        },
        tags=["Payments - Checkout"],
    )
    def post(self, request):
        serializer = SubmitCheckoutSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            outcome = CheckoutOrchestrator.submit_checkout(
                request.user,
                SubmitCheckoutParams(
                    payment_method=data["payment_method"],
                    cart_items=[dict(item) for item in data["cart_items"]],
                    shipping_address=data["shipping_address"],
                    billing_address=data.get("billing_address"),
                    discount=data["discount"],
                ),
            )
        except BaseApplicationError as e:
            return error_response(e)

        response_status = (
            status.HTTP_400_BAD_REQUEST
            if outcome.status == OutcomeStatus.FAILED
            else status.HTTP_200_OK
        )
        return Response(CheckoutOutcomeSerializer(outcome).data, status=response_status)

    @extend_schema(
        operation_id="list_checkouts",
        summary="List checkouts",
        parameters=PAGINATION_PARAMETERS,
        responses={200: CheckoutSerializer(many=True)},
        tags=["Payments - Checkout"],
    )
    def get(self, request):
        limit, offset = get_pagination(request)
        checkouts = (
            Checkout.objects.filter(user=request.user)
            .select_related("order")
            .order_by("-created_at")[offset : offset + limit]
        )
        return Response(CheckoutSerializer(checkouts, many=True).data)


class VerifyPaymentView(APIView):
    """
    Verify a gateway payment when the customer returns from the gateway.

    POST /api/v1/payments/verify/
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="verify_payment",
        summary="Verify payment",
        description=(
            "Look up the order by payment reference, provider transaction id "
            "or order number and settle it with the gateway's answer."
        ),
        request=VerifyPaymentSerializer,
        responses={
            200: OpenApiResponse(description="Verification outcome"),
            403: OpenApiResponse(description="Order belongs to another user"),
            404: OpenApiResponse(description="No order for the reference"),
            502: OpenApiResponse(description="Gateway unavailable"),
        },
        tags=["Payments - Checkout"],
    )
    def post(self, request):
        serializer = VerifyPaymentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            outcome = PaymentVerificationService.verify_payment(
                serializer.validated_data["reference"],
                method=serializer.validated_data["payment_method"],
                user=request.user,
            )
        except BaseApplicationError as e:
            return error_response(e)

        return Response(
            {
                "verified": outcome.verified,
                "status": outcome.status,
                "message": outcome.message,
                "order": OrderSerializer(outcome.order).data,
                "payment": TransactionSerializer(outcome.payment).data if outcome.payment else None,
            }
        )


# =============================================================================
# Orders
# =============================================================================


class OrderListView(APIView):
    """GET /api/v1/payments/orders/"""

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="list_orders",
        summary="List orders",
        parameters=PAGINATION_PARAMETERS,
        responses={200: OrderSerializer(many=True)},
        tags=["Payments - Orders"],
    )
    def get(self, request):
        limit, offset = get_pagination(request)
        orders = Order.objects.filter(user=request.user).order_by("-created_at")[
            offset : offset + limit
        ]
        return Response(OrderSerializer(orders, many=True).data)


class OrderDetailView(APIView):
    """GET /api/v1/payments/orders/{order_number}/"""

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="get_order",
        summary="Get order",
        responses={
            200: OrderDetailSerializer,
            404: OpenApiResponse(description="Order not found"),
        },
        tags=["Payments - Orders"],
    )
    def get(self, request, order_number: str):
        order = (
            Order.objects.filter(user=request.user, order_number=order_number)
            .prefetch_related("items")
            .first()
        )
        if order is None:
            return Response(
                {"error": "Order not found", "error_code": "ORDER_NOT_FOUND"},
                status=status.HTTP_404_NOT_FOUND,
            )
        return Response(OrderDetailSerializer(order).data)


# =============================================================================
# Invoice Payments
# =============================================================================


class InvoicePaymentCreateView(APIView):
    """
    Record a bank transfer against an invoice.

    POST /api/v1/payments/invoices/payments/
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="record_manual_payment",
        summary="Record bank transfer",
        request=RecordManualPaymentSerializer,
        responses={
            201: OpenApiResponse(response=InvoicePaymentSerializer, description="Claim recorded"),
            400: OpenApiResponse(description="Invalid amount or overpayment"),
            404: OpenApiResponse(description="Invoice not found"),
            409: OpenApiResponse(description="Invoice already paid or cancelled"),
        },
        tags=["Payments - Invoices"],
    )
    def post(self, request):
        serializer = RecordManualPaymentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            payment = InvoicePaymentService.record_manual_payment(
                request.user,
                data["invoice_ref"],
                data["amount"],
                bank_details=dict(data.get("bank_details") or {}),
                notes=data["notes"],
            )
        except BaseApplicationError as e:
            return error_response(e)

        return Response(
            {
                "message": BANK_TRANSFER_RECORDED_MESSAGE,
                "payment": InvoicePaymentSerializer(payment).data,
            },
            status=status.HTTP_201_CREATED,
        )


class InvoicePaymentListView(APIView):
    """GET /api/v1/payments/invoices/{invoice_ref}/payments/"""

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="list_invoice_payments",
        summary="List invoice payments",
        responses={200: InvoicePaymentSerializer(many=True)},
        tags=["Payments - Invoices"],
    )
    def get(self, request, invoice_ref: str):
        try:
            payments = InvoicePaymentService.list_payments(request.user, invoice_ref)
        except BaseApplicationError as e:
            return error_response(e)
        return Response(InvoicePaymentSerializer(payments, many=True).data)


class ResolveInvoicePaymentView(APIView):
    """
    Verify or reject a pending bank transfer claim.

    POST /api/v1/payments/admin/invoice-payments/{payment_id}/resolve/

    Staff only; the staff check is made by ManualPaymentResolver.
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="resolve_invoice_payment",
        summary="Resolve bank transfer",
        request=ResolveManualPaymentSerializer,
        responses={
            200: InvoicePaymentSerializer,
            403: OpenApiResponse(description="Not staff"),
            404: OpenApiResponse(description="Payment not found"),
            409: OpenApiResponse(description="Payment already processed"),
        },
        tags=["Payments - Admin"],
    )
    def post(self, request, payment_id: str):
        serializer = ResolveManualPaymentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            payment = ManualPaymentResolver.resolve(
                request.user,
                payment_id,
                serializer.validated_data["action"],
                notes=serializer.validated_data["notes"],
            )
        except BaseApplicationError as e:
            return error_response(e)

        return Response(InvoicePaymentSerializer(payment).data)


class AdminOrderView(APIView):
    """
    Staff order management.

    PATCH  /api/v1/payments/admin/orders/{order_number}/ - Advance fulfilment
    DELETE /api/v1/payments/admin/orders/{order_number}/ - Cancel an unpaid order

    Staff only; the staff check is made by OrderService.
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="update_order_status",
        summary="Update order status",
        request=UpdateOrderStatusSerializer,
        responses={
            200: OrderDetailSerializer,
            403: OpenApiResponse(description="Not staff"),
            404: OpenApiResponse(description="Order not found"),
            409: OpenApiResponse(description="Order is not at the preceding step"),
        },
        tags=["Payments - Admin"],
    )
    def patch(self, request, order_number: str):
        serializer = UpdateOrderStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            order = OrderService.update_status(
                request.user, order_number, serializer.validated_data["status"]
            )
        except BaseApplicationError as e:
            return error_response(e)

        return Response(OrderDetailSerializer(order).data)

    @extend_schema(
        operation_id="cancel_order",
        summary="Cancel order",
        request=CancelOrderSerializer,
        responses={
            200: OrderDetailSerializer,
            403: OpenApiResponse(description="Not staff"),
            404: OpenApiResponse(description="Order not found"),
            409: OpenApiResponse(description="Order is paid or already cancelled"),
        },
        tags=["Payments - Admin"],
    )
    def delete(self, request, order_number: str):
        serializer = CancelOrderSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            order = OrderService.cancel_order(
                request.user, order_number, reason=serializer.validated_data["reason"]
            )
        except BaseApplicationError as e:
            return error_response(e)

        return Response(OrderDetailSerializer(order).data)


# =============================================================================
# Wallet
# =============================================================================


class WalletView(APIView):
    """GET /api/v1/payments/wallet/"""

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="get_wallet",
        summary="Get wallet balance",
        responses={200: WalletSerializer, 404: OpenApiResponse(description="No wallet")},
        tags=["Payments - Wallet"],
    )
    def get(self, request):
        try:
            wallet = WalletService.get_wallet(request.user)
        except BaseApplicationError as e:
            return error_response(e)
        return Response(WalletSerializer(wallet).data)


class WalletTransactionsView(APIView):
    """GET /api/v1/payments/wallet/transactions/"""

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="list_wallet_transactions",
        summary="Wallet history",
        parameters=PAGINATION_PARAMETERS,
        responses={200: WalletTransactionSerializer(many=True)},
        tags=["Payments - Wallet"],
    )
    def get(self, request):
        limit, offset = get_pagination(request)
        try:
            entries = WalletService.get_history(request.user, limit=limit, offset=offset)
        except BaseApplicationError as e:
            return error_response(e)
        return Response(WalletTransactionSerializer(entries, many=True).data)


class DepositInitView(APIView):
    """POST /api/v1/payments/wallet/deposits/"""

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="initialize_deposit",
        summary="Start wallet top-up",
        request=InitializeDepositSerializer,
        responses={
            201: OpenApiResponse(description="Authorization URL for the Paystack page"),
            400: OpenApiResponse(description="Amount below the minimum deposit"),
            502: OpenApiResponse(description="Gateway unavailable"),
        },
        tags=["Payments - Wallet"],
    )
    def post(self, request):
        serializer = InitializeDepositSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            result = WalletService.initialize_deposit(
                request.user, serializer.validated_data["amount"]
            )
        except BaseApplicationError as e:
            return error_response(e)

        return Response(
            {
                "reference": result.reference,
                "authorization_url": result.authorization_url,
                "amount": str(result.amount),
            },
            status=status.HTTP_201_CREATED,
        )


class DepositVerifyView(APIView):
    """POST /api/v1/payments/wallet/deposits/verify/"""

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="verify_deposit",
        summary="Confirm wallet top-up",
        request=VerifyDepositSerializer,
        responses={
            200: OpenApiResponse(description="Deposit outcome and wallet balance"),
            404: OpenApiResponse(description="Deposit not found"),
        },
        tags=["Payments - Wallet"],
    )
    def post(self, request):
        serializer = VerifyDepositSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            result = WalletService.verify_deposit(
                request.user, serializer.validated_data["reference"]
            )
        except BaseApplicationError as e:
            return error_response(e)

        return Response(
            {
                "outcome": result.outcome,
                "success": result.success,
                "reference": result.reference,
                "amount": str(result.amount),
                "balance": str(result.balance),
            }
        )
