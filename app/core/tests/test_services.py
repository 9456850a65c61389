"""
Tests for the service base classes and the application error taxonomy.
"""

import pytest

from core.exceptions import (
    BaseApplicationError,
    ConflictError,
    ExternalServiceError,
    InsufficientResourceError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from core.services import BaseService, ServiceResult


class TestServiceResult:
    def test_success(self):
        result = ServiceResult.success({"order_number": "ORD-1"})

        assert result
        assert result.to_response() == {"success": True, "data": {"order_number": "ORD-1"}}

    def test_failure(self):
        result = ServiceResult.failure("No order", error_code="ORDER_NOT_FOUND")

        assert not result
        assert result.data is None
        assert result.to_response() == {
            "success": False,
            "error": "No order",
            "error_code": "ORDER_NOT_FOUND",
        }

    def test_from_application_error(self):
        result = ServiceResult.from_exception(NotFoundError("Wallet not found", error_code="WALLET_NOT_FOUND"))

        assert result.error == "Wallet not found"
        assert result.error_code == "WALLET_NOT_FOUND"

    def test_from_other_exception(self):
        result = ServiceResult.from_exception(KeyError("reference"))

        assert result.error_code == "KEYERROR"

    def test_map_skips_failures(self):
        failed = ServiceResult.failure("nope")

        assert ServiceResult.success(2).map(lambda n: n * 10).data == 20
        assert failed.map(lambda n: n * 10) is failed


class TestApplicationErrors:
    @pytest.mark.parametrize(
        "error_class,status_code",
        [
            (ValidationError, 400),
            (NotFoundError, 404),
            (PermissionDeniedError, 403),
            (ConflictError, 409),
            (InsufficientResourceError, 402),
            (ExternalServiceError, 502),
        ],
    )
    def test_category_status_codes(self, error_class, status_code):
        assert error_class("x").status_code == status_code

    def test_to_dict_includes_details_only_when_present(self):
        bare = BaseApplicationError("Broken")
        detailed = ConflictError("Payment has already been processed", details={"status": "PAID"})

        assert bare.to_dict() == {"error": "Broken", "error_code": "APPLICATION_ERROR"}
        assert detailed.to_dict()["details"] == {"status": "PAID"}

    def test_str_carries_code(self):
        assert str(NotFoundError("Order missing", error_code="ORDER_NOT_FOUND")) == "[ORDER_NOT_FOUND] Order missing"


class TestBaseService:
    class TopUpService(BaseService):
        pass

    def test_logger_named_after_service(self):
        assert self.TopUpService.get_logger().name == f"{__name__}.TopUpService"

    @pytest.mark.django_db
    def test_atomic_rolls_back_on_error(self, django_user_model):
        with pytest.raises(ConflictError):
            with self.TopUpService.atomic():
                django_user_model.objects.create(email="ada@example.com")
                raise ConflictError("Wallet is frozen")

        assert not django_user_model.objects.filter(email="ada@example.com").exists()
