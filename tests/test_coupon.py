import pytest
from fastapi import HTTPException

from storefront.models.coupon import DiscountType
from storefront.services.backend import BackendError
from storefront.services.coupon import VALIDATION_UNAVAILABLE, CouponValidator


def test_code_is_trimmed_and_uppercased(fake_backend):
    coupon = CouponValidator(fake_backend).validate("  promo10 ", 100.0)

    assert fake_backend.rpc_calls("validate_coupon") == [{"p_coupon_code": "PROMO10", "p_order_total": 100.0}]
    assert coupon.code == "PROMO10"
    assert coupon.discount_type == DiscountType.PERCENTAGE
    assert coupon.discount_value == 10
    assert coupon.discount_amount == 10.0


def test_rejection_uses_server_message_verbatim(fake_backend):
    with pytest.raises(HTTPException) as exc:
        CouponValidator(fake_backend).validate("OLDCODE", 100.0)

    assert exc.value.status_code == 400
    assert exc.value.detail == "Ce code promo a expiré"


def test_no_row_is_a_rejection(fake_backend):
    fake_backend.rpc_handlers["validate_coupon"] = []

    with pytest.raises(HTTPException) as exc:
        CouponValidator(fake_backend).validate("NOPE", 100.0)

    assert exc.value.status_code == 400
    assert exc.value.detail == "Code promo invalide"


def test_remote_failure_is_generic(fake_backend):
    def unreachable(params):
        raise BackendError("Backend unreachable: timed out")

    fake_backend.rpc_handlers["validate_coupon"] = unreachable

    with pytest.raises(HTTPException) as exc:
        CouponValidator(fake_backend).validate("PROMO10", 100.0)

    assert exc.value.status_code == 502
    assert exc.value.detail == VALIDATION_UNAVAILABLE


def test_malformed_reply_is_treated_as_remote_failure(fake_backend):
    fake_backend.rpc_handlers["validate_coupon"] = [{"discount_amount": "lots"}]

    with pytest.raises(HTTPException) as exc:
        CouponValidator(fake_backend).validate("PROMO10", 100.0)

    assert exc.value.status_code == 502


def test_blank_code_never_reaches_backend(fake_backend):
    with pytest.raises(HTTPException) as exc:
        CouponValidator(fake_backend).validate("   ", 100.0)

    assert exc.value.status_code == 400
    assert fake_backend.calls == []


def test_discount_never_exceeds_subtotal(fake_backend):
    coupon = CouponValidator(fake_backend).validate("FIXE20", 12.5)
    assert coupon.discount_amount == 12.5
