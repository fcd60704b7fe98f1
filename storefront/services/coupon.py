import logging
from typing import List
from fastapi import HTTPException
from pydantic import ValidationError
from storefront.models.coupon import AppliedCoupon, Coupon, CouponForm, CouponValidationRow
from storefront.services.backend import BackendClient, BackendError, eq

logger = logging.getLogger(__name__)

VALIDATION_UNAVAILABLE = "Impossible de valider le code promo. Veuillez réessayer."
DEFAULT_REJECTION = "Code promo invalide"


def normalize_code(code: str) -> str:
    return (code or "").strip().upper()


class CouponValidator:
    """Asks the backend whether a code applies to a subtotal; coupon rules live there"""

    def __init__(self, backend: BackendClient):
        self.backend = backend

    def validate(self, code: str, subtotal: float) -> AppliedCoupon:
        """Validate coupon against the subtotal. Returns the accepted discount or raises HTTPException"""
        code = normalize_code(code)
        if not code:
            raise HTTPException(status_code=400, detail="Veuillez saisir un code promo")

        try:
            rows = self.backend.rpc("validate_coupon", {
                "p_coupon_code": code,
                "p_order_total": subtotal,
            })
            row = CouponValidationRow.model_validate(rows[0]) if rows else None
        except (BackendError, ValidationError, TypeError, KeyError) as e:
            logger.error(f"Coupon validation failed for {code}: {e}")
            raise HTTPException(status_code=502, detail=VALIDATION_UNAVAILABLE)

        if row is None or not row.valid:
            # Server wording is shown as-is
            raise HTTPException(status_code=400, detail=(row.message if row else None) or DEFAULT_REJECTION)

        if row.discount_type is None or row.discount_amount is None:
            logger.error(f"Coupon {code} accepted without discount details")
            raise HTTPException(status_code=502, detail=VALIDATION_UNAVAILABLE)

        return AppliedCoupon(
            code=code,
            discount_type=row.discount_type,
            discount_value=row.discount_value or 0.0,
            discount_amount=round(min(max(row.discount_amount, 0.0), subtotal), 2),
        )


class CouponService:
    """Back-office management of the coupons table"""

    def __init__(self, backend: BackendClient):
        self.backend = backend

    def _parse(self, rows: List[dict]) -> List[Coupon]:
        try:
            return [Coupon.model_validate(row) for row in rows]
        except ValidationError as e:
            logger.error(f"Unexpected coupon payload: {e}")
            raise HTTPException(status_code=502, detail="Réponse inattendue du serveur")

    def _payload(self, form: CouponForm) -> dict:
        return {
            "code": form.code,
            "description": form.description,
            "discount_type": form.discount_type.value,
            "discount_value": form.discount_value,
            "min_order_amount": form.min_order_amount,
            "max_uses": form.max_uses,
            "valid_until": form.valid_until.isoformat() if form.valid_until else None,
        }

    def list_coupons(self) -> List[Coupon]:
        try:
            rows = self.backend.select("coupons", order="created_at.desc")
        except BackendError:
            raise HTTPException(status_code=502, detail="Impossible de charger les codes promo")
        return self._parse(rows)

    def create_coupon(self, form: CouponForm) -> Coupon:
        try:
            rows = self.backend.insert("coupons", self._payload(form))
        except BackendError as e:
            if e.status_code == 409:
                raise HTTPException(status_code=409, detail="Ce code promo existe déjà")
            raise HTTPException(status_code=502, detail="Erreur lors de la création du code promo")
        return self._parse(rows)[0]

    def update_coupon(self, coupon_id: str, form: CouponForm) -> Coupon:
        return self._update(coupon_id, self._payload(form))

    def set_active(self, coupon_id: str, is_active: bool) -> Coupon:
        return self._update(coupon_id, {"is_active": is_active})

    def _update(self, coupon_id: str, values: dict) -> Coupon:
        try:
            rows = self.backend.update("coupons", values, {"id": eq(coupon_id)})
        except BackendError:
            raise HTTPException(status_code=502, detail="Erreur lors de la mise à jour du code promo")
        if not rows:
            raise HTTPException(status_code=404, detail="Code promo introuvable")
        return self._parse(rows)[0]

    def delete_coupon(self, coupon_id: str):
        try:
            rows = self.backend.delete("coupons", {"id": eq(coupon_id)})
        except BackendError:
            raise HTTPException(status_code=502, detail="Erreur lors de la suppression du code promo")
        if not rows:
            raise HTTPException(status_code=404, detail="Code promo introuvable")
        return {"message": "Code promo supprimé"}
