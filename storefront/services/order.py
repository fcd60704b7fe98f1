import logging
import threading
from typing import List, Optional, Set
from fastapi import HTTPException
from pydantic import ValidationError
from storefront.models.coupon import AppliedCoupon
from storefront.models.order import (
    CheckoutForm,
    CheckoutResult,
    CreatedOrder,
    DeliveryMethod,
    FailedOrderItem,
    Order,
    OrderItem,
    OrderStatus,
    SubmissionState,
)
from storefront.services.backend import BackendClient, BackendError, eq
from storefront.services.cache import QueryCache, invalidate_product_queries
from storefront.services.cart import CartStore
from storefront.services.coupon import CouponValidator
from storefront.services.shop_settings import ShopSettingsService

logger = logging.getLogger(__name__)

ORDER_FAILED = "Une erreur est survenue lors de la commande. Veuillez réessayer."

# Carts with a checkout currently running in this process
_in_flight: Set[str] = set()
_in_flight_lock = threading.Lock()


def compute_total(subtotal: float, discount_amount: float, delivery_fee: float) -> float:
    """Payable amount, never below zero"""
    return round(max(0.0, subtotal - discount_amount + delivery_fee), 2)


class OrderSubmitter:
    """
    Turns a cart into a remote order.

    idle -> submitting -> succeeded, or idle -> submitting -> failed. Only a
    failure before the order header exists leads to failed; the cart is then
    left untouched so the shopper can retry. Once the header exists, item and
    coupon-usage failures are logged and the submission still succeeds.
    """

    def __init__(
        self,
        backend: BackendClient,
        cart: CartStore,
        shop_settings: ShopSettingsService,
        cache: QueryCache,
        coupon_validator: Optional[CouponValidator] = None,
    ):
        self.backend = backend
        self.cart = cart
        self.shop_settings = shop_settings
        self.cache = cache
        self.coupon_validator = coupon_validator or CouponValidator(backend)
        self.state = SubmissionState.IDLE

    def submit(self, form: CheckoutForm) -> CheckoutResult:
        self._check_guards(form)

        with _in_flight_lock:
            if self.cart.cart_id in _in_flight:
                raise HTTPException(status_code=409, detail="Une commande est déjà en cours de traitement")
            _in_flight.add(self.cart.cart_id)

        self.state = SubmissionState.SUBMITTING
        try:
            result = self._run(form)
        except HTTPException:
            self.state = SubmissionState.FAILED
            raise
        except Exception:
            logger.exception(f"Unexpected error during checkout of cart {self.cart.cart_id}")
            self.state = SubmissionState.FAILED
            raise HTTPException(status_code=500, detail=ORDER_FAILED)
        finally:
            with _in_flight_lock:
                _in_flight.discard(self.cart.cart_id)

        self.state = SubmissionState.SUCCEEDED
        return result

    def _check_guards(self, form: CheckoutForm) -> None:
        if self.state == SubmissionState.SUBMITTING:
            raise HTTPException(status_code=409, detail="Une commande est déjà en cours de traitement")
        if self.state == SubmissionState.SUCCEEDED:
            raise HTTPException(status_code=409, detail="Cette commande a déjà été envoyée")
        if self.cart.is_empty:
            raise HTTPException(status_code=400, detail="Ajoutez des produits à votre panier avant de commander")
        if form.missing_address:
            raise HTTPException(status_code=400, detail="L'adresse de livraison est requise")

    def _run(self, form: CheckoutForm) -> CheckoutResult:
        items = self.cart.items
        subtotal = self.cart.subtotal

        # The applied discount is only trusted against the subtotal being paid
        coupon: Optional[AppliedCoupon] = None
        if form.coupon_code and form.coupon_code.strip():
            coupon = self.coupon_validator.validate(form.coupon_code, subtotal)
        discount_amount = coupon.discount_amount if coupon else 0.0

        delivery_fee = 0.0
        if form.delivery_method == DeliveryMethod.DELIVERY:
            delivery_fee = self.shop_settings.delivery_price()
        total = compute_total(subtotal, discount_amount, delivery_fee)

        order = self._create_order(form, total, coupon, discount_amount)

        failed_items = self._create_order_items(order, items)

        if coupon:
            self._increment_coupon_usage(coupon.code)

        self.cart.clear()
        invalidate_product_queries(self.cache)

        logger.info(f"Order {order.order_number} created for cart {self.cart.cart_id} (total {total})")
        return CheckoutResult(
            state=SubmissionState.SUCCEEDED,
            order_id=order.id,
            order_number=order.order_number,
            subtotal=subtotal,
            discount_amount=discount_amount,
            delivery_fee=delivery_fee,
            total=total,
            coupon=coupon,
            failed_items=failed_items,
        )

    def _create_order(
        self,
        form: CheckoutForm,
        total: float,
        coupon: Optional[AppliedCoupon],
        discount_amount: float,
    ) -> CreatedOrder:
        try:
            rows = self.backend.rpc("create_order", {
                "p_customer_name": form.customer_name.strip(),
                "p_customer_phone": form.customer_phone.strip(),
                "p_customer_address": form.order_address,
                "p_delivery_method": form.delivery_method.value,
                "p_notes": form.order_notes,
                "p_total": total,
                "p_coupon_code": coupon.code if coupon else None,
                "p_discount_amount": discount_amount,
            })
            return CreatedOrder.model_validate(rows[0])
        except (BackendError, ValidationError, TypeError, KeyError, IndexError) as e:
            logger.error(f"Order creation failed for cart {self.cart.cart_id}: {e}")
            raise HTTPException(status_code=502, detail=ORDER_FAILED)

    def _create_order_items(self, order: CreatedOrder, items) -> List[FailedOrderItem]:
        # One call per line, in cart order; the stock trigger runs on each insert
        failed: List[FailedOrderItem] = []
        for item in items:
            try:
                self.backend.rpc("create_order_item", {
                    "p_order_id": order.id,
                    "p_product_id": item.product_id or None,
                    "p_product_name": item.name,
                    "p_quantity": item.quantity,
                    "p_price_at_purchase": item.price,
                })
            except BackendError as e:
                # TODO: decide with the shop owner whether a missing line should void the order header
                logger.error(f"Order item creation failed for order {order.order_number}, product {item.product_id}: {e}")
                failed.append(FailedOrderItem(product_id=item.product_id, product_name=item.name, error=e.message))
        return failed

    def _increment_coupon_usage(self, code: str) -> None:
        try:
            self.backend.rpc("increment_coupon_usage", {"p_coupon_code": code})
        except BackendError as e:
            logger.warning(f"Could not increment usage of coupon {code}: {e}")


class OrderAdminService:
    def __init__(self, backend: BackendClient, cache: QueryCache):
        self.backend = backend
        self.cache = cache

    def _parse(self, rows: List[dict]) -> List[Order]:
        try:
            return [Order.model_validate(row) for row in rows]
        except ValidationError as e:
            logger.error(f"Unexpected order payload: {e}")
            raise HTTPException(status_code=502, detail="Réponse inattendue du serveur")

    def get_orders(self, status: Optional[str] = None) -> List[Order]:
        filters = {}
        if status and status != "all":
            try:
                filters["status"] = eq(OrderStatus(status).value)
            except ValueError:
                raise HTTPException(status_code=400, detail=f"Statut inconnu: {status}")
        try:
            rows = self.backend.select("orders", filters=filters, order="created_at.desc")
        except BackendError:
            raise HTTPException(status_code=502, detail="Impossible de charger les commandes")
        return self._parse(rows)

    def get_order_by_id(self, order_id: str) -> Order:
        try:
            rows = self.backend.select("orders", filters={"id": eq(order_id)}, limit=1)
            item_rows = self.backend.select("order_items", filters={"order_id": eq(order_id)}) if rows else []
        except BackendError:
            raise HTTPException(status_code=502, detail="Impossible de charger la commande")
        if not rows:
            raise HTTPException(status_code=404, detail="Commande introuvable")

        order = self._parse(rows)[0]
        try:
            order.items = [OrderItem.model_validate(row) for row in item_rows]
        except ValidationError as e:
            logger.error(f"Unexpected order item payload: {e}")
            raise HTTPException(status_code=502, detail="Réponse inattendue du serveur")
        return order

    def update_status(self, order_id: str, new_status: OrderStatus) -> Order:
        # pending -> confirmed | cancelled; decided orders stay as they are
        if new_status == OrderStatus.PENDING:
            raise HTTPException(status_code=400, detail="Une commande ne peut pas revenir en attente")

        order = self.get_order_by_id(order_id)
        if order.status != OrderStatus.PENDING:
            raise HTTPException(status_code=400, detail="Seules les commandes en attente peuvent être modifiées")

        try:
            rows = self.backend.update(
                "orders",
                {"status": new_status.value},
                {"id": eq(order_id), "status": eq(OrderStatus.PENDING.value)},
            )
        except BackendError:
            raise HTTPException(status_code=502, detail="Erreur lors de la mise à jour de la commande")
        if not rows:
            raise HTTPException(status_code=409, detail="La commande a été modifiée entre-temps")

        if new_status == OrderStatus.CANCELLED:
            # Cancellation may put stock back on the server side
            invalidate_product_queries(self.cache)

        updated = self._parse(rows)[0]
        updated.items = order.items
        return updated
