from typing import List, Optional, Dict
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from storefront.core.security import AdminPrincipal, get_current_admin
from storefront.models.coupon import Coupon, CouponForm
from storefront.models.order import Order, OrderStatus
from storefront.models.product import Product, StockUpdateResult
from storefront.services.backend import BackendClient, get_backend
from storefront.services.cache import QueryCache, get_query_cache
from storefront.services.catalog import CatalogService
from storefront.services.coupon import CouponService
from storefront.services.order import OrderAdminService
from storefront.services.shop_settings import ShopSettingsService
from storefront.services.stats import DashboardService, DashboardStats
from storefront.services.stock import StockService, stock_badge_variant, stock_status

router = APIRouter()

# Pydantic models for requests/responses
class StockDecrement(BaseModel):
    quantity: int = Field(ge=1)

class OrderStatusUpdate(BaseModel):
    status: OrderStatus

class CouponActiveUpdate(BaseModel):
    is_active: bool

class AdminProduct(Product):
    stock_badge: str
    stock_status: str

STOCK_ERROR_STATUS = {
    "Product not found": 404,
    "Insufficient stock available": 400,
    "Stock was modified concurrently": 409,
}

def get_admin_backend(
    admin: AdminPrincipal = Depends(get_current_admin),
    backend: BackendClient = Depends(get_backend),
) -> BackendClient:
    """Backend client acting as the signed-in admin, so row-level policies apply"""
    return backend.with_token(admin.access_token)

def get_stock_service(
    backend: BackendClient = Depends(get_admin_backend),
    cache: QueryCache = Depends(get_query_cache),
) -> StockService:
    return StockService(backend, cache)

def get_order_admin_service(
    backend: BackendClient = Depends(get_admin_backend),
    cache: QueryCache = Depends(get_query_cache),
) -> OrderAdminService:
    return OrderAdminService(backend, cache)

def get_coupon_service(backend: BackendClient = Depends(get_admin_backend)) -> CouponService:
    return CouponService(backend)

def get_admin_settings_service(
    backend: BackendClient = Depends(get_admin_backend),
    cache: QueryCache = Depends(get_query_cache),
) -> ShopSettingsService:
    return ShopSettingsService(backend, cache)

def get_admin_catalog_service(
    backend: BackendClient = Depends(get_admin_backend),
    cache: QueryCache = Depends(get_query_cache),
) -> CatalogService:
    return CatalogService(backend, cache)

def get_dashboard_service(backend: BackendClient = Depends(get_admin_backend)) -> DashboardService:
    return DashboardService(backend)

# Dashboard
@router.get("/dashboard/stats", response_model=DashboardStats)
def get_dashboard_stats(service: DashboardService = Depends(get_dashboard_service)):
    return service.get_stats()

# Products & stock
@router.get("/products", response_model=List[AdminProduct])
def get_products(catalog: CatalogService = Depends(get_admin_catalog_service)):
    """All products with their stock badge"""
    return [
        AdminProduct(
            **product.model_dump(exclude={"image_url", "in_stock"}),
            stock_badge=stock_badge_variant(product.stock),
            stock_status=stock_status(product.stock),
        )
        for product in catalog.list_admin_products()
    ]

@router.post("/products/{product_id}/stock/decrement", response_model=StockUpdateResult)
def decrement_product_stock(
    product_id: str,
    stock_update: StockDecrement,
    service: StockService = Depends(get_stock_service),
):
    """Subtract a sold quantity from a product's stock"""
    result = service.update_stock(product_id, stock_update.quantity)
    if not result.success:
        raise HTTPException(status_code=STOCK_ERROR_STATUS.get(result.error, 502), detail=result.error)
    return result

# Orders
@router.get("/orders", response_model=List[Order])
def get_orders(status: Optional[str] = None, service: OrderAdminService = Depends(get_order_admin_service)):
    """All orders, newest first, optionally filtered by status"""
    return service.get_orders(status)

@router.get("/orders/{order_id}", response_model=Order)
def get_order(order_id: str, service: OrderAdminService = Depends(get_order_admin_service)):
    return service.get_order_by_id(order_id)

@router.put("/orders/{order_id}/status", response_model=Order)
def update_order_status(
    order_id: str,
    status_update: OrderStatusUpdate,
    service: OrderAdminService = Depends(get_order_admin_service),
):
    """Confirm or cancel a pending order"""
    return service.update_status(order_id, status_update.status)

# Coupons
@router.get("/coupons", response_model=List[Coupon])
def get_coupons(service: CouponService = Depends(get_coupon_service)):
    return service.list_coupons()

@router.post("/coupons", response_model=Coupon)
def create_coupon(form: CouponForm, service: CouponService = Depends(get_coupon_service)):
    return service.create_coupon(form)

@router.put("/coupons/{coupon_id}", response_model=Coupon)
def update_coupon(coupon_id: str, form: CouponForm, service: CouponService = Depends(get_coupon_service)):
    return service.update_coupon(coupon_id, form)

@router.put("/coupons/{coupon_id}/active", response_model=Coupon)
def set_coupon_active(
    coupon_id: str,
    update: CouponActiveUpdate,
    service: CouponService = Depends(get_coupon_service),
):
    return service.set_active(coupon_id, update.is_active)

@router.delete("/coupons/{coupon_id}")
def delete_coupon(coupon_id: str, service: CouponService = Depends(get_coupon_service)):
    return service.delete_coupon(coupon_id)

# Settings
@router.get("/settings", response_model=Dict[str, str])
def get_settings(service: ShopSettingsService = Depends(get_admin_settings_service)):
    return service.get_all()

@router.put("/settings", response_model=Dict[str, str])
def update_settings(values: Dict[str, str], service: ShopSettingsService = Depends(get_admin_settings_service)):
    return service.update(values)
