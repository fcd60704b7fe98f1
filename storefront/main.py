import logging
from fastapi import FastAPI
from contextlib import asynccontextmanager
from storefront.core.config import settings
from storefront.db.session import create_db_and_tables
from storefront.services.backend import backend

# Import models to ensure the cart table is registered with SQLModel metadata
from storefront.models.cart import CartItem

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)

@asynccontextmanager
async def lifespan(app: FastAPI):
    create_db_and_tables()
    yield
    backend.close()

app = FastAPI(
    title=settings.PROJECT_NAME,
    version="1.0.0",
    lifespan=lifespan,
    description="Storefront and back-office API for the eyewear shop"
)

@app.get("/")
def read_root():
    return {"message": "Welcome to the storefront API. Visit /docs for Swagger UI."}

from storefront.routers import products, cart, coupons, checkout, settings as shop_settings, admin

app.include_router(products.router, prefix="/api/v1/products", tags=["products"])
app.include_router(cart.router, prefix="/api/v1/cart", tags=["cart"])
app.include_router(coupons.router, prefix="/api/v1/coupons", tags=["coupons"])
app.include_router(checkout.router, prefix="/api/v1/checkout", tags=["checkout"])
app.include_router(shop_settings.router, prefix="/api/v1/settings", tags=["settings"])
app.include_router(admin.router, prefix="/api/v1/admin", tags=["admin"])

# Add CORS
from fastapi.middleware.cors import CORSMiddleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.SITE_URL],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Cart-Id"],
)
