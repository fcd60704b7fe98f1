from typing import Dict
from fastapi import APIRouter, Depends
from storefront.services.backend import BackendClient, get_backend
from storefront.services.cache import QueryCache, get_query_cache
from storefront.services.shop_settings import PUBLIC_KEYS, ShopSettingsService

router = APIRouter()

def get_shop_settings_service(
    backend: BackendClient = Depends(get_backend),
    cache: QueryCache = Depends(get_query_cache),
) -> ShopSettingsService:
    return ShopSettingsService(backend, cache)

@router.get("/", response_model=Dict[str, str])
def read_settings(service: ShopSettingsService = Depends(get_shop_settings_service)):
    """Public shop settings (contact, announcement, delivery price)"""
    values = service.get_all()
    return {key: values.get(key, "") for key in PUBLIC_KEYS}
