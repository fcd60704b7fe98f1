import logging
from datetime import datetime, timezone
from typing import Dict
from fastapi import HTTPException
from storefront.core.config import settings
from storefront.services.backend import BackendClient, BackendError, eq
from storefront.services.cache import QueryCache

logger = logging.getLogger(__name__)

# Keys the storefront reads from the settings table
PUBLIC_KEYS = (
    "hero_tagline",
    "hero_subtitle",
    "hero_background_image",
    "shop_phone",
    "shop_email",
    "shop_address",
    "facebook_url",
    "instagram_url",
    "work_hours_weekdays",
    "work_hours_weekend",
    "announcement_enabled",
    "announcement_text",
    "delivery_price",
)

class ShopSettingsService:
    """Key/value shop settings stored in the remote settings table"""

    def __init__(self, backend: BackendClient, cache: QueryCache):
        self.backend = backend
        self.cache = cache

    def _load(self) -> Dict[str, str]:
        return self.cache.get_or_fetch(("settings",), self._fetch)

    def _fetch(self) -> Dict[str, str]:
        rows = self.backend.select("settings", "key, value")
        return {row["key"]: row.get("value") or "" for row in rows}

    def get_all(self) -> Dict[str, str]:
        try:
            return self._load()
        except BackendError:
            raise HTTPException(status_code=502, detail="Impossible de charger les paramètres")

    def delivery_price(self) -> float:
        """Home delivery fee; the configured default applies when the setting is missing or unreadable"""
        try:
            raw = self._load().get("delivery_price", "")
        except BackendError as e:
            logger.warning(f"Could not load delivery price, using default: {e}")
            return settings.DEFAULT_DELIVERY_PRICE

        try:
            price = float(str(raw).replace(",", "."))
        except ValueError:
            price = -1.0
        if price < 0:
            logger.warning(f"Unusable delivery_price setting {raw!r}, using default")
            return settings.DEFAULT_DELIVERY_PRICE
        return price

    def update(self, values: Dict[str, str]) -> Dict[str, str]:
        unknown = sorted(set(values) - set(PUBLIC_KEYS))
        if unknown:
            raise HTTPException(status_code=400, detail=f"Paramètres inconnus: {', '.join(unknown)}")

        try:
            for key, value in values.items():
                self.backend.update(
                    "settings",
                    {"value": value, "updated_at": datetime.now(timezone.utc).isoformat()},
                    {"key": eq(key)},
                )
        except BackendError:
            raise HTTPException(status_code=502, detail="Erreur lors de l'enregistrement des paramètres")
        finally:
            self.cache.invalidate("settings")

        return self.get_all()
