from collections import Counter
from typing import Any, Dict, List
from fastapi import HTTPException
from pydantic import BaseModel
from storefront.services.backend import BackendClient, BackendError

class DashboardStats(BaseModel):
    totalProducts: int
    totalOrders: int
    pendingOrders: int
    confirmedOrders: int
    cancelledOrders: int
    revenue: float
    itemsSold: int
    recentOrders: List[Dict[str, Any]]
    topProducts: List[Dict[str, Any]]


class DashboardService:
    def __init__(self, backend: BackendClient):
        self.backend = backend

    def get_stats(self, recent: int = 5, top: int = 5) -> DashboardStats:
        try:
            products = self.backend.select("products", "id")
            orders = self.backend.select(
                "orders",
                "id, order_number, customer_name, status, total, created_at",
                order="created_at.desc",
            )
            items = self.backend.select("order_items", "product_name, quantity")
        except BackendError:
            raise HTTPException(status_code=502, detail="Impossible de charger les statistiques")

        statuses = Counter(order.get("status") for order in orders)
        # Only confirmed orders count as revenue
        revenue = sum(float(order.get("total") or 0) for order in orders if order.get("status") == "confirmed")

        sold = Counter()
        for item in items:
            sold[item["product_name"]] += int(item.get("quantity") or 0)

        return DashboardStats(
            totalProducts=len(products),
            totalOrders=len(orders),
            pendingOrders=statuses["pending"],
            confirmedOrders=statuses["confirmed"],
            cancelledOrders=statuses["cancelled"],
            revenue=round(revenue, 2),
            itemsSold=sum(sold.values()),
            recentOrders=orders[:recent],
            topProducts=[{"name": name, "sales": count} for name, count in sold.most_common(top)],
        )
