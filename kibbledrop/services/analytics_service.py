# kibbledrop/services/analytics_service.py
from sqlalchemy.orm import Session

from kibbledrop.domain import statuses
from kibbledrop.repos.order_repo import OrderRepo
from kibbledrop.repos.product_repo import ProductRepo
from kibbledrop.repos.subscription_repo import SubscriptionRepo
from kibbledrop.repos.user_repo import UserRepo


class AnalyticsService:
    def __init__(self, db: Session):
        self.users = UserRepo(db)
        self.products = ProductRepo(db)
        self.orders = OrderRepo(db)
        self.subscriptions = SubscriptionRepo(db)

    def overview(self) -> dict:
        by_status = self.orders.count_by_status()
        return {
            "total_users": self.users.count(),
            "total_products": self.products.count(),
            "total_orders": sum(by_status.values()),
            "orders_by_status": by_status,
            "revenue": self.orders.revenue(),
            "active_subscriptions": self.subscriptions.count_by_status(statuses.SUB_ACTIVE),
            "pending_subscriptions": self.subscriptions.count_by_status(statuses.SUB_PENDING),
        }
