"""Process-wide repository accessors bound to the DatabaseManager."""

from typing import Optional

from framework.database.manager import DatabaseManager
from framework.repository.aggregates import AggregateGateway
from framework.repository.factory import RepositoryFactory
from apps.dashboard import DashboardService
from apps.orders.models import Order
from apps.orders.repository import OrderRepository
from apps.products.models import Product
from apps.products.repository import ProductRepository
from apps.users.models import User
from apps.users.repository import UserRepository


def _get(repo_class, model, manager: Optional[DatabaseManager] = None, **related):
    """Cached repository; `related` maps a relation name to its (model, collection name)."""
    manager = manager or DatabaseManager.get_instance()
    return RepositoryFactory.get_repository(
        repo_class,
        manager.handle_for(model, repo_class.collection_name),
        manager.counters,
        {name: manager.handle_for(*target) for name, target in related.items()},
    )


def get_user_repository(manager: Optional[DatabaseManager] = None) -> UserRepository:
    return _get(UserRepository, User, manager)


def get_product_repository(manager: Optional[DatabaseManager] = None) -> ProductRepository:
    return _get(ProductRepository, Product, manager, vendor=(User, UserRepository.collection_name))


def get_order_repository(manager: Optional[DatabaseManager] = None) -> OrderRepository:
    return _get(OrderRepository, Order, manager, customer=(User, UserRepository.collection_name))


def get_aggregate_gateway(manager: Optional[DatabaseManager] = None) -> AggregateGateway:
    manager = manager or DatabaseManager.get_instance()
    return AggregateGateway(manager.counters)


def get_dashboard_service(manager: Optional[DatabaseManager] = None) -> DashboardService:
    manager = manager or DatabaseManager.get_instance()
    return DashboardService(
        get_aggregate_gateway(manager),
        users=manager.handle_for(User, UserRepository.collection_name),
        products=manager.handle_for(Product, ProductRepository.collection_name),
        orders=manager.handle_for(Order, OrderRepository.collection_name),
    )
