"""
Model registration: import every table model so SQLModel.metadata knows about it.
When adding/removing entities, add/remove the corresponding imports here.
"""
from apps.users.models import User
from apps.products.models import Product
from apps.orders.models import Order

__all__ = ["User", "Product", "Order"]
