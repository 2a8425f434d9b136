from sqlmodel import SQLModel, Field, Column, JSON
from typing import Optional, List, Dict
from datetime import datetime, timezone
from enum import Enum
import uuid

class OrderStatus(str, Enum):
    """Order status enum."""
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"

class Order(SQLModel, table=True):
    """Customer order."""
    __tablename__ = "orders"

    id: Optional[int] = Field(default=None, primary_key=True)
    order_number: str = Field(
        default_factory=lambda: uuid.uuid4().hex[:16].upper(),
        unique=True,
        index=True,
        max_length=50,
    )
    customer_id: int = Field(foreign_key="users.id", index=True)
    items: List[Dict] = Field(default_factory=list, sa_column=Column(JSON))
    total_amount: float = Field(default=0.0, description="Order total")
    status: str = Field(default=OrderStatus.PENDING.value, index=True, max_length=20)
    payment_status: str = Field(default="pending", max_length=20)  # pending, paid, failed, refunded
    payment_method: Optional[str] = Field(default=None, max_length=50)
    shipping_address: Optional[Dict] = Field(default=None, sa_column=Column(JSON))
    notes: Optional[str] = Field(default=None)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc), index=True)
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
