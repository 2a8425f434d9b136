from sqlmodel import SQLModel, Field
from typing import Optional
from datetime import datetime, timezone

class Product(SQLModel, table=True):
    """Catalog product."""
    __tablename__ = "products"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(index=True, max_length=300)
    description: Optional[str] = Field(default=None)
    price: float = Field(default=0.0)
    category: Optional[str] = Field(default=None, index=True, max_length=100)
    status: str = Field(default="active", index=True, max_length=50)  # active, pending, inactive
    vendor_id: Optional[int] = Field(default=None, foreign_key="users.id", index=True)
    sku: Optional[str] = Field(default=None, max_length=100)
    stock: int = Field(default=0)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc), index=True)
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
