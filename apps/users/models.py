from sqlmodel import SQLModel, Field
from typing import Optional
from datetime import datetime, timezone

class User(SQLModel, table=True):
    __tablename__ = "users"
    id: Optional[int] = Field(default=None, primary_key=True)
    username: str = Field(unique=True, index=True, max_length=100)
    email: str = Field(unique=True, index=True, max_length=255)
    password: str = Field(max_length=255)  # Stored hashed; never returned on reads
    full_name: Optional[str] = Field(default=None, max_length=255)
    role: str = Field(default="customer", index=True, max_length=100)  # customer, vendor, admin, super_admin
    department: Optional[str] = Field(default=None, max_length=150)
    is_active: bool = Field(default=True)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc), index=True)
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
