from typing import Any, Optional
from pydantic import BaseModel


class Pagination(BaseModel):
    current: int
    pages: int
    total: int

    @classmethod
    def build(cls, page: int, limit: int, total: int) -> "Pagination":
        # pages = ceil(total / limit); current echoes the requested page
        pages = -(-total // limit) if limit > 0 else 0
        return cls(current=page, pages=pages, total=total)


class ResultEnvelope(BaseModel):
    """The only shape a repository hands back to its caller."""
    success: bool
    data: Optional[Any] = None
    message: Optional[str] = None
    error: Optional[str] = None

    @classmethod
    def ok(cls, data: Any = None, message: Optional[str] = None) -> "ResultEnvelope":
        return cls(success=True, data=data, message=message)

    @classmethod
    def fail(
        cls,
        error: Optional[str] = None,
        message: Optional[str] = None,
        data: Any = None,
    ) -> "ResultEnvelope":
        return cls(success=False, data=data, message=message, error=error)
