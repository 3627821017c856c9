from typing import Generic, List, TypeVar

from pydantic import BaseModel
from sqlalchemy.orm import Query

T = TypeVar("T")


class SuccessResponse(BaseModel):
    success: bool = True


class Page(BaseModel, Generic[T]):
    data: List[T]
    hasMore: bool
    total: int


def paginate(query: Query, page: int, limit: int) -> dict:
    """Offset pagination over an ordered query (1-based ``page``)."""
    total = query.order_by(None).count()
    offset = (page - 1) * limit
    items = query.offset(offset).limit(limit).all()
    return {
        "data": items,
        "hasMore": offset + limit < total,
        "total": total,
    }
