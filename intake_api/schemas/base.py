"""Base Pydantic schemas with CamelCase conversion."""

from typing import Generic, Optional, TypeVar

from pydantic import BaseModel, ConfigDict
from humps import camelize


def to_camel(string: str) -> str:
    """Convert snake_case to camelCase."""
    return camelize(string)


class CamelModel(BaseModel):
    """
    Base model that converts snake_case fields to camelCase in JSON responses.

    Usage:
        class MyResponse(CamelModel):
            full_name: str        # JSON: fullName
            primary_role: str     # JSON: primaryRole
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


T = TypeVar("T")


class FieldErrorItem(CamelModel):
    """One field-level error."""

    field: str
    message: str


class PaginationMeta(CamelModel):
    """Pagination metadata."""

    current_page: int
    total_pages: int
    total_items: int
    has_next: bool
    has_prev: bool
    limit: int

    @classmethod
    def build(cls, page: int, limit: int, total: int) -> "PaginationMeta":
        total_pages = (total + limit - 1) // limit
        return cls(
            current_page=page,
            total_pages=total_pages,
            total_items=total,
            has_next=page < total_pages,
            has_prev=page > 1,
            limit=limit,
        )


class Envelope(CamelModel, Generic[T]):
    """
    Standard response envelope.

    Usage:
        Envelope[ApplicationResponse](success=True, data=...)
    """

    success: bool = True
    message: Optional[str] = None
    data: Optional[T] = None
    errors: Optional[list[FieldErrorItem]] = None
    pagination: Optional[PaginationMeta] = None
