"""
Shared schema building blocks.

All API models serialize with camelCase field names (maskedCardNumber,
cardHolderName, ...) and accept either camelCase or snake_case input.
Monetary values are exact Decimals internally and JSON numbers on the wire.
"""

from datetime import datetime
from decimal import Decimal
from typing import Annotated, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, PlainSerializer
from pydantic.alias_generators import to_camel

from bankcards.pagination import Page

T = TypeVar("T")

Money = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class PageResponse(CamelModel, Generic[T]):
    """One page of results; page numbers are zero-based."""
    content: list[T]
    page: int
    size: int
    total_elements: int
    total_pages: int

    @classmethod
    def from_page(cls, page: Page) -> "PageResponse":
        return cls(
            content=page.content,
            page=page.page,
            size=page.size,
            total_elements=page.total_elements,
            total_pages=page.total_pages,
        )


class ErrorResponse(CamelModel):
    """Body of every typed error response, as listed in the OpenAPI document."""
    timestamp: datetime
    status: int
    error: str
    message: str
