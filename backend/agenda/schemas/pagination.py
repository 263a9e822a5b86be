from math import ceil
from typing import Generic, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")


class PageParams(BaseModel):
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=10, ge=1)

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


class Page(BaseModel, Generic[T]):
    data: list[T]
    total_items: int
    total_pages: int
    current_page: int
    items_per_page: int

    @classmethod
    def build(cls, items: list[T], total: int, params: PageParams) -> "Page[T]":
        return cls(
            data=items,
            total_items=total,
            total_pages=ceil(total / params.limit),
            current_page=params.page,
            items_per_page=params.limit,
        )
