"""
Paging primitives shared by repositories, services and routers.

A PageRequest is zero-based. Sort is "field" or "field,asc|desc"; the
field may be given in camelCase (as clients see it) or snake_case, and
must be in the caller-supplied allow-list.
"""

import math
from dataclasses import dataclass
from typing import Callable, Generic, Iterable, TypeVar

from bankcards.exceptions import ValidationFailedError

T = TypeVar("T")
U = TypeVar("U")


@dataclass(frozen=True)
class PageRequest:
    page: int = 0
    size: int = 20
    sort: str | None = None

    @property
    def offset(self) -> int:
        return self.page * self.size


@dataclass
class Page(Generic[T]):
    content: list[T]
    page: int
    size: int
    total_elements: int

    @property
    def total_pages(self) -> int:
        if self.size <= 0:
            return 0
        return math.ceil(self.total_elements / self.size)

    def map(self, fn: Callable[[T], U]) -> "Page[U]":
        return Page(
            content=[fn(item) for item in self.content],
            page=self.page,
            size=self.size,
            total_elements=self.total_elements,
        )


@dataclass(frozen=True)
class SortOrder:
    field: str
    descending: bool = False


def _to_snake(name: str) -> str:
    out = []
    for char in name:
        if char.isupper():
            out.append("_")
            out.append(char.lower())
        else:
            out.append(char)
    return "".join(out)


def parse_sort(sort: str | None, allowed: Iterable[str], default: str) -> SortOrder:
    """
    Parse "field[,asc|desc]" against an allow-list of snake_case names.

    Raises:
        ValidationFailedError: Unknown field or direction.
    """
    if not sort:
        return SortOrder(field=default)

    name, _, direction = sort.partition(",")
    name = _to_snake(name.strip())
    direction = direction.strip().lower() or "asc"

    if name not in set(allowed):
        raise ValidationFailedError(f"Cannot sort by '{sort.partition(',')[0].strip()}'")
    if direction not in ("asc", "desc"):
        raise ValidationFailedError(f"Invalid sort direction '{direction}'")

    return SortOrder(field=name, descending=direction == "desc")
