from typing import Any, Iterable

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from bankcards.pagination import Page, PageRequest, parse_sort


async def paginate(
    session: AsyncSession,
    model: Any,
    criteria: Iterable[Any],
    page_request: PageRequest,
    sortable: Iterable[str],
    default_sort: str,
    options: Iterable[Any] = (),
) -> Page:
    """Run a filtered, sorted, limited query plus its matching count."""
    criteria = list(criteria)
    order = parse_sort(page_request.sort, sortable, default_sort)
    column = getattr(model, order.field)

    total = await session.scalar(
        select(func.count()).select_from(model).where(*criteria)
    )

    stmt = (
        select(model)
        .where(*criteria)
        .order_by(column.desc() if order.descending else column.asc(), model.id.asc())
        .limit(page_request.size)
        .offset(page_request.offset)
    )
    for option in options:
        stmt = stmt.options(option)

    rows = await session.scalars(stmt)
    return Page(
        content=list(rows.all()),
        page=page_request.page,
        size=page_request.size,
        total_elements=total or 0,
    )
