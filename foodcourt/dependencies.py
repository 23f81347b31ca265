from dataclasses import dataclass

from fastapi import Query

from foodcourt.services.pagination import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE


@dataclass
class PageParams:
    page: int
    page_size: int


def page_params(
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE, alias="pageSize"),
) -> PageParams:
    return PageParams(page=page, page_size=page_size)
