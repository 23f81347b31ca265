from dataclasses import dataclass
from typing import Any

from sqlalchemy import Select, func, select
from sqlalchemy.orm import Session

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100


@dataclass
class Page:
    rows: list[Any]
    page: int
    page_size: int
    total_count: int


def paginate(db: Session, statement: Select, page: int, page_size: int) -> Page:
    count_statement = select(func.count()).select_from(statement.order_by(None).subquery())
    total_count = db.scalar(count_statement) or 0
    rows = db.execute(statement.offset((page - 1) * page_size).limit(page_size)).all()
    return Page(rows=list(rows), page=page, page_size=page_size, total_count=total_count)
