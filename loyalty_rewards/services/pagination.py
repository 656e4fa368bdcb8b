import math
from dataclasses import dataclass


DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100


@dataclass(frozen=True)
class Page:
    page: int
    limit: int
    total: int

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0

    def as_dict(self) -> dict:
        return {
            "currentPage": self.page,
            "totalPages": self.total_pages,
            "totalRecords": self.total,
            "hasNextPage": self.page < self.total_pages,
            "hasPreviousPage": self.page > 1,
            "limit": self.limit,
        }


def paginate(query, page: int, limit: int):
    """Run a count and one page of ``query``; the query must already be ordered."""
    page = max(1, int(page))
    limit = max(1, min(int(limit), MAX_PAGE_SIZE))

    total = query.order_by(None).count()
    meta = Page(page=page, limit=limit, total=total)
    items = query.offset(meta.offset).limit(limit).all()
    return items, meta
