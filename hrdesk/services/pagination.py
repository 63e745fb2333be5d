from __future__ import annotations

import math
from dataclasses import dataclass

from hrdesk.exceptions import ValidationFailed
from hrdesk.settings import clamp_page_size


@dataclass(frozen=True)
class PageRequest:
    page: int
    limit: int

    @classmethod
    def build(cls, page: int | None, limit: int | None) -> PageRequest:
        page_value = 1 if page is None else int(page)
        if page_value < 1:
            raise ValidationFailed("page must be greater than or equal to 1")
        return cls(page=page_value, limit=clamp_page_size(limit))

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


@dataclass(frozen=True)
class PageInfo:
    current_page: int
    total_pages: int
    total_items: int
    items_per_page: int
    has_next_page: bool
    has_prev_page: bool


def page_info(request: PageRequest, total: int) -> PageInfo:
    return PageInfo(
        current_page=request.page,
        total_pages=math.ceil(total / request.limit) if total else 0,
        total_items=total,
        items_per_page=request.limit,
        has_next_page=request.page * request.limit < total,
        has_prev_page=request.page > 1,
    )
