from pydantic import AfterValidator, BaseModel
from datetime import datetime, timezone
from typing import Annotated, Generic, List, TypeVar

T = TypeVar("T")


class PageMeta(BaseModel):
    total: int
    page: int
    limit: int
    total_pages: int


class Page(BaseModel, Generic[T]):
    data: List[T]
    meta: PageMeta


def build_page_meta(total: int, page: int, limit: int) -> PageMeta:
    total_pages = (total + limit - 1) // limit if limit else 0
    return PageMeta(total=total, page=page, limit=limit, total_pages=total_pages)


def _to_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


# Timestamps are stored as naive UTC; aware inputs are normalised on the way in
UTCDateTime = Annotated[datetime, AfterValidator(_to_naive_utc)]
