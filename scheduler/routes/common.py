import re

from fastapi import HTTPException, Query, status
from pydantic import BaseModel
from sqlalchemy.orm import Session

from scheduler.core import config

EMAIL_PATTERN = re.compile(r'^[^\s@]+@[^\s@]+\.[^\s@]+$')
HEX_COLOR_PATTERN = re.compile(r'^#([A-Fa-f0-9]{6}|[A-Fa-f0-9]{3})$')
DATABASE_UNAVAILABLE_DETAIL = 'Database unavailable. Verify DATABASE_URL.'


class Pagination(BaseModel):
    page: int
    page_size: int
    total: int


class PageParams:
    def __init__(
        self,
        page: int = Query(default=1, ge=1),
        page_size: int = Query(default=config.DEFAULT_PAGE_SIZE, ge=1, le=config.MAX_PAGE_SIZE),
    ):
        self.page = page
        self.page_size = page_size

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size

    def describe(self, total: int) -> Pagination:
        return Pagination(page=self.page, page_size=self.page_size, total=total)


def is_valid_email(value: str) -> bool:
    return bool(EMAIL_PATTERN.match(value))


def normalize_email(value: str) -> str:
    normalized = value.strip().lower()
    if not is_valid_email(normalized):
        raise ValueError('Invalid email format.')
    return normalized


def database_unavailable(db: Session | None) -> HTTPException:
    if db is not None:
        db.rollback()
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail=DATABASE_UNAVAILABLE_DETAIL,
    )
