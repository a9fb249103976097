"""Pagination and the closed sets of ``fields=`` / ``include=`` tokens."""
import math
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence, Type, TypeVar

from sqlalchemy import Select, func, select
from sqlalchemy.orm import Session

from .schemas import PageMeta

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100

E = TypeVar("E", bound=Enum)


class UserField(str, Enum):
    # member names are the response model attribute names
    id = "id"
    first_name = "firstName"
    last_name = "lastName"
    birth_date = "birthDate"
    gender = "gender"
    created_at = "createdAt"
    updated_at = "updatedAt"
    created_by = "createdBy"
    updated_by = "updatedBy"


class ProductField(str, Enum):
    id = "id"
    name = "name"
    price = "price"
    description = "description"
    quantity = "quantity"
    created_at = "createdAt"
    updated_at = "updatedAt"


class UserInclude(str, Enum):
    roles = "roles"


class OrderInclude(str, Enum):
    user = "user"
    items = "items"
    items_product = "items.product"


def parse_tokens(raw: Optional[str], allowed: Type[E]) -> list[E]:
    """Split a comma separated query value, keeping only known tokens in order."""
    if not raw:
        return []
    values = {member.value: member for member in allowed}
    out: list[E] = []
    for token in raw.split(","):
        member = values.get(token.strip())
        if member is not None and member not in out:
            out.append(member)
    return out


def projection(raw: Optional[str], allowed: Type[E]) -> Optional[set[str]]:
    """Attribute names to keep in the response, or None for all of them."""
    selected = parse_tokens(raw, allowed)
    if not selected:
        return None
    # roles are attached outside the whitelist and survive any projection
    return {member.name for member in selected} | {"roles"}


@dataclass(frozen=True)
class PageRequest:
    page: int
    size: int
    unlimited: bool

    @property
    def offset(self) -> int:
        return 0 if self.unlimited else (self.page - 1) * self.size


def page_request(page: Optional[int] = 1, limit: Optional[int] = DEFAULT_PAGE_SIZE) -> PageRequest:
    """``limit == 0`` disables pagination; otherwise limit is clamped to [1, 100]
    and page to at least 1."""
    if limit == 0:
        return PageRequest(page=1, size=0, unlimited=True)
    size = DEFAULT_PAGE_SIZE if limit is None else max(1, min(MAX_PAGE_SIZE, limit))
    return PageRequest(page=max(1, page or 1), size=size, unlimited=False)


def page_meta(req: PageRequest, total: int) -> PageMeta:
    if req.unlimited:
        return PageMeta(page=1, limit=total, total=total, total_pages=1, has_next=False, has_prev=False)
    total_pages = math.ceil(total / req.size)
    return PageMeta(
        page=req.page,
        limit=req.size,
        total=total,
        total_pages=total_pages,
        has_next=req.page < total_pages,
        has_prev=req.page > 1,
    )


def not_deleted(stmt: Select, model, include_deleted: bool = False) -> Select:
    if include_deleted:
        return stmt
    return stmt.where(model.deleted_at.is_(None))


def fetch_page(db: Session, stmt: Select, req: PageRequest, order_by: Sequence, options: Sequence = ()):
    """Run ``stmt`` for one page. The count runs over the filtered base
    statement, so eager-loaded collections never inflate it."""
    total = db.scalar(select(func.count()).select_from(stmt.order_by(None).subquery())) or 0
    rows_stmt = stmt.order_by(*order_by)
    if options:
        rows_stmt = rows_stmt.options(*options)
    if not req.unlimited:
        rows_stmt = rows_stmt.limit(req.size).offset(req.offset)
    rows = db.scalars(rows_stmt).all()
    return rows, page_meta(req, total)
