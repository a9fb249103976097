"""Stock reservations for order line items.

A *change* maps a product id to the signed amount its stock moves by: negative
values reserve stock for an order, positive values return it.
"""
from collections import defaultdict
from typing import Iterable, Mapping

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from . import models
from .errors import InsufficientStockError, NotFoundError
from .logs import get_logger

log = get_logger(__name__)


def reserved_quantities(lines: Iterable[tuple[int, int]]) -> dict[int, int]:
    """Sum ``(product_id, quantity)`` pairs per product."""
    totals: dict[int, int] = defaultdict(int)
    for product_id, quantity in lines:
        totals[product_id] += quantity
    return dict(totals)


def reservation_changes(old: Mapping[int, int], new: Mapping[int, int]) -> dict[int, int]:
    """Net stock change per product when an order's reservations go from
    ``old`` to ``new``.

    A product in both sets moves by the difference, a removed product gets its
    whole quantity back and an added product has its quantity reserved.
    Products whose reservation is unchanged are left out. The result is ordered
    by product id.
    """
    changes = {}
    for product_id in sorted(old.keys() | new.keys()):
        change = old.get(product_id, 0) - new.get(product_id, 0)
        if change:
            changes[product_id] = change
    return changes


def load_products(db: Session, product_ids: Iterable[int], include_deleted: bool = False) -> dict[int, models.Product]:
    """Fetch products by id, failing with one error that names every missing id."""
    ids = sorted(set(product_ids))
    if not ids:
        return {}
    stmt = select(models.Product).where(models.Product.id.in_(ids))
    if not include_deleted:
        stmt = stmt.where(models.Product.deleted_at.is_(None))
    products = {p.id: p for p in db.scalars(stmt)}
    missing = [i for i in ids if i not in products]
    if missing:
        raise NotFoundError.for_ids("Products", missing)
    return products


def ensure_available(products: Mapping[int, models.Product], changes: Mapping[int, int]) -> None:
    for product_id, change in changes.items():
        if change >= 0:
            continue
        product = products[product_id]
        if product.quantity < -change:
            log.warning(
                "stock_insufficient",
                product_id=product_id,
                available=product.quantity,
                requested=-change,
            )
            raise InsufficientStockError(product.name, product.quantity, -change)


def apply_changes(db: Session, products: Mapping[int, models.Product], changes: Mapping[int, int]) -> None:
    """Write stock changes with conditional updates.

    A reservation only succeeds when the row still holds enough stock at write
    time; otherwise InsufficientStockError is raised and the caller's
    transaction rolls back.
    """
    # rows are touched in product id order
    for product_id, change in changes.items():
        if change < 0:
            needed = -change
            result = db.execute(
                update(models.Product)
                .where(models.Product.id == product_id, models.Product.quantity >= needed)
                .values(quantity=models.Product.quantity - needed)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                available = db.scalar(select(models.Product.quantity).where(models.Product.id == product_id))
                log.warning("stock_reservation_lost", product_id=product_id, available=available, requested=needed)
                raise InsufficientStockError(products[product_id].name, available or 0, needed)
        else:
            db.execute(
                update(models.Product)
                .where(models.Product.id == product_id)
                .values(quantity=models.Product.quantity + change)
                .execution_options(synchronize_session=False)
            )
        if product_id in products:
            db.expire(products[product_id], ["quantity", "updated_at"])
