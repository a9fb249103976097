"""Derived totals: line totals on order details and the order total.

Line totals are filled in by mapper hooks whenever a detail row is inserted or
updated. Order totals are recomputed by ``refresh_order_total``, which the order
workflow calls inside its transaction after every line-item write.
"""
from decimal import Decimal, ROUND_HALF_UP

from sqlalchemy import event, select
from sqlalchemy.orm import Session

from . import models

CENTS = Decimal("0.01")


def round_amount(value: Decimal) -> Decimal:
    return Decimal(value).quantize(CENTS, rounding=ROUND_HALF_UP)


def line_total(quantity: int, unit_price: Decimal) -> Decimal:
    return round_amount(Decimal(quantity) * Decimal(unit_price))


@event.listens_for(models.OrderDetail, "before_insert")
@event.listens_for(models.OrderDetail, "before_update")
def compute_line_total(mapper, connection, target: models.OrderDetail):
    target.line_total = line_total(target.quantity, target.unit_price)


def refresh_order_total(db: Session, order: models.Order) -> Decimal:
    """Set ``order.total_amount`` to the sum of its current line totals.

    Pending detail writes are flushed first so the sum sees them.
    """
    db.flush()
    line_totals = db.scalars(
        select(models.OrderDetail.line_total).where(models.OrderDetail.order_id == order.id)
    ).all()
    total = round_amount(sum((Decimal(t or 0) for t in line_totals), Decimal("0")))
    order.total_amount = total
    db.flush()
    return total
