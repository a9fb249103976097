from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends, Path, Query
from sqlalchemy.orm import Session

from .. import orders, schemas
from ..auth import authenticate
from ..db import get_db
from ..errors import NotFoundError
from ..models import OrderStatus
from ..queries import OrderInclude, parse_tokens

router = APIRouter(prefix="/api/orders", tags=["orders"], dependencies=[Depends(authenticate)])


@router.post("", status_code=201)
def create_order(order: schemas.OrderCreate, db: Session = Depends(get_db)):
    created = orders.create_order(db, order)
    return schemas.envelope(created, message="Order created successfully")


@router.get("")
def list_orders(
    page: int = 1,
    limit: int = 10,
    user_id: Optional[int] = Query(None, ge=1),
    status: Optional[OrderStatus] = None,
    total_amount_from: Optional[Decimal] = Query(None, ge=0),
    total_amount_to: Optional[Decimal] = Query(None, ge=0),
    include_deleted: bool = False,
    include: Optional[str] = Query(None, max_length=200),
    db: Session = Depends(get_db),
):
    filters = orders.OrderFilters(
        user_id=user_id,
        status=status,
        total_amount_from=total_amount_from,
        total_amount_to=total_amount_to,
        include_deleted=include_deleted,
        include=include,
    )
    data, pagination = orders.get_all_orders(db, page, limit, filters)
    return schemas.envelope(data, pagination=pagination)


@router.get("/{order_id}")
def get_order(
    order_id: int = Path(..., ge=1),
    include: Optional[str] = Query(None, max_length=200),
    include_deleted: bool = False,
    db: Session = Depends(get_db),
):
    tokens = parse_tokens(include, OrderInclude)
    detail = OrderInclude.items in tokens or OrderInclude.items_product in tokens
    order = orders.get_order_by_id(db, order_id, include_item_detail=detail, include_deleted=include_deleted)
    if not order:
        raise NotFoundError("Order not found")
    return schemas.envelope(order)


@router.put("/{order_id}")
def update_order(payload: schemas.OrderUpdate, order_id: int = Path(..., ge=1), db: Session = Depends(get_db)):
    updated = orders.update_order(db, order_id, payload)
    if not updated:
        raise NotFoundError("Order not found")
    return schemas.envelope(updated, message="Order updated successfully")


@router.post("/{order_id}/restore")
def restore_order(order_id: int = Path(..., ge=1), db: Session = Depends(get_db)):
    if not orders.restore_order(db, order_id):
        raise NotFoundError("Order not found or not deleted")
    return schemas.envelope(message="Order restored successfully")


@router.delete("/{order_id}/hard")
def hard_delete_order(order_id: int = Path(..., ge=1), db: Session = Depends(get_db)):
    if not orders.hard_delete_order(db, order_id):
        raise NotFoundError("Order not found")
    return schemas.envelope(message="Order permanently deleted from database")


@router.delete("/{order_id}")
def delete_order(order_id: int = Path(..., ge=1), db: Session = Depends(get_db)):
    if not orders.delete_order(db, order_id):
        raise NotFoundError("Order not found")
    return schemas.envelope(message="Order deleted successfully (soft delete)")
