"""Order workflow: creating, reading, updating and deleting orders.

Every operation that writes more than one table runs inside a single
``transaction(db)``; a failure at any step leaves no partial order and no
partial stock movement behind.
"""
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Mapping, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from . import inventory, models, schemas, totals
from .crud import hard_delete, restore, soft_delete
from .db import transaction
from .errors import NotFoundError, ValidationError
from .logs import get_logger
from .queries import OrderInclude, PageRequest, fetch_page, not_deleted, page_request, parse_tokens

log = get_logger(__name__)

Order = models.Order
OrderDetail = models.OrderDetail


@dataclass(frozen=True)
class OrderView:
    """What to load and show alongside an order."""

    user: bool = False
    item_detail: bool = False
    item_product: bool = False

    @classmethod
    def from_include(cls, raw: Optional[str]) -> "OrderView":
        tokens = parse_tokens(raw, OrderInclude)
        return cls(
            user=OrderInclude.user in tokens,
            item_detail=OrderInclude.items in tokens,
            item_product=OrderInclude.items_product in tokens,
        )

    def loader_options(self) -> list:
        # soft-deleted users and products load as None
        items = selectinload(Order.items)
        if self.item_product:
            items = items.selectinload(OrderDetail.product.and_(models.Product.deleted_at.is_(None)))
        options = [items]
        if self.user:
            options.append(selectinload(Order.user.and_(models.User.deleted_at.is_(None))))
        return options


LIGHT_VIEW = OrderView()
FULL_VIEW = OrderView(item_detail=True, item_product=True)


@dataclass
class OrderFilters:
    user_id: Optional[int] = None
    status: Optional[models.OrderStatus] = None
    total_amount_from: Optional[Decimal] = None
    total_amount_to: Optional[Decimal] = None
    include_deleted: bool = False
    include: Optional[str] = None


def to_order_read(order: models.Order, view: OrderView = LIGHT_VIEW) -> schemas.OrderRead:
    read = schemas.OrderRead(
        id=order.id,
        user_id=order.user_id,
        status=order.status,
        total_amount=order.total_amount,
        note=order.note,
        shipping_address=order.shipping_address,
        payment_method=order.payment_method,
        created_at=order.created_at,
        updated_at=order.updated_at,
        deleted_at=order.deleted_at,
    )
    if view.user:
        read.user = schemas.UserSummary.model_validate(order.user) if order.user is not None else None
    read.items = [_to_item_read(detail, view) for detail in order.items]
    return read


def _to_item_read(detail: models.OrderDetail, view: OrderView) -> schemas.OrderItemRead:
    item = schemas.OrderItemRead(id=detail.id, quantity=detail.quantity)
    if view.item_detail:
        item.order_id = detail.order_id
        item.product_id = detail.product_id
        item.unit_price = detail.unit_price
        item.line_total = detail.line_total
        item.created_at = detail.created_at
        item.updated_at = detail.updated_at
    if view.item_product:
        item.product = schemas.ProductSummary.model_validate(detail.product) if detail.product is not None else None
    return item


def _load_order(
    db: Session, order_id: int, view: OrderView, include_deleted: bool = False
) -> Optional[models.Order]:
    stmt = not_deleted(select(Order).where(Order.id == order_id), Order, include_deleted)
    stmt = stmt.options(*view.loader_options()).execution_options(populate_existing=True)
    return db.scalar(stmt)


def resolve_unit_price(item: schemas.OrderItemIn, product: models.Product) -> Decimal:
    """Explicit price when given, else the product's price right now."""
    if item.unit_price is not None:
        return item.unit_price
    return product.price


def _build_details(
    items: Iterable[schemas.OrderItemIn], products: Mapping[int, models.Product]
) -> list[models.OrderDetail]:
    return [
        OrderDetail(
            product_id=item.product_id,
            quantity=item.quantity,
            unit_price=resolve_unit_price(item, products[item.product_id]),
        )
        for item in items
    ]


def create_order(db: Session, data: schemas.OrderCreate) -> schemas.OrderRead:
    with transaction(db):
        if not data.items:
            raise ValidationError("items must contain at least one item")

        user = db.scalar(
            select(models.User).where(models.User.id == data.user_id, models.User.deleted_at.is_(None))
        )
        if user is None:
            raise NotFoundError.for_id("User", data.user_id)

        products = inventory.load_products(db, (item.product_id for item in data.items))
        wanted = inventory.reserved_quantities((item.product_id, item.quantity) for item in data.items)
        changes = inventory.reservation_changes({}, wanted)
        inventory.ensure_available(products, changes)

        order = Order(
            user_id=data.user_id,
            status=data.status or models.OrderStatus.pending,
            total_amount=Decimal("0"),
            note=data.note,
            shipping_address=data.shipping_address,
            payment_method=data.payment_method,
        )
        db.add(order)
        db.flush()

        order.items.extend(_build_details(data.items, products))
        db.flush()

        inventory.apply_changes(db, products, changes)
        totals.refresh_order_total(db, order)
        order_id = order.id

    created = _load_order(db, order_id, FULL_VIEW)
    log.info(
        "order_created",
        order_id=order_id,
        user_id=data.user_id,
        items=len(data.items),
        total_amount=str(created.total_amount),
    )
    return to_order_read(created, FULL_VIEW)


def get_order_by_id(
    db: Session, order_id: int, include_item_detail: bool = False, include_deleted: bool = False
) -> Optional[schemas.OrderRead]:
    view = FULL_VIEW if include_item_detail else LIGHT_VIEW
    order = _load_order(db, order_id, view, include_deleted)
    return to_order_read(order, view) if order else None


def get_all_orders(
    db: Session, page: int = 1, limit: int = 10, filters: Optional[OrderFilters] = None
) -> tuple[list[schemas.OrderRead], schemas.PageMeta]:
    filters = filters or OrderFilters()
    req: PageRequest = page_request(page, limit)
    view = OrderView.from_include(filters.include)

    stmt = not_deleted(select(Order), Order, filters.include_deleted).execution_options(populate_existing=True)
    if filters.user_id is not None:
        stmt = stmt.where(Order.user_id == filters.user_id)
    if filters.status is not None:
        stmt = stmt.where(Order.status == filters.status)
    if filters.total_amount_from is not None:
        stmt = stmt.where(Order.total_amount >= filters.total_amount_from)
    if filters.total_amount_to is not None:
        stmt = stmt.where(Order.total_amount <= filters.total_amount_to)

    rows, meta = fetch_page(db, stmt, req, order_by=[Order.id.desc()], options=view.loader_options())
    return [to_order_read(order, view) for order in rows], meta


def _scalar_updates(data: schemas.OrderUpdate) -> dict:
    given = data.model_fields_set
    updates = {}
    if "status" in given and data.status is not None:
        updates["status"] = data.status
    for name in ("note", "shipping_address", "payment_method"):
        if name in given:
            updates[name] = getattr(data, name) or None
    return updates


def _replace_items(db: Session, order: models.Order, items: list[schemas.OrderItemIn]) -> dict[int, int]:
    old = inventory.reserved_quantities((d.product_id, d.quantity) for d in order.items)
    new = inventory.reserved_quantities((item.product_id, item.quantity) for item in items)

    # products on the new list must be live; removed ones are restocked even if soft-deleted
    products = inventory.load_products(db, new.keys())
    products.update(inventory.load_products(db, old.keys() - new.keys(), include_deleted=True))

    changes = inventory.reservation_changes(old, new)
    inventory.ensure_available(products, changes)
    inventory.apply_changes(db, products, changes)

    order.items.clear()
    db.flush()
    order.items.extend(_build_details(items, products))
    db.flush()
    return changes


def update_order(db: Session, order_id: int, data: schemas.OrderUpdate) -> Optional[schemas.OrderRead]:
    changes = None
    with transaction(db):
        order = _load_order(db, order_id, LIGHT_VIEW)
        if order is None:
            return None

        if data.items is not None:
            changes = _replace_items(db, order, data.items)

        updates = _scalar_updates(data)
        for name, value in updates.items():
            setattr(order, name, value)

        if changes is not None:
            totals.refresh_order_total(db, order)
        db.flush()

    updated = _load_order(db, order_id, FULL_VIEW)
    log.info(
        "order_updated",
        order_id=order_id,
        fields=sorted(updates),
        items_replaced=changes is not None,
        stock_changes={str(k): v for k, v in (changes or {}).items()},
        total_amount=str(updated.total_amount),
    )
    return to_order_read(updated, FULL_VIEW)


def delete_order(db: Session, order_id: int) -> bool:
    # soft delete only archives the order; reserved stock stays reserved
    return soft_delete(db, Order, order_id)


def hard_delete_order(db: Session, order_id: int) -> bool:
    return hard_delete(db, Order, order_id, options=[selectinload(Order.items)])


def restore_order(db: Session, order_id: int) -> bool:
    restored = restore(db, Order, order_id)
    if not restored:
        log.warning("order_restore_rejected", order_id=order_id, reason="not found or not deleted")
    return restored
