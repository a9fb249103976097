from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Iterable, Optional, Sequence

from sqlalchemy import delete, or_, select, update
from sqlalchemy.orm import Session, selectinload

from . import models, schemas
from .db import transaction
from .errors import NotFoundError
from .logs import get_logger
from .queries import fetch_page, not_deleted, page_request
from .utils import contains_pattern

log = get_logger(__name__)


# -------------------- Soft delete lifecycle --------------------

def soft_delete(db: Session, model, entity_id: int) -> bool:
    """Mark a live row deleted. Only ``deleted_at`` changes."""
    with transaction(db):
        result = db.execute(
            update(model)
            .where(model.id == entity_id, model.deleted_at.is_(None))
            .values(deleted_at=models.utcnow(), updated_at=model.updated_at)
            .execution_options(synchronize_session=False)
        )
    deleted = result.rowcount > 0
    if deleted:
        log.info("soft_deleted", entity=model.__tablename__, id=entity_id)
    return deleted


def restore(db: Session, model, entity_id: int) -> bool:
    """Clear ``deleted_at``; False unless the row exists and is currently deleted."""
    with transaction(db):
        result = db.execute(
            update(model)
            .where(model.id == entity_id, model.deleted_at.is_not(None))
            .values(deleted_at=None, updated_at=model.updated_at)
            .execution_options(synchronize_session=False)
        )
    restored = result.rowcount > 0
    if restored:
        log.info("restored", entity=model.__tablename__, id=entity_id)
    return restored


def hard_delete(db: Session, model, entity_id: int, options: Sequence = ()) -> bool:
    """Remove a row for good, soft-deleted or not."""
    with transaction(db):
        obj = db.scalar(select(model).where(model.id == entity_id).options(*options))
        if obj is None:
            return False
        db.delete(obj)
    log.info("hard_deleted", entity=model.__tablename__, id=entity_id)
    return True


def get_active(db: Session, model, entity_id: int):
    return db.scalar(not_deleted(select(model).where(model.id == entity_id), model))


def _like(column, raw: Optional[str]):
    pattern = contains_pattern(raw)
    return column.like(pattern, escape="\\") if pattern else None


# -------------------- Roles --------------------

@dataclass
class RoleFilters:
    search: Optional[str] = None
    role_name: Optional[str] = None
    include_deleted: bool = False


def create_role(db: Session, role: schemas.RoleCreate) -> models.Role:
    db_role = models.Role(role_name=role.role_name.strip(), description=role.description)
    with transaction(db):
        db.add(db_role)
    db.refresh(db_role)
    log.info("role_created", role_id=db_role.id, role_name=db_role.role_name)
    return db_role


def get_role(db: Session, role_id: int) -> Optional[models.Role]:
    return get_active(db, models.Role, role_id)


def list_roles(db: Session, page: int = 1, limit: int = 10, filters: Optional[RoleFilters] = None):
    filters = filters or RoleFilters()
    Role = models.Role
    stmt = not_deleted(select(Role), Role, filters.include_deleted)
    pattern = contains_pattern(filters.search)
    if pattern:
        stmt = stmt.where(or_(Role.role_name.like(pattern, escape="\\"), Role.description.like(pattern, escape="\\")))
    name_clause = _like(Role.role_name, filters.role_name)
    if name_clause is not None:
        stmt = stmt.where(name_clause)
    return fetch_page(db, stmt, page_request(page, limit), order_by=[Role.created_at.asc(), Role.id.asc()])


def update_role(db: Session, role_id: int, data: schemas.RoleUpdate) -> Optional[models.Role]:
    with transaction(db):
        role = get_role(db, role_id)
        if not role:
            return None
        if data.role_name is not None and data.role_name.strip():
            role.role_name = data.role_name.strip()
        if "description" in data.model_fields_set:
            role.description = data.description
    db.refresh(role)
    return role


# -------------------- Users --------------------

@dataclass
class UserFilters:
    search: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    birth_date_from: Optional[date] = None
    birth_date_to: Optional[date] = None
    gender: Optional[models.Gender] = None
    include_deleted: bool = False
    with_roles: bool = False


def _link_roles(db: Session, user: models.User, role_ids: Iterable[int]) -> None:
    ids = sorted(set(role_ids))
    if not ids:
        return
    found = set(
        db.scalars(
            select(models.Role.id).where(models.Role.id.in_(ids), models.Role.deleted_at.is_(None))
        )
    )
    missing = [i for i in ids if i not in found]
    if missing:
        raise NotFoundError.for_ids("Roles", missing)
    db.add_all(models.UserRole(user_id=user.id, role_id=role_id) for role_id in ids)


def create_user(db: Session, user: schemas.UserCreate) -> models.User:
    with transaction(db):
        db_user = models.User(
            first_name=user.first_name,
            last_name=user.last_name,
            birth_date=user.birth_date,
            gender=user.gender,
            created_by=user.created_by,
        )
        db.add(db_user)
        db.flush()
        _link_roles(db, db_user, user.role_ids or [])
    db.refresh(db_user)
    log.info("user_created", user_id=db_user.id, roles=user.role_ids or [])
    return db_user


def get_user(db: Session, user_id: int, with_roles: bool = False) -> Optional[models.User]:
    stmt = not_deleted(select(models.User).where(models.User.id == user_id), models.User)
    if with_roles:
        stmt = stmt.options(selectinload(models.User.roles))
    return db.scalar(stmt)


def list_users(db: Session, page: int = 1, limit: int = 10, filters: Optional[UserFilters] = None):
    filters = filters or UserFilters()
    User = models.User
    stmt = not_deleted(select(User), User, filters.include_deleted)
    pattern = contains_pattern(filters.search)
    if pattern:
        stmt = stmt.where(or_(User.first_name.like(pattern, escape="\\"), User.last_name.like(pattern, escape="\\")))
    for column, raw in ((User.first_name, filters.first_name), (User.last_name, filters.last_name)):
        clause = _like(column, raw)
        if clause is not None:
            stmt = stmt.where(clause)
    if filters.birth_date_from is not None:
        stmt = stmt.where(User.birth_date >= filters.birth_date_from)
    if filters.birth_date_to is not None:
        stmt = stmt.where(User.birth_date <= filters.birth_date_to)
    if filters.gender is not None:
        stmt = stmt.where(User.gender == filters.gender)
    options = [selectinload(User.roles)] if filters.with_roles else []
    return fetch_page(
        db, stmt, page_request(page, limit), order_by=[User.created_at.desc(), User.id.desc()], options=options
    )


def update_user(db: Session, user_id: int, data: schemas.UserUpdate) -> Optional[models.User]:
    given = data.model_fields_set
    with transaction(db):
        user = get_user(db, user_id)
        if not user:
            return None
        if data.first_name is not None:
            user.first_name = data.first_name
        if data.last_name is not None:
            user.last_name = data.last_name
        if "birth_date" in given:
            user.birth_date = data.birth_date
        if "gender" in given:
            user.gender = data.gender
        if "updated_by" in given:
            user.updated_by = data.updated_by
        if data.role_ids is not None:
            db.execute(
                delete(models.UserRole)
                .where(models.UserRole.user_id == user.id)
                .execution_options(synchronize_session=False)
            )
            _link_roles(db, user, data.role_ids)
    db.refresh(user)
    log.info("user_updated", user_id=user_id, fields=sorted(given))
    return user


# -------------------- Products --------------------

@dataclass
class ProductFilters:
    search: Optional[str] = None
    name: Optional[str] = None
    description: Optional[str] = None
    price_from: Optional[Decimal] = None
    price_to: Optional[Decimal] = None
    include_deleted: bool = False


def create_product(db: Session, product: schemas.ProductCreate) -> models.Product:
    db_product = models.Product(
        name=product.name.strip(),
        price=product.price,
        description=product.description,
        quantity=product.quantity,
    )
    with transaction(db):
        db.add(db_product)
    db.refresh(db_product)
    log.info("product_created", product_id=db_product.id, quantity=db_product.quantity)
    return db_product


def get_product(db: Session, product_id: int) -> Optional[models.Product]:
    return get_active(db, models.Product, product_id)


def list_products(db: Session, page: int = 1, limit: int = 10, filters: Optional[ProductFilters] = None):
    filters = filters or ProductFilters()
    Product = models.Product
    stmt = not_deleted(select(Product), Product, filters.include_deleted)
    pattern = contains_pattern(filters.search)
    if pattern:
        stmt = stmt.where(
            or_(Product.name.like(pattern, escape="\\"), Product.description.like(pattern, escape="\\"))
        )
    for column, raw in ((Product.name, filters.name), (Product.description, filters.description)):
        clause = _like(column, raw)
        if clause is not None:
            stmt = stmt.where(clause)
    if filters.price_from is not None:
        stmt = stmt.where(Product.price >= filters.price_from)
    if filters.price_to is not None:
        stmt = stmt.where(Product.price <= filters.price_to)
    return fetch_page(db, stmt, page_request(page, limit), order_by=[Product.id.desc()])


def update_product(db: Session, product_id: int, data: schemas.ProductUpdate) -> Optional[models.Product]:
    with transaction(db):
        product = get_product(db, product_id)
        if not product:
            return None
        # invalid values are ignored rather than rejected
        if data.name is not None and data.name.strip():
            product.name = data.name.strip()
        if data.price is not None and data.price >= 0:
            product.price = data.price
        if "description" in data.model_fields_set:
            product.description = data.description or None
        if data.quantity is not None and data.quantity >= 0:
            product.quantity = data.quantity
    db.refresh(product)
    log.info("product_updated", product_id=product_id, fields=sorted(data.model_fields_set))
    return product
