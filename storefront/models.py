import enum
from datetime import datetime, timezone

from sqlalchemy import (
    CheckConstraint,
    Column,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from .db import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Gender(str, enum.Enum):
    male = "male"
    female = "female"
    other = "other"


class OrderStatus(str, enum.Enum):
    pending = "pending"
    processing = "processing"
    completed = "completed"
    cancelled = "cancelled"


class PaymentMethod(str, enum.Enum):
    cod = "cod"
    credit_card = "credit_card"
    bank_transfer = "bank_transfer"
    paypal = "paypal"


def _values(enum_cls):
    return [member.value for member in enum_cls]


class TimestampMixin:
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)


class SoftDeleteMixin:
    # NULL while the row is live; set on soft delete, cleared on restore
    deleted_at = Column(DateTime(timezone=True), nullable=True, index=True)


class User(TimestampMixin, SoftDeleteMixin, Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    first_name = Column(String(100), nullable=False, index=True)
    last_name = Column(String(100), nullable=False, index=True)
    birth_date = Column(Date, nullable=True)
    gender = Column(Enum(Gender, name="gender", values_callable=_values), nullable=True)
    created_by = Column(Integer, nullable=True)
    updated_by = Column(Integer, nullable=True)

    # Role assignments are written through UserRole rows
    roles = relationship(
        "Role",
        secondary="user_roles",
        primaryjoin="User.id == UserRole.user_id",
        secondaryjoin="and_(Role.id == UserRole.role_id, Role.deleted_at.is_(None))",
        viewonly=True,
        order_by="Role.id",
    )
    role_links = relationship("UserRole", back_populates="user", cascade="all, delete-orphan")
    orders = relationship("Order", back_populates="user", passive_deletes="all")


class Role(TimestampMixin, SoftDeleteMixin, Base):
    __tablename__ = "roles"

    id = Column(Integer, primary_key=True, index=True)
    role_name = Column(String(100), nullable=False, unique=True)
    description = Column(Text, nullable=True)

    user_links = relationship("UserRole", back_populates="role", cascade="all, delete-orphan")


class UserRole(TimestampMixin, Base):
    __tablename__ = "user_roles"
    __table_args__ = (UniqueConstraint("user_id", "role_id", name="uq_user_roles_user_role"),)

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    role_id = Column(Integer, ForeignKey("roles.id", ondelete="CASCADE"), nullable=False, index=True)

    user = relationship("User", back_populates="role_links")
    role = relationship("Role", back_populates="user_links")


class Product(TimestampMixin, SoftDeleteMixin, Base):
    __tablename__ = "products"
    __table_args__ = (
        CheckConstraint("price >= 0", name="ck_products_price_non_negative"),
        CheckConstraint("quantity >= 0", name="ck_products_quantity_non_negative"),
    )

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False, index=True)
    price = Column(Numeric(10, 2), nullable=False, index=True)
    description = Column(Text, nullable=True)
    # available stock
    quantity = Column(Integer, nullable=False, default=0)


class Order(TimestampMixin, SoftDeleteMixin, Base):
    __tablename__ = "orders"
    __table_args__ = (CheckConstraint("total_amount >= 0", name="ck_orders_total_non_negative"),)

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    status = Column(
        Enum(OrderStatus, name="order_status", values_callable=_values),
        nullable=False,
        default=OrderStatus.pending,
        index=True,
    )
    # maintained by totals.refresh_order_total, never assigned by callers
    total_amount = Column(Numeric(10, 2), nullable=False, default=0)
    note = Column(Text, nullable=True)
    shipping_address = Column(Text, nullable=True)
    payment_method = Column(Enum(PaymentMethod, name="payment_method", values_callable=_values), nullable=True)

    user = relationship("User", back_populates="orders")
    items = relationship(
        "OrderDetail",
        back_populates="order",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="OrderDetail.id",
    )


class OrderDetail(TimestampMixin, Base):
    __tablename__ = "order_details"
    __table_args__ = (
        CheckConstraint("quantity >= 1", name="ck_order_details_quantity_positive"),
        CheckConstraint("unit_price >= 0", name="ck_order_details_unit_price_non_negative"),
    )

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False, index=True)
    quantity = Column(Integer, nullable=False)
    # price snapshot taken when the line was written
    unit_price = Column(Numeric(12, 2), nullable=False)
    line_total = Column(Numeric(14, 2), nullable=True)

    order = relationship("Order", back_populates="items")
    product = relationship("Product")
