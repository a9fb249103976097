from datetime import date, datetime
from decimal import Decimal
from typing import Any, Iterable, Optional

from pydantic import BaseModel, Field, PositiveInt, field_validator, model_validator
from pydantic.alias_generators import to_camel
from pydantic.config import ConfigDict

from .models import Gender, OrderStatus, PaymentMethod

MALE_BIRTH_DATE_FLOOR = date(2000, 1, 1)


def _blank_to_none(v):
    if isinstance(v, str) and not v.strip():
        return None
    return v


def _check_male_birth_date(gender: Optional[Gender], birth_date: Optional[date]):
    if gender == Gender.male:
        if birth_date is None:
            raise ValueError("birth_date is required when gender is male")
        if birth_date < MALE_BIRTH_DATE_FLOOR:
            raise ValueError("If gender is male, birth_date must be from year 2000 onwards")


# -------------------- Requests (snake_case) --------------------

class RoleCreate(BaseModel):
    role_name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None


class RoleUpdate(BaseModel):
    role_name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = None


class UserCreate(BaseModel):
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    birth_date: Optional[date] = None
    gender: Optional[Gender] = None
    created_by: Optional[PositiveInt] = None
    role_ids: Optional[list[PositiveInt]] = None

    @field_validator("birth_date", mode="before")
    @classmethod
    def blank_birth_date(cls, v):
        return _blank_to_none(v)

    @model_validator(mode="after")
    def male_birth_date(self):
        _check_male_birth_date(self.gender, self.birth_date)
        return self


class UserUpdate(BaseModel):
    first_name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    birth_date: Optional[date] = None
    gender: Optional[Gender] = None
    updated_by: Optional[PositiveInt] = None
    role_ids: Optional[list[PositiveInt]] = None

    @field_validator("birth_date", "gender", mode="before")
    @classmethod
    def blank_values(cls, v):
        return _blank_to_none(v)

    @model_validator(mode="after")
    def male_birth_date(self):
        if "gender" in self.model_fields_set:
            _check_male_birth_date(self.gender, self.birth_date)
        return self


class ProductCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    price: Decimal = Field(..., gt=0, max_digits=10, decimal_places=2)
    description: Optional[str] = None
    quantity: int = Field(default=0, ge=0)


class ProductUpdate(BaseModel):
    name: Optional[str] = Field(default=None, max_length=255)
    price: Optional[Decimal] = Field(default=None, max_digits=10, decimal_places=2)
    description: Optional[str] = None
    quantity: Optional[int] = None


class OrderItemIn(BaseModel):
    product_id: PositiveInt
    quantity: int = Field(..., ge=1)
    # falls back to the product's current price when omitted
    unit_price: Optional[Decimal] = Field(default=None, gt=0, max_digits=12, decimal_places=2)


class OrderCreate(BaseModel):
    user_id: PositiveInt
    status: Optional[OrderStatus] = None
    note: Optional[str] = None
    shipping_address: Optional[str] = None
    payment_method: Optional[PaymentMethod] = None
    items: list[OrderItemIn] = Field(..., min_length=1)

    @field_validator("payment_method", mode="before")
    @classmethod
    def blank_payment_method(cls, v):
        return _blank_to_none(v)


class OrderUpdate(BaseModel):
    status: Optional[OrderStatus] = None
    note: Optional[str] = None
    shipping_address: Optional[str] = None
    payment_method: Optional[PaymentMethod] = None
    items: Optional[list[OrderItemIn]] = None

    @field_validator("payment_method", mode="before")
    @classmethod
    def blank_payment_method(cls, v):
        return _blank_to_none(v)


# -------------------- Responses (camelCase) --------------------

class ReadModel(BaseModel):
    model_config = ConfigDict(from_attributes=True, alias_generator=to_camel, populate_by_name=True)


class RoleSummary(ReadModel):
    id: int
    role_name: str


class RoleRead(RoleSummary):
    description: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    deleted_at: Optional[datetime] = None


class UserSummary(ReadModel):
    id: int
    first_name: str
    last_name: str


class UserRead(UserSummary):
    birth_date: Optional[date] = None
    gender: Optional[Gender] = None
    created_by: Optional[int] = None
    updated_by: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    deleted_at: Optional[datetime] = None


class UserWithRoles(UserRead):
    roles: list[RoleSummary] = []


class ProductSummary(ReadModel):
    id: int
    name: str
    price: Decimal


class ProductRead(ProductSummary):
    description: Optional[str] = None
    quantity: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    deleted_at: Optional[datetime] = None


class OrderItemRead(ReadModel):
    """A line item. Only ``id`` and ``quantity`` are set in the light view."""

    id: int
    quantity: int
    order_id: Optional[int] = None
    product_id: Optional[int] = None
    unit_price: Optional[Decimal] = None
    line_total: Optional[Decimal] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    product: Optional[ProductSummary] = None


class OrderRead(ReadModel):
    id: int
    user_id: int
    status: OrderStatus
    total_amount: Decimal
    note: Optional[str] = None
    shipping_address: Optional[str] = None
    payment_method: Optional[PaymentMethod] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    deleted_at: Optional[datetime] = None
    user: Optional[UserSummary] = None
    items: Optional[list[OrderItemRead]] = None


class PageMeta(ReadModel):
    page: int
    limit: int
    total: int
    total_pages: int
    has_next: bool
    has_prev: bool


# -------------------- Envelope --------------------

def dump(model: BaseModel, fields: Optional[Iterable[str]] = None) -> dict:
    include = set(fields) if fields else None
    return model.model_dump(mode="json", by_alias=True, exclude_unset=True, include=include)


def envelope(
    data: Any = None,
    message: Optional[str] = None,
    pagination: Optional[PageMeta] = None,
    fields: Optional[Iterable[str]] = None,
) -> dict:
    body: dict[str, Any] = {"success": True}
    if isinstance(data, list):
        body["data"] = [dump(item, fields) for item in data]
    elif isinstance(data, BaseModel):
        body["data"] = dump(data, fields)
    if message:
        body["message"] = message
    if pagination is not None:
        body["pagination"] = pagination.model_dump(by_alias=True)
    return body


def error_body(message: str, errors: Optional[list[dict]] = None) -> dict:
    body: dict[str, Any] = {"success": False, "message": message}
    if errors:
        body["errors"] = errors
    return body
