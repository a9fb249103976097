from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends, Path, Query
from sqlalchemy.orm import Session

from .. import crud, models, schemas
from ..auth import authenticate
from ..db import get_db
from ..errors import NotFoundError
from ..queries import ProductField, projection

router = APIRouter(prefix="/api/products", tags=["products"], dependencies=[Depends(authenticate)])


@router.post("", status_code=201)
def create_product(product: schemas.ProductCreate, db: Session = Depends(get_db)):
    created = crud.create_product(db, product)
    return schemas.envelope(schemas.ProductRead.model_validate(created), message="Product created successfully")


@router.get("")
def list_products(
    page: int = 1,
    limit: int = 10,
    search: Optional[str] = Query(None, max_length=200),
    name: Optional[str] = Query(None, max_length=255),
    description: Optional[str] = Query(None, max_length=500),
    price_from: Optional[Decimal] = Query(None, ge=0),
    price_to: Optional[Decimal] = Query(None, ge=0),
    include_deleted: bool = False,
    fields: Optional[str] = Query(None, max_length=500),
    db: Session = Depends(get_db),
):
    filters = crud.ProductFilters(
        search=search,
        name=name,
        description=description,
        price_from=price_from,
        price_to=price_to,
        include_deleted=include_deleted,
    )
    rows, pagination = crud.list_products(db, page, limit, filters)
    data = [schemas.ProductRead.model_validate(p) for p in rows]
    return schemas.envelope(data, pagination=pagination, fields=projection(fields, ProductField))


@router.get("/{product_id}")
def get_product(product_id: int = Path(..., ge=1), db: Session = Depends(get_db)):
    product = crud.get_product(db, product_id)
    if not product:
        raise NotFoundError("Product not found")
    return schemas.envelope(schemas.ProductRead.model_validate(product))


@router.put("/{product_id}")
def update_product(payload: schemas.ProductUpdate, product_id: int = Path(..., ge=1), db: Session = Depends(get_db)):
    updated = crud.update_product(db, product_id, payload)
    if not updated:
        raise NotFoundError("Product not found")
    return schemas.envelope(schemas.ProductRead.model_validate(updated), message="Product updated successfully")


@router.post("/{product_id}/restore")
def restore_product(product_id: int = Path(..., ge=1), db: Session = Depends(get_db)):
    if not crud.restore(db, models.Product, product_id):
        raise NotFoundError("Product not found or not deleted")
    return schemas.envelope(message="Product restored successfully")


@router.delete("/{product_id}/hard")
def hard_delete_product(product_id: int = Path(..., ge=1), db: Session = Depends(get_db)):
    if not crud.hard_delete(db, models.Product, product_id):
        raise NotFoundError("Product not found")
    return schemas.envelope(message="Product permanently deleted from database")


@router.delete("/{product_id}")
def delete_product(product_id: int = Path(..., ge=1), db: Session = Depends(get_db)):
    if not crud.soft_delete(db, models.Product, product_id):
        raise NotFoundError("Product not found")
    return schemas.envelope(message="Product deleted successfully (soft delete)")
