from typing import Optional

from fastapi import APIRouter, Depends, Path, Query
from sqlalchemy.orm import Session

from .. import crud, models, schemas
from ..auth import authenticate
from ..db import get_db
from ..errors import NotFoundError

router = APIRouter(prefix="/api/roles", tags=["roles"], dependencies=[Depends(authenticate)])


@router.post("", status_code=201)
def create_role(role: schemas.RoleCreate, db: Session = Depends(get_db)):
    created = crud.create_role(db, role)
    return schemas.envelope(schemas.RoleRead.model_validate(created), message="Role created successfully")


@router.get("")
def list_roles(
    page: int = 1,
    limit: int = 10,
    search: Optional[str] = Query(None, max_length=200),
    role_name: Optional[str] = Query(None, max_length=100),
    include_deleted: bool = False,
    db: Session = Depends(get_db),
):
    filters = crud.RoleFilters(search=search, role_name=role_name, include_deleted=include_deleted)
    rows, pagination = crud.list_roles(db, page, limit, filters)
    return schemas.envelope([schemas.RoleRead.model_validate(r) for r in rows], pagination=pagination)


@router.get("/{role_id}")
def get_role(role_id: int = Path(..., ge=1), db: Session = Depends(get_db)):
    role = crud.get_role(db, role_id)
    if not role:
        raise NotFoundError("Role not found")
    return schemas.envelope(schemas.RoleRead.model_validate(role))


@router.put("/{role_id}")
def update_role(payload: schemas.RoleUpdate, role_id: int = Path(..., ge=1), db: Session = Depends(get_db)):
    updated = crud.update_role(db, role_id, payload)
    if not updated:
        raise NotFoundError("Role not found")
    return schemas.envelope(schemas.RoleRead.model_validate(updated), message="Role updated successfully")


@router.post("/{role_id}/restore")
def restore_role(role_id: int = Path(..., ge=1), db: Session = Depends(get_db)):
    if not crud.restore(db, models.Role, role_id):
        raise NotFoundError("Role not found or not deleted")
    return schemas.envelope(message="Role restored successfully")


@router.delete("/{role_id}/hard")
def hard_delete_role(role_id: int = Path(..., ge=1), db: Session = Depends(get_db)):
    if not crud.hard_delete(db, models.Role, role_id):
        raise NotFoundError("Role not found")
    return schemas.envelope(message="Role permanently deleted from database")


@router.delete("/{role_id}")
def delete_role(role_id: int = Path(..., ge=1), db: Session = Depends(get_db)):
    if not crud.soft_delete(db, models.Role, role_id):
        raise NotFoundError("Role not found")
    return schemas.envelope(message="Role deleted successfully (soft delete)")
