from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Path, Query
from sqlalchemy.orm import Session

from .. import crud, models, schemas
from ..auth import authenticate
from ..db import get_db
from ..errors import NotFoundError
from ..models import Gender
from ..queries import UserField, UserInclude, parse_tokens, projection

router = APIRouter(prefix="/api/users", tags=["users"], dependencies=[Depends(authenticate)])


def _read(user: models.User, with_roles: bool) -> schemas.UserRead:
    model = schemas.UserWithRoles if with_roles else schemas.UserRead
    return model.model_validate(user)


@router.post("", status_code=201)
def create_user(user: schemas.UserCreate, db: Session = Depends(get_db)):
    created = crud.create_user(db, user)
    return schemas.envelope(_read(created, with_roles=bool(user.role_ids)), message="User created successfully")


@router.get("")
def list_users(
    page: int = 1,
    limit: int = 10,
    search: Optional[str] = Query(None, max_length=200),
    first_name: Optional[str] = Query(None, max_length=100),
    last_name: Optional[str] = Query(None, max_length=100),
    birth_date_from: Optional[date] = None,
    birth_date_to: Optional[date] = None,
    gender: Optional[Gender] = None,
    include_deleted: bool = False,
    fields: Optional[str] = Query(None, max_length=500),
    include: Optional[str] = Query(None, max_length=200),
    db: Session = Depends(get_db),
):
    with_roles = UserInclude.roles in parse_tokens(include, UserInclude)
    filters = crud.UserFilters(
        search=search,
        first_name=first_name,
        last_name=last_name,
        birth_date_from=birth_date_from,
        birth_date_to=birth_date_to,
        gender=gender,
        include_deleted=include_deleted,
        with_roles=with_roles,
    )
    rows, pagination = crud.list_users(db, page, limit, filters)
    data = [_read(user, with_roles) for user in rows]
    return schemas.envelope(data, pagination=pagination, fields=projection(fields, UserField))


@router.get("/{user_id}")
def get_user(
    user_id: int = Path(..., ge=1),
    include: Optional[str] = Query(None, max_length=200),
    db: Session = Depends(get_db),
):
    with_roles = UserInclude.roles in parse_tokens(include, UserInclude)
    user = crud.get_user(db, user_id, with_roles=with_roles)
    if not user:
        raise NotFoundError("User not found")
    return schemas.envelope(_read(user, with_roles))


@router.put("/{user_id}")
def update_user(payload: schemas.UserUpdate, user_id: int = Path(..., ge=1), db: Session = Depends(get_db)):
    updated = crud.update_user(db, user_id, payload)
    if not updated:
        raise NotFoundError("User not found")
    return schemas.envelope(
        _read(updated, with_roles=payload.role_ids is not None), message="User updated successfully"
    )


@router.post("/{user_id}/restore")
def restore_user(user_id: int = Path(..., ge=1), db: Session = Depends(get_db)):
    if not crud.restore(db, models.User, user_id):
        raise NotFoundError("User not found or not deleted")
    return schemas.envelope(message="User restored successfully")


@router.delete("/{user_id}/hard")
def hard_delete_user(user_id: int = Path(..., ge=1), db: Session = Depends(get_db)):
    if not crud.hard_delete(db, models.User, user_id):
        raise NotFoundError("User not found")
    return schemas.envelope(message="User permanently deleted from database")


@router.delete("/{user_id}")
def delete_user(user_id: int = Path(..., ge=1), db: Session = Depends(get_db)):
    if not crud.soft_delete(db, models.User, user_id):
        raise NotFoundError("User not found")
    return schemas.envelope(message="User deleted successfully (soft delete)")
