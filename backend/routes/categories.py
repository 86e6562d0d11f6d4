# backend/routes/categories.py
from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from database import get_db
from models.category import Category
from models.users import User
from schemas.category import CategoryIn, CategoryOut, CategoryWithCount
from schemas.common import MessageResponse
from services.errors import CategoryInUse, NotFound
from services.stores import CategoryStore
from services.unit_of_work import UnitOfWork
from utils.audit import write_log
from utils.tokenJWT import get_current_user

router = APIRouter(prefix="/categories", tags=["Categories"])


def _owned_or_404(store: CategoryStore, category_id: int, user: User) -> Category:
    category = store.get_owned(category_id, user.id)
    if category is None:
        raise NotFound("Category")
    return category


@router.get("", response_model=List[CategoryWithCount])
def list_categories(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    rows = CategoryStore(db).list_owned(current_user.id)
    result = []
    for category, count in rows:
        item = CategoryWithCount.model_validate(category)
        item.product_count = count
        result.append(item)
    return result


@router.get("/{category_id}", response_model=CategoryWithCount)
def get_category(category_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    store = CategoryStore(db)
    category = _owned_or_404(store, category_id, current_user)
    item = CategoryWithCount.model_validate(category)
    item.product_count = store.product_count(category.id)
    return item


@router.post("", response_model=CategoryOut, status_code=status.HTTP_201_CREATED)
def create_category(
    payload: CategoryIn,
    db: Session = Depends(get_db), current_user: User = Depends(get_current_user),
):
    with UnitOfWork(db) as uow:
        category = CategoryStore(uow.session).add(Category(name=payload.name, user_id=current_user.id))
    db.refresh(category)
    write_log(db, user_id=current_user.id, action="CATEGORY_CREATE", resource="categories", meta={"id": category.id})
    return category


@router.put("/{category_id}", response_model=CategoryOut)
def update_category(
    category_id: int, payload: CategoryIn,
    db: Session = Depends(get_db), current_user: User = Depends(get_current_user),
):
    with UnitOfWork(db) as uow:
        category = _owned_or_404(CategoryStore(uow.session), category_id, current_user)
        category.name = payload.name
    db.refresh(category)
    write_log(db, user_id=current_user.id, action="CATEGORY_UPDATE", resource="categories", meta={"id": category.id})
    return category


@router.delete("/{category_id}", response_model=MessageResponse)
def delete_category(category_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    with UnitOfWork(db) as uow:
        store = CategoryStore(uow.session)
        category = _owned_or_404(store, category_id, current_user)
        count = store.product_count(category.id)
        if count > 0:
            raise CategoryInUse(count)
        store.delete(category)
    write_log(db, user_id=current_user.id, action="CATEGORY_DELETE", resource="categories", meta={"id": category_id})
    return {"message": "Category deleted successfully"}
