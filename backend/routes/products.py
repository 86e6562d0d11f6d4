# backend/routes/products.py
from typing import Optional, List

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session

from database import get_db
from models.product import Product
from models.users import User
from schemas.common import MessageResponse
import schemas.product as product_schemas
from services.catalog import ProductCatalog
from services.errors import NotFound
from services.stores import ProductStore
from services.unit_of_work import UnitOfWork
from utils.audit import write_log
from utils.tokenJWT import get_current_user

router = APIRouter(prefix="/products", tags=["Products"])

# Products whose stock is under 1.5x the minimum count as "low"
LOW_STOCK_FACTOR = 1.5


# ---- HELPERS ----
def stock_status(product: Product) -> str:
    if product.current_stock < product.min_stock:
        return "critical"
    if product.current_stock < product.min_stock * LOW_STOCK_FACTOR:
        return "low"
    return "sufficient"


def _ip(request: Request) -> Optional[str]:
    return request.client.host if request.client else None


# =========================
# PRODUCT LIST
# =========================
@router.get("", response_model=List[product_schemas.ProductOut])
def list_products(
    category: Optional[int] = Query(None, description="Category id"),
    status_filter: Optional[product_schemas.StockStatus] = Query(None, alias="status"),
    search: Optional[str] = Query(None, description="Name or SKU fragment"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    products = ProductStore(db).list_owned(current_user.id, category_id=category, search=search)
    if status_filter:
        products = [p for p in products if stock_status(p) == status_filter]
    return products


# =========================
# SINGLE PRODUCT
# =========================
@router.get("/{product_id}", response_model=product_schemas.ProductDetail)
def get_product(product_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    product = ProductStore(db).get_owned(product_id, current_user.id)
    if product is None:
        raise NotFound("Product")
    return product


# =========================
# ADD PRODUCT
# =========================
@router.post("", response_model=product_schemas.ProductOut, status_code=status.HTTP_201_CREATED)
def add_product(
    payload: product_schemas.ProductCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    with UnitOfWork(db) as uow:
        change = ProductCatalog(uow).create_product(
            current_user.id,
            name=payload.name,
            price=payload.price,
            min_stock=payload.min_stock,
            current_stock=payload.current_stock,
            category_id=payload.category_id,
            description=payload.description,
            barcode=payload.barcode,
        )
    product = change.product
    db.refresh(product)

    write_log(
        db, user_id=current_user.id, action="PRODUCT_CREATE", resource="products", ip=_ip(request),
        meta={"id": product.id, "sku": product.sku, "alert_opened": change.alerts.created is not None},
    )
    return product


# =========================
# UPDATE PRODUCT
# =========================
@router.put("/{product_id}", response_model=product_schemas.ProductOut)
def update_product(
    product_id: int,
    payload: product_schemas.ProductUpdate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    with UnitOfWork(db) as uow:
        change = ProductCatalog(uow).update_product(
            product_id, current_user.id, **payload.model_dump(exclude_unset=True)
        )
    product = change.product
    db.refresh(product)

    write_log(
        db, user_id=current_user.id, action="PRODUCT_UPDATE", resource="products", ip=_ip(request),
        meta={"id": product.id, "alerts_changed": change.alerts.changed},
    )
    return product


# =========================
# DELETE PRODUCT
# =========================
@router.delete("/{product_id}", response_model=MessageResponse)
def delete_product(
    product_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    with UnitOfWork(db) as uow:
        ProductCatalog(uow).delete_product(product_id, current_user.id)

    write_log(db, user_id=current_user.id, action="PRODUCT_DELETE", resource="products",
              ip=_ip(request), meta={"id": product_id})
    return {"message": "Product deleted successfully"}
