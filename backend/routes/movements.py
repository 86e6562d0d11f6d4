# backend/routes/movements.py
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session

from database import get_db
from models.movement import MovementType
from models.users import User
import schemas.movement as movement_schemas
from services.errors import InsufficientStock, NotFound
from services.stock_ledger import StockLedger
from services.stores import MovementStore
from services.unit_of_work import UnitOfWork
from utils.audit import write_log
from utils.tokenJWT import get_current_user

router = APIRouter(prefix="/movements", tags=["Movements"])


def _ip(request: Request) -> Optional[str]:
    return request.client.host if request.client else None


@router.get("", response_model=List[movement_schemas.MovementDetail])
def list_movements(
    product_id: Optional[int] = Query(None, alias="productId"),
    type: Optional[MovementType] = Query(None),
    start_date: Optional[datetime] = Query(None, alias="startDate"),
    end_date: Optional[datetime] = Query(None, alias="endDate"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return MovementStore(db).list_owned(
        current_user.id, product_id=product_id, type=type, start=start_date, end=end_date,
    )


@router.get("/{movement_id}", response_model=movement_schemas.MovementDetail)
def get_movement(movement_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    movement = MovementStore(db).get_owned(movement_id, current_user.id)
    if movement is None:
        raise NotFound("Movement")
    return movement


@router.post("", response_model=movement_schemas.MovementCreateResponse, status_code=status.HTTP_201_CREATED)
def create_movement(
    payload: movement_schemas.MovementCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    try:
        with UnitOfWork(db) as uow:
            result = StockLedger(uow).apply_movement(
                payload.product_id, payload.type, payload.quantity,
                payload.reason, payload.notes, current_user.id,
            )
    except InsufficientStock as exc:
        write_log(
            db, user_id=current_user.id, action="MOVEMENT_CREATE", resource="movements", status="FAIL",
            ip=_ip(request),
            meta={"product_id": payload.product_id, "current_stock": exc.current_stock, "requested": exc.requested},
        )
        raise

    movement, product = result.movement, result.product
    response = {
        "movement": movement_schemas.MovementOut.model_validate(movement),
        "product": movement_schemas.MovementStockState(
            product_id=product.id,
            name=product.name,
            previous_stock=result.previous_stock,
            current_stock=result.current_stock,
            min_stock=product.min_stock,
        ),
    }
    write_log(
        db, user_id=current_user.id, action="MOVEMENT_CREATE", resource="movements", ip=_ip(request),
        meta={
            "id": movement.id, "product_id": product.id, "type": movement.type.value,
            "previous_stock": result.previous_stock, "current_stock": result.current_stock,
        },
    )
    return response


@router.delete("/{movement_id}", response_model=movement_schemas.MovementDeleteResponse)
def delete_movement(
    movement_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    with UnitOfWork(db) as uow:
        result = StockLedger(uow).reverse_movement(movement_id, current_user.id)

    write_log(
        db, user_id=current_user.id, action="MOVEMENT_DELETE", resource="movements", ip=_ip(request),
        meta={"id": movement_id, "product_id": result.product.id,
              "previous_stock": result.previous_stock, "current_stock": result.current_stock},
    )
    return {"message": "Movement deleted successfully", "new_stock": result.current_stock}
