# backend/routes/alerts.py
from typing import List

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from database import get_db
from models.users import User
import schemas.alert as alert_schemas
from schemas.common import MessageResponse
from services.alerts import AlertManager
from services.errors import AlreadyResolved, NotFound
from services.stores import AlertStore
from services.unit_of_work import UnitOfWork
from utils.audit import write_log
from utils.tokenJWT import get_current_user

router = APIRouter(prefix="/alerts", tags=["Alerts"])

_STATUS_TO_RESOLVED = {"active": False, "resolved": True, "all": None}


@router.get("", response_model=List[alert_schemas.AlertOut])
def list_alerts(
    status: alert_schemas.AlertStatusFilter = Query("all"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return AlertStore(db).list_owned(current_user.id, resolved=_STATUS_TO_RESOLVED[status])


# Declared before /{alert_id} so "stats" is not parsed as an id
@router.get("/stats", response_model=alert_schemas.AlertStats)
def alert_stats(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    store = AlertStore(db)
    return {
        "total": store.count_owned(current_user.id),
        "active": store.count_owned(current_user.id, resolved=False),
        "resolved": store.count_owned(current_user.id, resolved=True),
    }


@router.get("/{alert_id}", response_model=alert_schemas.AlertOut)
def get_alert(alert_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    alert = AlertStore(db).get_owned(alert_id, current_user.id)
    if alert is None:
        raise NotFound("Alert")
    return alert


@router.patch("/{alert_id}/resolve", response_model=alert_schemas.AlertResolveResponse)
def resolve_alert(
    alert_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    try:
        with UnitOfWork(db) as uow:
            alert = AlertManager(uow).resolve(alert_id, current_user.id)
    except AlreadyResolved:
        write_log(db, user_id=current_user.id, action="ALERT_RESOLVE", resource="alerts",
                  status="FAIL", meta={"id": alert_id, "reason": "already resolved"})
        raise

    db.refresh(alert)
    write_log(db, user_id=current_user.id, action="ALERT_RESOLVE", resource="alerts",
              ip=request.client.host if request.client else None, meta={"id": alert.id})
    return {"message": "Alert resolved successfully", "alert": alert_schemas.AlertResolved.model_validate(alert)}


@router.delete("/{alert_id}", response_model=MessageResponse)
def delete_alert(alert_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    with UnitOfWork(db) as uow:
        AlertManager(uow).delete(alert_id, current_user.id)
    write_log(db, user_id=current_user.id, action="ALERT_DELETE", resource="alerts", meta={"id": alert_id})
    return {"message": "Alert deleted successfully"}
