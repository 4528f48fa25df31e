# kibbledrop/api/routers/admin_orders.py
from typing import List
from fastapi import APIRouter, Body, Depends, Query
from sqlalchemy.orm import Session

from kibbledrop.api.deps import require_admin
from kibbledrop.data.database import get_db
from kibbledrop.domain.schemas import AdminOrderUpdate, AdminOrderCancel, OrderOut
from kibbledrop.services.order_service import OrderService

router = APIRouter(prefix="/api/admin/orders", tags=["admin"], dependencies=[Depends(require_admin)])


@router.get("", response_model=List[OrderOut])
def list_orders(status: str | None = Query(None), db: Session = Depends(get_db)):
    return OrderService(db).admin_list(status)


@router.get("/{order_id}", response_model=OrderOut)
def get_order(order_id: int, db: Session = Depends(get_db)):
    return OrderService(db).admin_get(order_id)


@router.put("/{order_id}", response_model=OrderOut)
def update_order(order_id: int, payload: AdminOrderUpdate, db: Session = Depends(get_db)):
    return OrderService(db).admin_update(order_id, payload)


@router.delete("/{order_id}", response_model=OrderOut)
def cancel_order(
    order_id: int,
    payload: AdminOrderCancel | None = Body(None),
    db: Session = Depends(get_db),
):
    """Orders are never removed, DELETE cancels with an optional reason."""
    return OrderService(db).admin_cancel(order_id, payload.reason if payload else None)
