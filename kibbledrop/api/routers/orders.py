# kibbledrop/api/routers/orders.py
from typing import List
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from kibbledrop.api.deps import get_current_user
from kibbledrop.data.database import get_db
from kibbledrop.data.models.user import UserModel
from kibbledrop.domain.schemas import OrderCreate, OrderOut
from kibbledrop.services.order_service import OrderService

router = APIRouter(prefix="/api/orders", tags=["orders"])


@router.get("", response_model=List[OrderOut])
def list_orders(user: UserModel = Depends(get_current_user), db: Session = Depends(get_db)):
    return OrderService(db).list_orders(user)


@router.post("", response_model=OrderOut, status_code=201)
def create_order(
    payload: OrderCreate,
    user: UserModel = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Places an order from the given items, or from the cart when items are omitted.
    The confirmation email goes out asynchronously.
    """
    return OrderService(db).create_order(user, payload)


@router.get("/{order_id}", response_model=OrderOut)
def get_order(order_id: int, user: UserModel = Depends(get_current_user), db: Session = Depends(get_db)):
    return OrderService(db).get_order(user, order_id)
