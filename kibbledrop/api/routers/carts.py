# kibbledrop/api/routers/carts.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from kibbledrop.api.deps import get_current_user, get_optional_user
from kibbledrop.data.database import get_db
from kibbledrop.data.models.user import UserModel
from kibbledrop.domain.schemas import CartItemIn, CartItemUpdate, CartOut
from kibbledrop.services.cart_service import CartService

router = APIRouter(prefix="/api/cart", tags=["cart"])


@router.get("", response_model=CartOut)
def get_cart(user: UserModel | None = Depends(get_optional_user), db: Session = Depends(get_db)):
    # anonymous visitors just see an empty cart
    return CartService(db).get_cart(user)


@router.post("", response_model=CartOut)
def add_item(
    payload: CartItemIn,
    user: UserModel = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return CartService(db).add_item(user, payload.product_id, payload.quantity)


@router.put("/{item_id}", response_model=CartOut)
def update_item(
    item_id: int,
    payload: CartItemUpdate,
    user: UserModel = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return CartService(db).update_item(user, item_id, payload.quantity)


@router.delete("/{item_id}", response_model=CartOut)
def remove_item(item_id: int, user: UserModel = Depends(get_current_user), db: Session = Depends(get_db)):
    return CartService(db).remove_item(user, item_id)


@router.delete("", response_model=CartOut)
def clear_cart(user: UserModel = Depends(get_current_user), db: Session = Depends(get_db)):
    return CartService(db).clear(user)
