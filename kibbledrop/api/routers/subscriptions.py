# kibbledrop/api/routers/subscriptions.py
from typing import List
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from kibbledrop.api.deps import get_current_user
from kibbledrop.data.database import get_db
from kibbledrop.data.models.user import UserModel
from kibbledrop.domain.schemas import (
    SubscriptionCreate,
    SubscriptionUpdate,
    SubscriptionItemsIn,
    SubscriptionActivateIn,
    SubscriptionOut,
)
from kibbledrop.services.subscription_service import SubscriptionService

router = APIRouter(prefix="/api/subscription", tags=["subscriptions"])


def get_service(db: Session):
    return SubscriptionService(db)


@router.get("", response_model=List[SubscriptionOut])
def list_subscriptions(user: UserModel = Depends(get_current_user), db: Session = Depends(get_db)):
    return get_service(db).list_subscriptions(user)


@router.post("", response_model=SubscriptionOut, status_code=201)
def create_subscription(
    payload: SubscriptionCreate,
    user: UserModel = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    svc = get_service(db)
    return svc.view(svc.create_subscription(user, payload))


@router.post("/activate", response_model=SubscriptionOut)
def activate_subscription(
    payload: SubscriptionActivateIn,
    user: UserModel = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Manual pending -> active, used after an off-site payment completes."""
    svc = get_service(db)
    return svc.view(svc.activate(user, payload.subscription_id))


@router.get("/{subscription_id}", response_model=SubscriptionOut)
def get_subscription(subscription_id: int, user: UserModel = Depends(get_current_user), db: Session = Depends(get_db)):
    svc = get_service(db)
    return svc.view(svc.get_subscription(user, subscription_id))


@router.put("/{subscription_id}", response_model=SubscriptionOut)
def update_subscription(
    subscription_id: int,
    payload: SubscriptionUpdate,
    user: UserModel = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    svc = get_service(db)
    return svc.view(svc.update_subscription(user, subscription_id, payload))


@router.post("/{subscription_id}/skip", response_model=SubscriptionOut)
def skip_delivery(subscription_id: int, user: UserModel = Depends(get_current_user), db: Session = Depends(get_db)):
    svc = get_service(db)
    return svc.view(svc.skip_delivery(user, subscription_id))


@router.put("/{subscription_id}/items", response_model=SubscriptionOut)
def replace_items(
    subscription_id: int,
    payload: SubscriptionItemsIn,
    user: UserModel = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    svc = get_service(db)
    return svc.view(svc.replace_items(user, subscription_id, payload.items))


@router.delete("/{subscription_id}")
def delete_subscription(subscription_id: int, user: UserModel = Depends(get_current_user), db: Session = Depends(get_db)):
    get_service(db).delete_subscription(user, subscription_id)
    return {"message": "Subscription deleted"}
