# kibbledrop/api/routers/tradesafe.py
from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from kibbledrop.api.deps import get_current_user, get_event_guard, get_tradesafe_provider, raw_body
from kibbledrop.data.database import get_db
from kibbledrop.data.models.user import UserModel
from kibbledrop.domain.schemas import CheckoutIn, CheckoutOut, PaymentStatusOut, WebhookAck
from kibbledrop.services.event_guard import EventGuard
from kibbledrop.services.payment_service import PaymentService
from kibbledrop.services.payments.tradesafe_provider import TradeSafeProvider

router = APIRouter(prefix="/api/tradesafe", tags=["payments"])


@router.post("/checkout", response_model=CheckoutOut)
def checkout(
    payload: CheckoutIn,
    user: UserModel = Depends(get_current_user),
    provider: TradeSafeProvider = Depends(get_tradesafe_provider),
    db: Session = Depends(get_db),
):
    return PaymentService(db, provider).start_checkout(user, payload)


@router.post("/webhook", response_model=WebhookAck)
def webhook(
    request: Request,
    body: bytes = Depends(raw_body),
    provider: TradeSafeProvider = Depends(get_tradesafe_provider),
    guard: EventGuard = Depends(get_event_guard),
    db: Session = Depends(get_db),
):
    return PaymentService(db, provider).handle_webhook(body, request.headers, guard)


@router.get("/payment-status", response_model=PaymentStatusOut)
def payment_status(
    payment_id: str = Query(..., alias="paymentId"),
    user: UserModel = Depends(get_current_user),
    provider: TradeSafeProvider = Depends(get_tradesafe_provider),
    db: Session = Depends(get_db),
):
    return PaymentService(db, provider).lookup_status(user, payment_id)
