# kibbledrop/api/routers/stripe_payments.py
from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from kibbledrop.api.deps import get_current_user, get_event_guard, get_stripe_provider, raw_body
from kibbledrop.data.database import get_db
from kibbledrop.data.models.user import UserModel
from kibbledrop.domain.schemas import CheckoutIn, CheckoutOut, PaymentStatusOut, WebhookAck
from kibbledrop.services.event_guard import EventGuard
from kibbledrop.services.payment_service import PaymentService
from kibbledrop.services.payments.stripe_provider import StripeProvider

router = APIRouter(prefix="/api/stripe", tags=["payments"])


@router.post("/checkout", response_model=CheckoutOut)
def checkout(
    payload: CheckoutIn,
    user: UserModel = Depends(get_current_user),
    provider: StripeProvider = Depends(get_stripe_provider),
    db: Session = Depends(get_db),
):
    return PaymentService(db, provider).start_checkout(user, payload)


@router.post("/webhook", response_model=WebhookAck)
def webhook(
    request: Request,
    body: bytes = Depends(raw_body),
    provider: StripeProvider = Depends(get_stripe_provider),
    guard: EventGuard = Depends(get_event_guard),
    db: Session = Depends(get_db),
):
    return PaymentService(db, provider).handle_webhook(body, request.headers, guard)


@router.get("/status", response_model=PaymentStatusOut)
def session_status(
    session_id: str = Query(..., alias="sessionId"),
    user: UserModel = Depends(get_current_user),
    provider: StripeProvider = Depends(get_stripe_provider),
    db: Session = Depends(get_db),
):
    return PaymentService(db, provider).lookup_status(user, session_id)
