# kibbledrop/api/routers/tradesafe_graphql.py
from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from kibbledrop.api.deps import get_current_user, get_event_guard, get_tradesafe_graphql_provider, raw_body
from kibbledrop.data.database import get_db
from kibbledrop.data.models.user import UserModel
from kibbledrop.domain.schemas import CheckoutIn, CheckoutOut, PaymentStatusOut, WebhookAck
from kibbledrop.services.event_guard import EventGuard
from kibbledrop.services.payment_service import PaymentService
from kibbledrop.services.payments.tradesafe_graphql_provider import TradeSafeGraphQLProvider

router = APIRouter(prefix="/api/tradesafe-graphql", tags=["payments"])


@router.post("/checkout", response_model=CheckoutOut)
def checkout(
    payload: CheckoutIn,
    user: UserModel = Depends(get_current_user),
    provider: TradeSafeGraphQLProvider = Depends(get_tradesafe_graphql_provider),
    db: Session = Depends(get_db),
):
    return PaymentService(db, provider).start_checkout(user, payload)


@router.post("/webhook", response_model=WebhookAck)
def webhook(
    request: Request,
    body: bytes = Depends(raw_body),
    provider: TradeSafeGraphQLProvider = Depends(get_tradesafe_graphql_provider),
    guard: EventGuard = Depends(get_event_guard),
    db: Session = Depends(get_db),
):
    return PaymentService(db, provider).handle_webhook(body, request.headers, guard)


@router.get("/status", response_model=PaymentStatusOut)
def transaction_status(
    transaction_id: str = Query(..., alias="transactionId"),
    user: UserModel = Depends(get_current_user),
    provider: TradeSafeGraphQLProvider = Depends(get_tradesafe_graphql_provider),
    db: Session = Depends(get_db),
):
    return PaymentService(db, provider).lookup_status(user, transaction_id)
