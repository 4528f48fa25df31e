# kibbledrop/domain/statuses.py

# order
PENDING = "pending"
PAYMENT_PENDING = "payment_pending"
PROCESSING = "processing"
PAID = "paid"
SHIPPED = "shipped"
COMPLETED = "completed"
CANCELED = "canceled"
FAILED = "failed"

ORDER_STATUSES = (PENDING, PAYMENT_PENDING, PROCESSING, PAID, SHIPPED, COMPLETED, CANCELED, FAILED)
TERMINAL_ORDER_STATUSES = frozenset({COMPLETED, CANCELED, FAILED})
NON_CANCELLABLE = TERMINAL_ORDER_STATUSES | {SHIPPED}
PAID_STATUSES = frozenset({PAID, PROCESSING, SHIPPED, COMPLETED})

# forward-only progress; failed and canceled sit outside it
ORDER_PROGRESS = {
    PENDING: 0,
    PAYMENT_PENDING: 1,
    PAID: 2,
    PROCESSING: 2,
    SHIPPED: 3,
    COMPLETED: 4,
}

# subscription
SUB_PENDING = "pending"
SUB_ACTIVE = "active"
SUB_CANCELED = "canceled"
SUBSCRIPTION_STATUSES = (SUB_PENDING, SUB_ACTIVE, SUB_CANCELED)


def normalize(status: str) -> str:
    """Gateways spell it both ways; only `canceled` is stored."""
    status = (status or "").strip().lower()
    if status == "cancelled":
        return CANCELED
    return status


def is_cancellable(status: str) -> bool:
    return normalize(status) not in NON_CANCELLABLE


def is_step_back(current: str, new: str) -> bool:
    current, new = normalize(current), normalize(new)
    if current not in ORDER_PROGRESS or new not in ORDER_PROGRESS:
        return False
    return ORDER_PROGRESS[new] < ORDER_PROGRESS[current]
