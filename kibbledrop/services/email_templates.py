# kibbledrop/services/email_templates.py
from html import escape
from typing import Iterable

from kibbledrop.utils.settings import APP_URL, BUSINESS_NAME

STATUS_MESSAGES = {
    "pending": "We have received your order and are waiting for payment.",
    "payment_pending": "We are waiting for your payment to clear.",
    "processing": "Your order is being prepared.",
    "paid": "Your payment was received, we are preparing your order.",
    "shipped": "Your order is on its way!",
    "completed": "Your order has been delivered. Enjoy!",
    "canceled": "Your order has been canceled.",
    "failed": "Your payment failed. Please try again or contact us.",
}

SUBSCRIPTION_MESSAGES = {
    "pending": "Your subscription is waiting for its first payment.",
    "active": "Your subscription is active.",
    "canceled": "Your subscription has been canceled.",
}


def _layout(title: str, body: str) -> str:
    return (
        "<div style=\"font-family:Arial,sans-serif;max-width:600px;margin:0 auto\">"
        f"<h2 style=\"color:#d97706\">{escape(BUSINESS_NAME)}</h2>"
        f"<h3>{escape(title)}</h3>{body}"
        f"<p><a href=\"{APP_URL}\">{escape(APP_URL)}</a></p>"
        "</div>"
    )


def _list(lines: Iterable[str]) -> str:
    return "<ul>" + "".join(f"<li>{escape(line)}</li>" for line in lines) + "</ul>"


def welcome(name: str | None):
    subject = f"Welcome to {BUSINESS_NAME}!"
    body = f"<p>Hi {escape(name or 'there')},</p><p>Thanks for joining. Your pets will love it here.</p>"
    return subject, _layout(subject, body)


def order_confirmation(order: dict):
    subject = f"Order #{order['id']} confirmed"
    lines = [f"{i['quantity']} x {i['name']} @ R{i['price']}" for i in order["items"]]
    body = (
        f"<p>Hi {escape(order.get('customer_name') or 'there')},</p>"
        f"<p>Thanks for your order.</p>{_list(lines)}"
        f"<p>Subtotal: R{order['subtotal']}<br>Shipping: R{order['shipping']}<br>"
        f"<strong>Total: R{order['total']}</strong></p>"
    )
    return subject, _layout(subject, body)


def order_status(name: str | None, order_id: int, status: str, tracking_number: str | None = None, reason: str | None = None):
    subject = f"Order #{order_id} update: {status}"
    body = f"<p>Hi {escape(name or 'there')},</p><p>{escape(STATUS_MESSAGES.get(status, f'Status: {status}'))}</p>"
    if tracking_number:
        body += f"<p>Tracking number: <strong>{escape(tracking_number)}</strong></p>"
    if reason:
        body += f"<p>Reason: {escape(reason)}</p>"
    return subject, _layout(subject, body)


def subscription_status(name: str | None, subscription_id: int, status: str, item_names: list, next_delivery: str | None):
    subject = f"Subscription #{subscription_id} update: {status}"
    body = (
        f"<p>Hi {escape(name or 'there')},</p>"
        f"<p>{escape(SUBSCRIPTION_MESSAGES.get(status, f'Status: {status}'))}</p>"
        f"{_list(item_names)}"
    )
    if next_delivery:
        body += f"<p>Next delivery: {escape(next_delivery)}</p>"
    return subject, _layout(subject, body)


def subscription_confirmation(name: str | None, subscription_id: int, frequency: str, item_names: list, next_delivery: str | None):
    subject = f"Subscription #{subscription_id} confirmed"
    body = (
        f"<p>Hi {escape(name or 'there')},</p>"
        f"<p>Your {escape(frequency)} subscription is set up.</p>{_list(item_names)}"
    )
    if next_delivery:
        body += f"<p>First delivery: {escape(next_delivery)}</p>"
    return subject, _layout(subject, body)


def delivery_reminder(name: str | None, subscription_id: int, item_names: list, delivery_date: str):
    subject = f"Your KibbleDrop delivery is coming on {delivery_date}"
    body = (
        f"<p>Hi {escape(name or 'there')},</p>"
        f"<p>Subscription #{subscription_id} will be delivered on {escape(delivery_date)}.</p>"
        f"{_list(item_names)}<p>Need to skip? You can do it from your account.</p>"
    )
    return subject, _layout(subject, body)
