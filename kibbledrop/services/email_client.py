# kibbledrop/services/email_client.py
import requests

from kibbledrop.utils.retry import http_retry
from kibbledrop.utils.settings import RESEND_API_KEY, EMAIL_FROM
from kibbledrop.utils.logging import get_logger

logger = get_logger(__name__)

RESEND_URL = "https://api.resend.com/emails"


class EmailClient:
    """Thin wrapper around the Resend HTTP API. Without an API key mails are only logged."""

    def __init__(self, api_key: str | None = None, sender: str | None = None, timeout: int = 10):
        self.api_key = RESEND_API_KEY if api_key is None else api_key
        self.sender = sender or EMAIL_FROM
        self.timeout = timeout

    @http_retry()
    def send(self, to: str, subject: str, html: str) -> dict:
        if not self.api_key:
            logger.info(f"[EMAIL disabled] to={to} subject={subject!r}")
            return {"status": "skipped", "to": to}

        logger.info(f"EmailClient POST {RESEND_URL} to={to} subject={subject!r}")
        resp = requests.post(
            RESEND_URL,
            json={"from": self.sender, "to": [to], "subject": subject, "html": html},
            headers={"Authorization": f"Bearer {self.api_key}"},
            timeout=self.timeout,
        )
        resp.raise_for_status()
        return {"status": "sent", "to": to, "id": resp.json().get("id")}
