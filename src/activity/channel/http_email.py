"""HTTP email adapter — posts messages to an external email service."""

import httpx
import structlog

from activity.channel.email_port import EmailPort

logger = structlog.get_logger(__name__)


class HttpEmailAdapter(EmailPort):
    """Sends email through a JSON endpoint (``ACTIVITY_EMAIL_SERVICE_URL``)."""

    def __init__(self, service_url: str, timeout: float = 10.0):
        self.service_url = service_url
        self.timeout = timeout

    def send(
        self,
        to: str,
        subject: str,
        body: str,
        from_address: str | None = None,
        reply_to: str | None = None,
    ) -> dict:
        payload = {
            "to": to,
            "from_email": from_address,
            "reply_to": reply_to,
            "subject": subject,
            "body_text": body,
        }

        try:
            response = httpx.post(self.service_url, json=payload, timeout=self.timeout)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.error("Email service error", to=to, error=str(exc))
            return {"message_id": None, "status": "failed", "error": str(exc)}

        try:
            message_id = response.json().get("message_id")
        except ValueError:
            message_id = None
        return {"message_id": message_id, "status": "sent"}
