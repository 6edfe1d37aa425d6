# backend/utils/brevo_client.py
import httpx
import logging
from typing import Optional
from config import settings

logger = logging.getLogger(__name__)

class BrevoClient:
    def __init__(self, api_key: Optional[str] = None, api_url: Optional[str] = None):
        # Transactional e-mail endpoint and sender identity
        self.api_key = api_key if api_key is not None else settings.BREVO_API_KEY
        self.api_url = api_url or settings.BREVO_API_URL
        self.sender = {"email": settings.BREVO_SENDER_EMAIL, "name": settings.BREVO_SENDER_NAME}

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)

    async def send(self, to_email: str, to_name: Optional[str], subject: str, html: str) -> Optional[dict]:
        # Submit a transactional e-mail; returns the API response or None when not configured
        if not self.enabled:
            logger.warning(f"BREVO_API_KEY not configured, e-mail '{subject}' to {to_email} not sent")
            return None

        headers = {
            "accept": "application/json",
            "content-type": "application/json",
            "api-key": self.api_key,
        }
        payload = {
            "sender": self.sender,
            "to": [{"email": to_email, "name": to_name or to_email}],
            "subject": subject,
            "htmlContent": html,
        }
        async with httpx.AsyncClient(timeout=10.0) as client:
            try:
                response = await client.post(self.api_url, json=payload, headers=headers)
                response.raise_for_status()
                logger.info(f"E-mail '{subject}' sent to {to_email}")
                return response.json()
            except (httpx.RequestError, httpx.HTTPStatusError) as e:
                try:
                    resp_text = e.response.text if getattr(e, "response", None) is not None else str(e)
                except Exception:
                    resp_text = str(e)
                logger.error(f"Brevo send error: {resp_text}")
                raise

brevo_client = BrevoClient()
