import asyncio

import httpx

from services.email import EmailService
from utils.brevo_client import BrevoClient


class RecordingClient:
    def __init__(self, fail=False):
        self.fail = fail
        self.sent = []

    async def send(self, to_email, to_name, subject, html):
        if self.fail:
            raise httpx.ConnectError("unreachable")
        self.sent.append((to_email, subject, html))
        return {"messageId": "1"}


def test_status_email_content():
    client = RecordingClient()
    ok = asyncio.run(EmailService(client).send_order_status_email(
        "amina@example.com", "Amina", "CMD-20261018-0001", "EXPEDIEE", "Expédiée",
    ))
    assert ok is True
    to_email, subject, html = client.sent[0]
    assert to_email == "amina@example.com"
    assert subject == "Commande CMD-20261018-0001 - Expédiée"
    assert "expédiée" in html


def test_reset_email_carries_token_link():
    client = RecordingClient()
    asyncio.run(EmailService(client).send_password_reset_email("amina@example.com", None, "ab" * 32))
    assert f"reset-password?token={'ab' * 32}" in client.sent[0][2]


def test_send_failures_are_swallowed():
    ok = asyncio.run(EmailService(RecordingClient(fail=True)).send_welcome_email("amina@example.com", "Amina"))
    assert ok is False


def test_unconfigured_client_skips_sending():
    service = EmailService(BrevoClient(api_key=""))
    assert asyncio.run(service.send_password_changed_email("amina@example.com", "Amina")) is False
