# backend/services/email.py
import logging
from html import escape
from typing import Optional

from config import settings
from utils.brevo_client import BrevoClient

logger = logging.getLogger(__name__)

STATUS_MESSAGES = {
    "PAYEE": "Votre paiement a bien été reçu.",
    "CONFIRMEE": "Votre commande a été confirmée.",
    "EN_PREPARATION": "Votre commande est en cours de préparation.",
    "EXPEDIEE": "Votre commande a été expédiée.",
    "LIVREE": "Votre commande a été livrée. Merci pour votre confiance !",
    "ANNULEE": "Votre commande a été annulée.",
}


def _layout(title: str, body: str) -> str:
    return (
        "<div style=\"font-family:Arial,sans-serif;max-width:600px;margin:auto\">"
        f"<h2 style=\"color:#2e7d32\">{escape(title)}</h2>{body}"
        f"<p style=\"color:#888;font-size:12px\">{escape(settings.BREVO_SENDER_NAME)}</p></div>"
    )


class EmailService:
    """Fire-and-forget notifications; failures are logged and never raised to the caller."""

    def __init__(self, client: BrevoClient):
        self.client = client

    async def _send(self, to_email: str, to_name: Optional[str], subject: str, html: str) -> bool:
        try:
            result = await self.client.send(to_email, to_name, subject, html)
            return result is not None
        except Exception as e:
            logger.error(f"Failed to send '{subject}' to {to_email}: {e}")
            return False

    async def send_order_status_email(self, to_email: str, to_name: Optional[str], order_number: str,
                                      status: str, status_label: str) -> bool:
        message = STATUS_MESSAGES.get(status, f"Nouveau statut: {status_label}")
        body = (
            f"<p>Bonjour {escape(to_name or '')},</p>"
            f"<p>Commande <strong>{escape(order_number)}</strong> : {escape(status_label)}</p>"
            f"<p>{escape(message)}</p>"
            f"<p><a href=\"{settings.FRONTEND_URL}/compte/commandes\">Suivre mes commandes</a></p>"
        )
        return await self._send(to_email, to_name, f"Commande {order_number} - {status_label}",
                                _layout("Mise à jour de votre commande", body))

    async def send_password_reset_email(self, to_email: str, to_name: Optional[str], token: str) -> bool:
        link = f"{settings.FRONTEND_URL}/reset-password?token={token}"
        body = (
            f"<p>Bonjour {escape(to_name or '')},</p>"
            "<p>Vous avez demandé la réinitialisation de votre mot de passe.</p>"
            f"<p><a href=\"{link}\">Réinitialiser mon mot de passe</a></p>"
            f"<p>Ce lien expire dans {settings.RESET_TOKEN_EXPIRE_MINUTES} minutes.</p>"
        )
        return await self._send(to_email, to_name, "Réinitialisation de votre mot de passe",
                                _layout("Mot de passe oublié", body))

    async def send_password_changed_email(self, to_email: str, to_name: Optional[str]) -> bool:
        body = (
            f"<p>Bonjour {escape(to_name or '')},</p>"
            "<p>Votre mot de passe a été modifié. Si vous n'êtes pas à l'origine de ce changement, "
            "contactez-nous immédiatement.</p>"
        )
        return await self._send(to_email, to_name, "Votre mot de passe a été modifié",
                                _layout("Mot de passe modifié", body))

    async def send_welcome_email(self, to_email: str, to_name: Optional[str]) -> bool:
        body = (
            f"<p>Bonjour {escape(to_name or '')},</p>"
            "<p>Bienvenue chez Jana Distribution ! Votre compte a bien été créé.</p>"
            f"<p><a href=\"{settings.FRONTEND_URL}/produits\">Découvrir nos produits</a></p>"
        )
        return await self._send(to_email, to_name, "Bienvenue chez Jana Distribution",
                                _layout("Bienvenue", body))
