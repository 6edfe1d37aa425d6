# backend/services/auth.py
import hashlib
import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple

from config import settings
from models.users import ClientType, User, UserRole
from repositories.user import UserRepository
from schemas.user import AuthResult, PasswordChange, ProfileUpdate, ResetPassword, UserCreate, UserResponse
from utils.errors import ApiError
from utils.hashing import get_password_hash, verify_password
from utils.tokenJWT import token_for_user

logger = logging.getLogger(__name__)

FORGOT_PASSWORD_MESSAGE = "Si cette adresse existe, un e-mail de réinitialisation a été envoyé"


def hash_reset_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def _as_aware(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite hands back naive datetimes
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class AuthService:
    def __init__(self, users: UserRepository):
        self.users = users

    def register(self, payload: UserCreate) -> AuthResult:
        email = payload.email.strip().lower()
        if self.users.find_by_email(email) is not None:
            raise ApiError.conflict("Un compte existe déjà avec cette adresse e-mail")

        is_business = payload.client_type == ClientType.BUSINESS.value
        user = self.users.create({
            "email": email,
            "password_hash": get_password_hash(payload.password),
            "first_name": payload.first_name.strip(),
            "last_name": payload.last_name.strip(),
            "phone": payload.phone,
            "role": UserRole.CLIENT.value,
            "client_type": payload.client_type,
            "tax_id": payload.tax_id if is_business else None,
            "company_name": payload.company_name if is_business else None,
            "vat_number": payload.vat_number if is_business else None,
            "accepts_terms": payload.accepts_terms,
            "accepts_newsletter": payload.accepts_newsletter,
            "is_active": True,
        })
        logger.info(f"New {user.client_type} account registered: {user.id}")
        return AuthResult(user=UserResponse.model_validate(user), token=token_for_user(user))

    def login(self, email: str, password: str) -> AuthResult:
        user = self.users.find_by_email(email)
        if user is None or not verify_password(password, user.password_hash):
            raise ApiError.unauthorized("Email ou mot de passe incorrect")
        if not user.is_active:
            raise ApiError.forbidden("Votre compte a été désactivé")
        self.users.touch_last_login(user)
        return AuthResult(user=UserResponse.model_validate(user), token=token_for_user(user))

    def refresh_token(self, user: User) -> str:
        return token_for_user(user)

    def get_profile(self, user_id: int) -> UserResponse:
        user = self.users.find_by_id(user_id)
        if user is None:
            raise ApiError.not_found("Utilisateur non trouvé")
        return UserResponse.model_validate(user)

    def update_profile(self, user: User, payload: ProfileUpdate) -> UserResponse:
        data = payload.model_dump(exclude_unset=True)
        if user.client_type != ClientType.BUSINESS.value:
            data.pop("company_name", None)
            data.pop("vat_number", None)
        if not data:
            raise ApiError.bad_request("Aucune donnée à mettre à jour")
        updated = self.users.update(user, data)
        return UserResponse.model_validate(updated)

    def change_password(self, user: User, payload: PasswordChange) -> None:
        if not verify_password(payload.current_password, user.password_hash):
            raise ApiError.bad_request("Mot de passe actuel incorrect")
        if payload.current_password == payload.new_password:
            raise ApiError.bad_request("Le nouveau mot de passe doit être différent de l'ancien")
        self.users.update(user, {"password_hash": get_password_hash(payload.new_password)})
        logger.info(f"Password changed for user {user.id}")

    def forgot_password(self, email: str) -> Tuple[str, Optional[Tuple[str, Optional[str], str]]]:
        """Return the generic message and, when the account exists, (email, name, token) for the reset e-mail."""
        try:
            user = self.users.find_by_email(email)
            if user is None or not user.is_active:
                return FORGOT_PASSWORD_MESSAGE, None
            token = secrets.token_hex(32)
            self.users.update(user, {
                "reset_token_hash": hash_reset_token(token),
                "reset_token_expires_at": datetime.now(timezone.utc)
                + timedelta(minutes=settings.RESET_TOKEN_EXPIRE_MINUTES),
            })
            return FORGOT_PASSWORD_MESSAGE, (user.email, user.first_name, token)
        except Exception as e:
            logger.error(f"forgot-password lookup failed: {e}")
            return FORGOT_PASSWORD_MESSAGE, None

    def reset_password(self, payload: ResetPassword) -> User:
        user = self.users.find_by_reset_token_hash(hash_reset_token(payload.token))
        expires_at = _as_aware(user.reset_token_expires_at) if user else None
        if user is None or expires_at is None or expires_at < datetime.now(timezone.utc):
            raise ApiError.bad_request("Lien de réinitialisation invalide ou expiré")
        updated = self.users.update(user, {
            "password_hash": get_password_hash(payload.password),
            "reset_token_hash": None,
            "reset_token_expires_at": None,
        })
        logger.info(f"Password reset for user {updated.id}")
        return updated

    def delete_account(self, user: User, password: str) -> None:
        if not verify_password(password, user.password_hash):
            raise ApiError.bad_request("Mot de passe incorrect")
        self.users.anonymize(user)
        logger.info(f"Account {user.id} anonymized at owner's request")
