import re
from datetime import datetime
from typing import Optional

from pydantic import EmailStr, Field, field_validator, model_validator

from schemas.common import CamelModel

PASSWORD_RE = re.compile(r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)(?=.*[^A-Za-z0-9]).{8,}$")
TAX_ID_RE = re.compile(r"^\d{14}$")
PHONE_RE = re.compile(r"^(?:\+33|0)[1-9](?:[ .-]?\d{2}){4}$")


def check_password_strength(value: str) -> str:
    if not PASSWORD_RE.match(value or ""):
        raise ValueError(
            "Le mot de passe doit contenir au moins 8 caractères, une minuscule, "
            "une majuscule, un chiffre et un caractère spécial"
        )
    return value


# Schema for user authentication credentials
class UserLogin(CamelModel):
    email: EmailStr
    password: str = Field(min_length=1)


# Schema for user registration requests
class UserCreate(CamelModel):
    email: EmailStr
    password: str
    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(min_length=1, max_length=100)
    phone: Optional[str] = None
    client_type: str = Field(default="INDIVIDUAL", alias="typeClient", pattern="^(INDIVIDUAL|BUSINESS)$")
    tax_id: Optional[str] = Field(default=None, alias="siret")
    company_name: Optional[str] = None
    vat_number: Optional[str] = None
    accepts_terms: bool = False
    accepts_newsletter: bool = False

    strong_password = field_validator("password")(check_password_strength)

    @field_validator("phone")
    @classmethod
    def _phone_format(cls, v):
        if v and not PHONE_RE.match(v):
            raise ValueError("Numéro de téléphone invalide")
        return v

    @model_validator(mode="after")
    def _business_fields(self):
        if not self.accepts_terms:
            raise ValueError("Vous devez accepter les conditions générales")
        if self.client_type == "BUSINESS":
            if not self.tax_id or not TAX_ID_RE.match(self.tax_id):
                raise ValueError("Le SIRET doit contenir 14 chiffres pour un compte professionnel")
            if not self.company_name:
                raise ValueError("Le nom de l'entreprise est requis pour un compte professionnel")
        return self


# Output schema for user profile details
class UserResponse(CamelModel):
    id: int
    email: str
    role: str
    client_type: str = Field(alias="typeClient")
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None
    tax_id: Optional[str] = Field(default=None, alias="siret")
    company_name: Optional[str] = None
    vat_number: Optional[str] = None
    accepts_newsletter: bool = False
    is_active: bool = True
    last_login_at: Optional[datetime] = None
    created_at: Optional[datetime] = None


# Profile fields a user may change themselves (no email, role or password)
class ProfileUpdate(CamelModel):
    first_name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    phone: Optional[str] = None
    company_name: Optional[str] = None
    vat_number: Optional[str] = None
    accepts_newsletter: Optional[bool] = None


class PasswordChange(CamelModel):
    current_password: str
    new_password: str

    strong_password = field_validator("new_password")(check_password_strength)


class ForgotPassword(CamelModel):
    email: EmailStr


class ResetPassword(CamelModel):
    token: str = Field(pattern="^[0-9a-f]{64}$")
    password: str

    strong_password = field_validator("password")(check_password_strength)


# Schema for JWT authentication token response
class AuthResult(CamelModel):
    user: UserResponse
    token: str
    token_type: str = "bearer"


# Admin-side client update
class ClientAdminUpdate(CamelModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None
    client_type: Optional[str] = Field(default=None, alias="typeClient", pattern="^(INDIVIDUAL|BUSINESS)$")
    tax_id: Optional[str] = Field(default=None, alias="siret")
    company_name: Optional[str] = None
    vat_number: Optional[str] = None
    role: Optional[str] = Field(default=None, pattern="^(CLIENT|ADMIN)$")
    is_active: Optional[bool] = None


class ClientSummary(UserResponse):
    order_count: int = 0
    total_spent: float = 0.0


class AccountDelete(CamelModel):
    password: str
