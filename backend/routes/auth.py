# backend/routes/auth.py
from fastapi import APIRouter, BackgroundTasks, Depends, Request, status
from sqlalchemy.orm import Session

from database import get_db
from dependencies import get_auth_service, get_email_service
from models.users import User
from schemas import user as schemas
from schemas.common import ApiResponse
from services.auth import AuthService
from services.email import EmailService
from utils.audit import client_ip, write_log
from utils.errors import ApiError
from utils.tokenJWT import get_current_user

router = APIRouter(prefix="/api/auth", tags=["Auth"])


# Register a new client account
@router.post("/register", response_model=ApiResponse[schemas.AuthResult], status_code=status.HTTP_201_CREATED)
def register(
    payload: schemas.UserCreate,
    request: Request,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    auth: AuthService = Depends(get_auth_service),
    emails: EmailService = Depends(get_email_service),
):
    try:
        result = auth.register(payload)
    except ApiError:
        write_log(db, user_id=None, action="REGISTER", resource="auth", status="FAIL",
                  ip=client_ip(request), meta={"email": payload.email})
        raise

    write_log(db, user_id=result.user.id, action="REGISTER", resource="auth", status="SUCCESS",
              ip=client_ip(request), meta={"email": result.user.email, "type": result.user.client_type})
    background_tasks.add_task(emails.send_welcome_email, result.user.email, result.user.first_name)
    return {"success": True, "message": "Compte créé avec succès", "data": result}


# Authenticate user and issue JWT token
@router.post("/login", response_model=ApiResponse[schemas.AuthResult])
def login(
    payload: schemas.UserLogin,
    request: Request,
    db: Session = Depends(get_db),
    auth: AuthService = Depends(get_auth_service),
):
    try:
        result = auth.login(payload.email, payload.password)
    except ApiError:
        write_log(db, user_id=None, action="LOGIN", resource="auth", status="FAIL",
                  ip=client_ip(request), meta={"email": payload.email})
        raise

    write_log(db, user_id=result.user.id, action="LOGIN", resource="auth", status="SUCCESS",
              ip=client_ip(request), meta={"email": result.user.email})
    return {"success": True, "message": "Connexion réussie", "data": result}


# Tokens are stateless; the client discards its copy
@router.post("/logout", response_model=ApiResponse[None])
def logout(current_user: User = Depends(get_current_user)):
    return {"success": True, "message": "Déconnexion réussie"}


@router.post("/refresh", response_model=ApiResponse[dict])
def refresh(current_user: User = Depends(get_current_user), auth: AuthService = Depends(get_auth_service)):
    return {"success": True, "data": {"token": auth.refresh_token(current_user)}}


# Retrieve current authenticated user details
@router.get("/me", response_model=ApiResponse[schemas.UserResponse])
def me(current_user: User = Depends(get_current_user), auth: AuthService = Depends(get_auth_service)):
    return {"success": True, "data": auth.get_profile(current_user.id)}


@router.put("/profile", response_model=ApiResponse[schemas.UserResponse])
def update_profile(
    payload: schemas.ProfileUpdate,
    current_user: User = Depends(get_current_user),
    auth: AuthService = Depends(get_auth_service),
):
    return {"success": True, "message": "Profil mis à jour", "data": auth.update_profile(current_user, payload)}


@router.put("/password", response_model=ApiResponse[None])
def change_password(
    payload: schemas.PasswordChange,
    request: Request,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    auth: AuthService = Depends(get_auth_service),
    emails: EmailService = Depends(get_email_service),
):
    auth.change_password(current_user, payload)
    write_log(db, user_id=current_user.id, action="PASSWORD_CHANGE", resource="auth", status="SUCCESS",
              ip=client_ip(request))
    background_tasks.add_task(emails.send_password_changed_email, current_user.email, current_user.first_name)
    return {"success": True, "message": "Mot de passe modifié avec succès"}


# Always answers with the same message whether or not the account exists
@router.post("/forgot-password", response_model=ApiResponse[None])
def forgot_password(
    payload: schemas.ForgotPassword,
    background_tasks: BackgroundTasks,
    auth: AuthService = Depends(get_auth_service),
    emails: EmailService = Depends(get_email_service),
):
    message, reset = auth.forgot_password(payload.email)
    if reset is not None:
        email, name, token = reset
        background_tasks.add_task(emails.send_password_reset_email, email, name, token)
    return {"success": True, "message": message}


@router.post("/reset-password", response_model=ApiResponse[None])
def reset_password(
    payload: schemas.ResetPassword,
    request: Request,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    auth: AuthService = Depends(get_auth_service),
    emails: EmailService = Depends(get_email_service),
):
    user = auth.reset_password(payload)
    write_log(db, user_id=user.id, action="PASSWORD_RESET", resource="auth", status="SUCCESS",
              ip=client_ip(request))
    background_tasks.add_task(emails.send_password_changed_email, user.email, user.first_name)
    return {"success": True, "message": "Mot de passe réinitialisé avec succès"}


@router.delete("/account", response_model=ApiResponse[None])
def delete_account(
    payload: schemas.AccountDelete,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    auth: AuthService = Depends(get_auth_service),
):
    user_id = current_user.id
    auth.delete_account(current_user, payload.password)
    write_log(db, user_id=user_id, action="ACCOUNT_DELETE", resource="auth", status="SUCCESS",
              ip=client_ip(request))
    return {"success": True, "message": "Compte supprimé"}
