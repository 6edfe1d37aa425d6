# backend/routes/cart.py
from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from database import get_db
from dependencies import get_cart_service
from models.users import User
from schemas.cart import CartAddItem, CartCount, CartFixResult, CartItemResult, CartOut, CartUpdateItem, CartValidation
from schemas.common import ApiResponse
from services.cart import CartService
from utils.audit import client_ip, write_log
from utils.tokenJWT import get_current_user

router = APIRouter(prefix="/api/cart", tags=["Cart"])


@router.get("", response_model=ApiResponse[CartOut])
def get_cart(
    current_user: User = Depends(get_current_user),
    carts: CartService = Depends(get_cart_service),
):
    return {"success": True, "data": carts.get_cart(current_user.id)}


@router.get("/count", response_model=ApiResponse[CartCount])
def get_cart_count(
    current_user: User = Depends(get_current_user),
    carts: CartService = Depends(get_cart_service),
):
    return {"success": True, "data": carts.get_item_count(current_user.id)}


# Checkout readiness: errors block, warnings do not
@router.get("/validate", response_model=ApiResponse[CartValidation])
def validate_cart(
    current_user: User = Depends(get_current_user),
    carts: CartService = Depends(get_cart_service),
):
    result = carts.validate_cart(current_user.id)
    message = "Panier valide" if result.is_valid else "Le panier contient des erreurs"
    return {"success": True, "message": message, "data": result}


# Drop unavailable lines and clamp quantities to stock
@router.post("/fix", response_model=ApiResponse[CartFixResult])
def fix_cart(
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    carts: CartService = Depends(get_cart_service),
):
    result = carts.apply_validation_suggestions(current_user.id)
    if result.changes:
        write_log(db, user_id=current_user.id, action="CART_FIX", resource="cart", status="SUCCESS",
                  ip=client_ip(request), meta={"changes": len(result.changes)})
        message = f"{len(result.changes)} modification(s) appliquée(s) au panier"
    else:
        message = "Aucune modification nécessaire"
    return {"success": True, "message": message, "data": result}


@router.post("/items", response_model=ApiResponse[CartItemResult], status_code=status.HTTP_201_CREATED)
def add_to_cart(
    payload: CartAddItem,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    carts: CartService = Depends(get_cart_service),
):
    result = carts.add_item(current_user.id, payload.product_id, payload.quantity)
    write_log(db, user_id=current_user.id, action="CART_ADD", resource="cart", status="SUCCESS",
              ip=client_ip(request),
              meta={"product_id": payload.product_id, "quantity": payload.quantity,
                    "total": result.cart.summary.total_ttc})
    return {"success": True, "message": f"{result.item.name} ajouté au panier", "data": result}


@router.put("/items/{item_id}", response_model=ApiResponse[CartItemResult])
def update_cart_item(
    item_id: int,
    payload: CartUpdateItem,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    carts: CartService = Depends(get_cart_service),
):
    result = carts.update_item_quantity(current_user.id, item_id, payload.quantity)
    write_log(db, user_id=current_user.id, action="CART_UPDATE", resource="cart", status="SUCCESS",
              ip=client_ip(request), meta={"item_id": item_id, "quantity": payload.quantity})
    return {"success": True, "message": "Quantité mise à jour", "data": result}


@router.delete("/items/{item_id}", response_model=ApiResponse[CartOut])
def delete_cart_item(
    item_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    carts: CartService = Depends(get_cart_service),
):
    cart = carts.remove_item(current_user.id, item_id)
    write_log(db, user_id=current_user.id, action="CART_DELETE", resource="cart", status="SUCCESS",
              ip=client_ip(request), meta={"item_id": item_id})
    return {"success": True, "message": "Article retiré du panier", "data": cart}


@router.delete("", response_model=ApiResponse[CartOut])
def clear_cart(
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    carts: CartService = Depends(get_cart_service),
):
    cart = carts.clear_cart(current_user.id)
    write_log(db, user_id=current_user.id, action="CART_CLEAR", resource="cart", status="SUCCESS",
              ip=client_ip(request))
    return {"success": True, "message": "Panier vidé", "data": cart}
