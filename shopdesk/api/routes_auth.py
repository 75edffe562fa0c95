# api/routes_auth.py
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Response, status
from pydantic import BaseModel

from shopdesk.api.deps import current_user, get_cfg, get_notifier, get_settings, get_store
from shopdesk.core.services.auth import AuthService
from shopdesk.core.services.notifications import OrderNotifier
from shopdesk.utils.security import issue_session_token

router = APIRouter()


class LoginIn(BaseModel):
    username: str
    password: str
    remember: bool = False


class AdminTokenIn(BaseModel):
    fcmToken: Optional[str] = None


@router.post("/auth/login")
def login(payload: LoginIn, response: Response, cfg=Depends(get_cfg), store=Depends(get_store)):
    admin = AuthService(store).authenticate(payload.username, payload.password)
    if not admin:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED,
                            detail="Invalid email or password. Please check your credentials and try again.")
    if "admin" not in admin["roles"]:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied: Not an admin.")
    sec = cfg.security
    minutes = sec["access_token_minutes"]
    if payload.remember:
        minutes = 14 * 24 * 60
    token = issue_session_token(admin, sec["secret_key"], minutes)
    response.set_cookie(key=sec["cookie_name"], value=token, httponly=True, samesite="lax",
                        max_age=minutes * 60)
    return {"token": token, "user": admin}


@router.post("/auth/logout")
def logout(response: Response, cfg=Depends(get_cfg)):
    response.delete_cookie(cfg.security["cookie_name"])
    return {"message": "Logged out"}


@router.get("/auth/verify-admin")
def verify_admin(user=Depends(current_user), store=Depends(get_store)):
    return {"isAdmin": AuthService(store).is_admin(user["sub"])}


@router.post("/admin-tokens")
def save_admin_token(payload: AdminTokenIn, user=Depends(current_user), store=Depends(get_store),
                     settings=Depends(get_settings), notifier=Depends(get_notifier)):
    OrderNotifier(store, settings, notifier).save_admin_token(payload.fcmToken)
    return {"message": "FCM token saved"}
