"""
Authentication routes (register, login, logout, me)
"""
from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from sqlalchemy.orm import Session

from redemption.api.deps import get_db, get_current_user
from redemption.auth import authenticate, register_user
from redemption.infrastructure.db.models import User


router = APIRouter(prefix="/api/v1/auth", tags=["auth"])


class RegisterRequest(BaseModel):
    email: str
    password: str
    name: str | None = None


class LoginRequest(BaseModel):
    email: str
    password: str


def _user_dict(user: User) -> dict:
    return {"id": user.id, "email": user.email, "name": user.name, "enabled_plugins": user.enabled_plugins or []}


@router.post("/register", status_code=status.HTTP_201_CREATED)
def register(req: RegisterRequest, request: Request, db: Session = Depends(get_db)):
    user = register_user(db, req.email, req.password, req.name)
    request.session["user_id"] = user.id
    return {"success": True, "data": _user_dict(user)}


@router.post("/login")
def login(req: LoginRequest, request: Request, db: Session = Depends(get_db)):
    user = authenticate(db, req.email, req.password)
    if user is None:
        return JSONResponse({"success": False, "error": "Invalid email or password"}, status_code=401)
    request.session["user_id"] = user.id
    return {"success": True, "data": _user_dict(user)}


@router.post("/logout")
def logout(request: Request):
    request.session.clear()
    return {"success": True}


@router.get("/me")
def me(user: User = Depends(get_current_user)):
    return {"success": True, "data": _user_dict(user)}
