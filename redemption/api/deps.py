"""
FastAPI dependencies (DB session, authentication)
"""
from fastapi import Depends, Header, HTTPException, Request, status
from sqlalchemy.orm import Session

from redemption.config import get_settings
from redemption.infrastructure.db.session import get_db as _get_db
from redemption.infrastructure.db.models import User


get_db = _get_db


def get_current_user(request: Request, db: Session = Depends(get_db)) -> User:
    """
    User from the session cookie.

    Raises:
        HTTPException(401): not logged in, or the user no longer exists
    """
    user_id = request.session.get("user_id")
    if not user_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")

    user = db.get(User, user_id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found")

    return user


def require_cron_secret(authorization: str | None = Header(default=None)) -> None:
    """Bearer CRON_SECRET for scheduler-style triggers; disabled while unset."""
    secret = get_settings().CRON_SECRET
    if not secret or authorization != f"Bearer {secret}":
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
