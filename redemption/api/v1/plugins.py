"""
Plugin marketplace API: list plugins with status, toggle per user.
"""
from fastapi import APIRouter, Body, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from redemption.api.deps import get_db, get_current_user
from redemption.application.actions import validated_action
from redemption.application.plugins import TogglePluginUseCase, get_plugin_registry
from redemption.infrastructure.db.models import User


router = APIRouter(prefix="/api/v1/plugins", tags=["plugins"])


class TogglePluginRequest(BaseModel):
    enable: bool


@router.get("")
def list_plugins(user: User = Depends(get_current_user)):
    registry = get_plugin_registry()
    return {"success": True, "data": {"plugins": registry.with_status(user.enabled_plugins or [])}}


@router.post("/{plugin_id}")
def toggle_plugin(
    plugin_id: str,
    body: dict = Body(...),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Enable/disable for the current user; bad input and failures come back as {"success": false}"""
    return validated_action(
        TogglePluginRequest,
        body,
        lambda req: {"enabled_plugins": TogglePluginUseCase(db).execute(user.id, plugin_id, req.enable)},
    )
