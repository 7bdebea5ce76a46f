"""Settings push from the session host and read-back."""
from dataclasses import asdict
from typing import Any, List

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field

from hudify.api.state import AppState, get_state

router = APIRouter()


class SettingItem(BaseModel):
    key: str
    value: Any = None


class SettingsBody(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: str = Field(alias="userIdForSettings", min_length=1)
    settings: List[SettingItem]


@router.post("")
def push_settings(body: SettingsBody, state: AppState = Depends(get_state)):
    """Update the user's settings snapshot; a live session picks them up immediately."""
    updated = state.settings_store.update(
        body.user_id, {item.key: item.value for item in body.settings}
    )
    state.machine.apply_settings(body.user_id, updated)
    return {"ok": True, "settings": asdict(updated)}


@router.get("/{user_id}")
def get_settings(user_id: str, state: AppState = Depends(get_state)):
    return asdict(state.settings_store.get(user_id))
