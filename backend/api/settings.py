"""
Alert Settings API
Read and change the global debounce/cooldown tunables.
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from alerts import AlertSettingsProvider
from core import InvalidSettingsError

from .deps import get_settings_provider

router = APIRouter(prefix="/alerts/settings", tags=["Alert Settings"])


class UpdateSettingsRequest(BaseModel):
    """Only the fields present are changed"""
    consecutive_count: Optional[int] = Field(default=None, ge=1)
    cooldown_minutes: Optional[int] = Field(default=None, ge=0)
    network_error_rate_warning: Optional[float] = Field(default=None, ge=0)
    network_error_rate_critical: Optional[float] = Field(default=None, ge=0)
    network_drop_rate_warning: Optional[float] = Field(default=None, ge=0)
    network_drop_rate_critical: Optional[float] = Field(default=None, ge=0)

    class Config:
        json_schema_extra = {
            "example": {
                "consecutive_count": 3,
                "cooldown_minutes": 10,
            }
        }


@router.get("")
async def get_alert_settings(provider: AlertSettingsProvider = Depends(get_settings_provider)):
    settings = provider.get()
    return {
        "settings": settings.to_dict(),
        "is_default": settings.updated_at is None,
    }


@router.put("")
def update_alert_settings(
    request: UpdateSettingsRequest,
    provider: AlertSettingsProvider = Depends(get_settings_provider),
):
    try:
        settings = provider.update(**request.model_dump(exclude_none=True))
    except InvalidSettingsError as e:
        raise HTTPException(400, str(e))
    return {"message": "Alert settings updated", "settings": settings.to_dict()}


@router.post("/reload")
def reload_alert_settings(provider: AlertSettingsProvider = Depends(get_settings_provider)):
    """Drop the cached value and re-read the stored row"""
    return {"settings": provider.reload().to_dict()}
