"""
Targets API
Register monitored targets and their thresholds with the alert engine.
"""

from typing import Dict, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field, model_validator

from alerts import AlertEngine
from core import (
    TargetRef,
    MonitoredTarget,
    ThresholdPair,
    TargetDirectory,
    TargetNotFoundError,
)

from .deps import get_alert_engine, get_target_directory, parse_target_type

router = APIRouter(prefix="/targets", tags=["Targets"])


class ThresholdRequest(BaseModel):
    warning: Optional[float] = None
    critical: Optional[float] = None


class RegisterTargetRequest(BaseModel):
    """Request body for registering or replacing a target"""
    name: str = Field(..., min_length=1, max_length=200)
    monitoring_enabled: bool = True
    thresholds: Dict[str, ThresholdRequest] = {}

    @model_validator(mode="after")
    def check_floor_ordering(self):
        floor = self.thresholds.get("humidity_min")
        if floor and floor.warning is not None and floor.critical is not None \
                and floor.critical > floor.warning:
            raise ValueError("humidity_min critical must not be above its warning")
        return self

    class Config:
        json_schema_extra = {
            "example": {
                "name": "web-01",
                "monitoring_enabled": True,
                "thresholds": {
                    "cpu_usage_percent": {"warning": 70, "critical": 90},
                    "memory_usage_percent": {"warning": 80},
                },
            }
        }


@router.get("")
async def list_targets(
    target_type: Optional[str] = None,
    directory: TargetDirectory = Depends(get_target_directory),
):
    parsed = parse_target_type(target_type) if target_type else None
    targets = directory.all(parsed)
    return {
        "count": len(targets),
        "targets": [t.to_dict() for t in targets],
    }


@router.put("/{target_type}/{target_id}")
async def register_target(
    target_type: str,
    target_id: int,
    request: RegisterTargetRequest,
    directory: TargetDirectory = Depends(get_target_directory),
):
    target = MonitoredTarget(
        ref=TargetRef(parse_target_type(target_type), target_id),
        name=request.name,
        monitoring_enabled=request.monitoring_enabled,
        thresholds={
            name: ThresholdPair(warning=t.warning, critical=t.critical)
            for name, t in request.thresholds.items()
        },
    )
    directory.register(target)
    return {"message": "Target registered", "target": target.to_dict()}


@router.get("/{target_type}/{target_id}")
def get_target(
    target_type: str,
    target_id: int,
    directory: TargetDirectory = Depends(get_target_directory),
    engine: AlertEngine = Depends(get_alert_engine),
):
    """Target with the current violation streak of each of its streams"""
    try:
        target = directory.require(parse_target_type(target_type), target_id)
    except TargetNotFoundError as e:
        raise HTTPException(404, str(e))

    trackers = engine.trackers.list_for_target(target.ref)
    return {
        "target": target.to_dict(),
        "trackers": [t.to_dict() for t in trackers],
    }


@router.delete("/{target_type}/{target_id}")
async def remove_target(
    target_type: str,
    target_id: int,
    directory: TargetDirectory = Depends(get_target_directory),
):
    try:
        target = directory.remove(parse_target_type(target_type), target_id)
    except TargetNotFoundError as e:
        raise HTTPException(404, str(e))
    return {"message": f"Target {target.ref} removed"}
