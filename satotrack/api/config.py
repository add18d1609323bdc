"""Runtime configuration API endpoint"""

from typing import List

from fastapi import APIRouter, Request
from pydantic import BaseModel, Field

router = APIRouter()


class RuntimeConfigResponse(BaseModel):
    """Current ingestion configuration"""

    provider_priority_order: List[str] = Field(..., description="Providers in fallback order")
    per_provider_timeout_ms: int = Field(..., description="Timeout applied to each provider call")
    unit_scale: int = Field(..., description="Base units per major unit")


@router.get("/config", response_model=RuntimeConfigResponse)
async def get_config(request: Request):
    """Return the active ingestion configuration."""

    config = request.app.state.ingestion_config
    return RuntimeConfigResponse(
        provider_priority_order=config.provider_priority_order,
        per_provider_timeout_ms=config.per_provider_timeout_ms,
        unit_scale=config.unit_scale,
    )
