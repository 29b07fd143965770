"""Health check endpoint."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends

from lifecycle_api.dependencies import get_lifecycle_engine
from lifecycle_modules.catalog import LifecycleEngine

router = APIRouter()


@router.get("/health")
def health_check(engine: LifecycleEngine = Depends(get_lifecycle_engine)) -> dict[str, Any]:
    return {
        "status": "ok",
        "kinds": sorted(engine.registry.kinds()),
    }
