"""
Health check endpoint.

GET /health checks MongoDB connectivity and the expiry sweeper.
- MongoDB failure: "unhealthy" (503)
- Sweeper task stopped: "degraded" (200). Expired credentials are still
  rejected at verification; only cleanup is delayed.
"""

from __future__ import annotations

import asyncio
from typing import Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from dependencies import get_db
from schemas.dto.responses.common import HealthResponse

router = APIRouter(tags=["health"])


def _sweeper_status(task: Optional[asyncio.Task]) -> str:
    if task is None:
        return "disabled"
    if task.done():
        return "stopped"
    return "running"


@router.get(
    "/health",
    response_model=HealthResponse,
    responses={503: {"model": HealthResponse}},
)
async def health_check(request: Request, db=Depends(get_db)) -> JSONResponse:
    checks: dict[str, str] = {}
    overall = "healthy"

    try:
        await db.client.admin.command("ping")
        checks["mongodb"] = "ok"
    except Exception:
        checks["mongodb"] = "error"
        overall = "unhealthy"

    sweeper = _sweeper_status(getattr(request.app.state, "sweeper_task", None))
    checks["sweeper"] = sweeper
    if sweeper == "stopped" and overall == "healthy":
        overall = "degraded"

    status_code = 503 if overall == "unhealthy" else 200
    body = HealthResponse(status=overall, checks=checks)
    return JSONResponse(status_code=status_code, content=body.model_dump())
