"""Operational endpoints."""

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from invitegate.database import health_check

router = APIRouter(tags=["Health"])


@router.get("/health")
async def health() -> JSONResponse:
    """Report database reachability."""
    if await health_check():
        return JSONResponse(status_code=200, content={"message": "ok", "database": "ok"})
    return JSONResponse(status_code=503, content={"message": "degraded", "database": "unavailable"})
