"""
Admin / observability endpoints
===============================

GET  /api/admin/health -- simple health check
POST /api/admin/sweep  -- run one lifecycle sweep now (admin only)
"""

from fastapi import APIRouter, Depends

from ridepool.api.dependencies import require_roles
from ridepool.api.schemas import HealthResponse, SweepResponse
from ridepool.domain.enums import UserRole
from ridepool.infrastructure.identity import CallerIdentity
from ridepool.workers import sweeper

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/health", response_model=HealthResponse, summary="Health check")
async def health():
    return HealthResponse()


@router.post(
    "/sweep",
    response_model=SweepResponse,
    summary="Complete every elapsed ride now",
)
async def sweep_now(
    caller: CallerIdentity = Depends(require_roles(UserRole.ADMIN)),
):
    return SweepResponse(completed=await sweeper.run_sweep_cycle())
