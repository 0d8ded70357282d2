"""Primary API router definition."""

from fastapi import APIRouter

from . import dispense, distributions, owners

api_router = APIRouter()

api_router.include_router(dispense.router)
api_router.include_router(distributions.router)
api_router.include_router(owners.router)


@api_router.get("/health", tags=["health"])
async def healthcheck() -> dict[str, str]:
    """Basic health probe endpoint."""
    return {"status": "ok"}
