"""API routes."""

from fastapi import APIRouter

from foodcost.api.routes import reports, matching, theoretical_usage

api_router = APIRouter()

api_router.include_router(reports.router, tags=["reports"])
api_router.include_router(theoretical_usage.router, tags=["theoretical-usage"])
api_router.include_router(matching.router, tags=["vendor-matching"])
