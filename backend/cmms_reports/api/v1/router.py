"""
API v1 router aggregating all endpoints.
"""
from fastapi import APIRouter

from cmms_reports.api.v1.endpoints import reports

api_router = APIRouter()

api_router.include_router(reports.router, prefix="/reports", tags=["Reports"])
