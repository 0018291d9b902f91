"""
API v1 router setup
Every engine route is scoped to one business: /businesses/{business_id}/...
"""
from fastapi import APIRouter

from booking_engine.api.v1 import appointments, availability, blocked_periods, schedule

api_v1_router = APIRouter()

# ============================================================================
# READ ROUTES
# ============================================================================
api_v1_router.include_router(
    availability.router,
    prefix="/businesses",
    tags=["Availability"]
)

# ============================================================================
# WRITE ROUTES (serialized per business)
# ============================================================================
api_v1_router.include_router(
    appointments.router,
    prefix="/businesses",
    tags=["Appointments"]
)

api_v1_router.include_router(
    blocked_periods.router,
    prefix="/businesses",
    tags=["Blocked Periods"]
)

api_v1_router.include_router(
    schedule.router,
    prefix="/businesses",
    tags=["Schedule"]
)


# ============================================================================
# ROOT ENDPOINT - API Info
# ============================================================================
@api_v1_router.get("/", tags=["Info"])
async def api_info():
    """API information and available endpoint groups."""
    return {
        "version": "1.0",
        "endpoints": {
            "availability": "/api/v1/businesses/{business_id}/availability",
            "appointments": "/api/v1/businesses/{business_id}/appointments",
            "blocked_periods": "/api/v1/businesses/{business_id}/blocked-periods",
            "hours": "/api/v1/businesses/{business_id}/hours",
        }
    }
