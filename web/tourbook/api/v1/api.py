from fastapi import APIRouter

from tourbook.api.v1.endpoints import tours, bookings, payments


# Create main API router
api_v1_router = APIRouter()

# Availability checks (public access)
api_v1_router.include_router(
    tours.router,
    prefix="/tours",
    tags=["tours"]
)

# Booking endpoints (authenticated; admin routes check roles per route)
api_v1_router.include_router(
    bookings.router,
    prefix="/bookings",
    tags=["bookings"]
)

# Payment gateway webhooks (signature checked)
api_v1_router.include_router(
    payments.router,
    prefix="/payments",
    tags=["payments"]
)
