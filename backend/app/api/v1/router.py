"""
API v1 Router.

Mounted by main.py under `/v1`. Admin routers guard each route with
`require_admin`; all other routers authenticate per route.
"""

from fastapi import APIRouter
from backend.app.api.v1.endpoints import (
    admin, admin_ledger, wallet,
    availabilities, appointments, dedication_requests, live_shows,
    stars, notifications
)

BOOKING_ROUTERS = (availabilities.router, appointments.router, dedication_requests.router, live_shows.router)
ADMIN_ROUTERS = (admin.router, admin_ledger.router)

router = APIRouter()

for booking_router in BOOKING_ROUTERS:
    router.include_router(booking_router)

router.include_router(wallet.router)
router.include_router(stars.router)
router.include_router(notifications.router)

for admin_router in ADMIN_ROUTERS:
    router.include_router(admin_router)
