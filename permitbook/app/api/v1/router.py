"""
API v1 Router.

Aggregates all v1 API endpoints.
"""

from fastapi import APIRouter
from permitbook.app.api.v1.endpoints import equipment, combos, drivers, permit_book

router = APIRouter()

# Equipment registry (trucks, trailers, availability)
router.include_router(equipment.router)

# Coupling and claims
router.include_router(combos.router)

# Driver compliance profile, terminal access, identity migration
router.include_router(drivers.router)

# Permit book and expiry classifier
router.include_router(permit_book.router)
