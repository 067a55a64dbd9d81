"""Main API router.

System endpoints are mounted separately so they stay outside the rate limit.
"""
from fastapi import APIRouter

from f1_proxy.api import constructors, drivers, races, results, seasons

router = APIRouter()

router.include_router(seasons.router)
router.include_router(races.router)
router.include_router(drivers.router)
router.include_router(constructors.router)  # Includes standings
router.include_router(results.router)
