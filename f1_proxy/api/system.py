"""Health, API info and tool discovery endpoints."""
import time
from datetime import datetime, timezone

import structlog
from fastapi import APIRouter, Request

router = APIRouter()

logger = structlog.get_logger(__name__)

ENDPOINTS = {
    "seasons": "/seasons",
    "races": "/races/:year/:round?",
    "drivers": "/drivers/:year?/:driverId?",
    "constructors": "/constructors/:year?/:constructorId?",
    "qualifying": "/qualifying/:year/:round",
    "results": "/results/:year/:round",
    "standings": "/standings/:year/:type?",
    "lapTimes": "/laps/:year/:round/:lap?",
    "pitStops": "/pitstops/:year/:round",
}

YEAR = {"type": "string", "required": True, "pattern": r"^\d{4}$|^current$"}
OPTIONAL_YEAR = {"type": "string", "required": False, "default": "current"}
ROUND = {"type": "string", "required": True, "pattern": r"^\d+$"}

TOOLS = [
    {
        "name": "get_seasons",
        "path": "/seasons",
        "method": "GET",
        "description": "Get all F1 seasons",
        "parameters": {},
    },
    {
        "name": "get_races",
        "path": "/races/:year/:round?",
        "method": "GET",
        "description": "Get race schedules and details",
        "parameters": {"year": YEAR, "round": {**ROUND, "required": False}},
    },
    {
        "name": "get_qualifying",
        "path": "/qualifying/:year/:round",
        "method": "GET",
        "description": "Get qualifying results for a race",
        "parameters": {"year": YEAR, "round": ROUND},
    },
    {
        "name": "get_results",
        "path": "/results/:year/:round",
        "method": "GET",
        "description": "Get race results",
        "parameters": {"year": YEAR, "round": ROUND},
    },
    {
        "name": "get_lap_times",
        "path": "/laps/:year/:round/:lap?",
        "method": "GET",
        "description": "Get lap timings for a race or a single lap",
        "parameters": {
            "year": YEAR,
            "round": ROUND,
            "lap": {"type": "string", "required": False, "pattern": r"^\d+$"},
        },
    },
    {
        "name": "get_pit_stops",
        "path": "/pitstops/:year/:round",
        "method": "GET",
        "description": "Get pit stops for a race",
        "parameters": {"year": YEAR, "round": ROUND},
    },
    {
        "name": "get_drivers",
        "path": "/drivers/:year?/:driverId?",
        "method": "GET",
        "description": "Get driver information",
        "parameters": {
            "year": OPTIONAL_YEAR,
            "driverId": {"type": "string", "required": False},
        },
    },
    {
        "name": "get_constructors",
        "path": "/constructors/:year?/:constructorId?",
        "method": "GET",
        "description": "Get constructor/team data",
        "parameters": {
            "year": OPTIONAL_YEAR,
            "constructorId": {"type": "string", "required": False},
        },
    },
    {
        "name": "get_standings",
        "path": "/standings/:year/:type?",
        "method": "GET",
        "description": "Get championship standings",
        "parameters": {
            "year": YEAR,
            "type": {
                "type": "string",
                "required": False,
                "default": "drivers",
                "enum": ["drivers", "constructors"],
            },
        },
    },
]


@router.get("/health")
async def health_check(request: Request):
    """Liveness check. Never rate limited."""
    settings = request.app.state.settings
    status = {
        "status": "healthy",
        "service": settings.service_name,
        "version": settings.version,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "uptime": round(time.monotonic() - request.app.state.started_at, 3),
        "environment": settings.environment.value,
        "cache": request.app.state.f1_data.cache_stats(),
    }
    logger.debug("health_check", status=status["status"])
    return status


@router.get("/api/info")
async def api_info(request: Request):
    """Service description and endpoint map."""
    settings = request.app.state.settings
    return {
        "name": settings.app_name,
        "description": "Formula 1 data API proxy service",
        "version": settings.version,
        "endpoints": ENDPOINTS,
        "source": "Jolpica F1 API (Ergast Motor Racing Developer API)",
        "upstream": settings.jolpica_api_url,
    }


@router.get("/tools")
async def tools_discovery(request: Request):
    """Tool descriptors for agent / MCP integrations."""
    settings = request.app.state.settings
    return {
        "service": settings.service_name,
        "version": settings.version,
        "capabilities": [
            "seasons",
            "races",
            "drivers",
            "constructors",
            "qualifying",
            "results",
            "standings",
            "lap-times",
            "pit-stops",
        ],
        "endpoints": TOOLS,
    }
