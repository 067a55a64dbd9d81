"""Jolpica F1 API client (Ergast-compatible).

Read-only, no authentication. Docs: https://github.com/jolpica/jolpica-f1
"""
from enum import Enum
from typing import Any
from urllib.parse import quote

import httpx
import structlog

from f1_proxy import __version__

logger = structlog.get_logger(__name__)


class Resource(str, Enum):
    """Upstream resources the proxy is allowed to reach."""
    SEASONS = "seasons"
    SEASON = "season"
    RACES = "races"
    RACE = "race"
    DRIVERS = "drivers"
    DRIVER = "driver"
    CONSTRUCTORS = "constructors"
    CONSTRUCTOR = "constructor"
    QUALIFYING = "qualifying"
    LAPS = "laps"
    LAP = "lap"
    PIT_STOPS = "pit_stops"
    DRIVER_STANDINGS = "driver_standings"
    CONSTRUCTOR_STANDINGS = "constructor_standings"
    RESULTS = "results"


TEMPLATES: dict[Resource, str] = {
    Resource.SEASONS: "/seasons.json",
    Resource.SEASON: "/{year}.json",
    Resource.RACES: "/{year}.json",
    Resource.RACE: "/{year}/{round}.json",
    Resource.DRIVERS: "/{year}/drivers.json",
    Resource.DRIVER: "/{year}/drivers/{driverId}.json",
    Resource.CONSTRUCTORS: "/{year}/constructors.json",
    Resource.CONSTRUCTOR: "/{year}/constructors/{constructorId}.json",
    Resource.QUALIFYING: "/{year}/{round}/qualifying.json",
    Resource.LAPS: "/{year}/{round}/laps.json",
    Resource.LAP: "/{year}/{round}/laps/{lap}.json",
    Resource.PIT_STOPS: "/{year}/{round}/pitstops.json",
    Resource.DRIVER_STANDINGS: "/{year}/driverStandings.json",
    Resource.CONSTRUCTOR_STANDINGS: "/{year}/constructorStandings.json",
    Resource.RESULTS: "/{year}/{round}/results.json",
}


class UpstreamError(Exception):
    """Normalized failure talking to the upstream API.

    ``status`` is the upstream HTTP status, or 503 when the request never got
    a response (connection failure, timeout).
    """

    def __init__(self, status: int, message: str, data: Any = None):
        super().__init__(message)
        self.status = status
        self.message = message
        self.data = data


def build_path(resource: Resource, params: dict[str, str] | None = None) -> str:
    """Substitute URL-quoted parameters into the resource template.

    Raises KeyError when a template parameter is missing.
    """
    template = TEMPLATES[Resource(resource)]
    quoted = {k: quote(str(v), safe="") for k, v in (params or {}).items() if v is not None}
    return template.format(**quoted)


def _error_body(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text or None


class JolpicaClient:
    """Async client for the Jolpica F1 API.

    One pooled ``httpx.AsyncClient`` per instance; call ``close()`` on
    shutdown. No retries: a failed attempt is reported to the caller.
    """

    BASE_URL = "http://api.jolpi.ca/ergast/f1"

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = (base_url or self.BASE_URL).rstrip("/")
        self.timeout = timeout
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            follow_redirects=True,
            transport=transport,
            headers={
                "User-Agent": f"F1-API-Proxy/{__version__}",
                "Accept": "application/json",
            },
        )

    async def close(self) -> None:
        await self._client.aclose()

    async def fetch(self, resource: Resource, params: dict[str, str] | None = None) -> Any:
        """Fetch and decode one upstream resource.

        Raises:
            UpstreamError: non-2xx answer, network failure or timeout
        """
        path = build_path(resource, params)
        logger.debug("upstream_request", resource=Resource(resource).value, path=path)

        try:
            response = await self._client.get(path)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            logger.error("upstream_request_failed", path=path, status=status)
            raise UpstreamError(status, f"API Error: {status}", _error_body(e.response)) from e
        except httpx.RequestError as e:
            logger.error(
                "upstream_unreachable",
                path=path,
                error=str(e) or e.__class__.__name__,
            )
            raise UpstreamError(503, "Network Error: Unable to reach F1 API") from e

        try:
            data = response.json()
        except ValueError as e:
            logger.error("upstream_invalid_json", path=path, status=response.status_code)
            raise UpstreamError(502, "API Error: invalid JSON from F1 API", response.text) from e

        logger.debug(
            "upstream_response",
            path=path,
            status=response.status_code,
            size=len(response.content),
        )
        return data

    # ==================== Resources ====================

    async def get_seasons(self) -> Any:
        """Get all F1 seasons."""
        return await self.fetch(Resource.SEASONS)

    async def get_season(self, year: str) -> Any:
        return await self.fetch(Resource.SEASON, {"year": year})

    async def get_races(self, year: str) -> Any:
        """Get the race schedule for a season."""
        return await self.fetch(Resource.RACES, {"year": year})

    async def get_race(self, year: str, round: str) -> Any:
        return await self.fetch(Resource.RACE, {"year": year, "round": round})

    async def get_drivers(self, year: str = "current") -> Any:
        return await self.fetch(Resource.DRIVERS, {"year": year})

    async def get_driver(self, year: str, driver_id: str) -> Any:
        return await self.fetch(Resource.DRIVER, {"year": year, "driverId": driver_id})

    async def get_constructors(self, year: str = "current") -> Any:
        return await self.fetch(Resource.CONSTRUCTORS, {"year": year})

    async def get_constructor(self, year: str, constructor_id: str) -> Any:
        return await self.fetch(
            Resource.CONSTRUCTOR, {"year": year, "constructorId": constructor_id}
        )

    async def get_qualifying(self, year: str, round: str) -> Any:
        return await self.fetch(Resource.QUALIFYING, {"year": year, "round": round})

    async def get_lap_times(self, year: str, round: str, lap: str | None = None) -> Any:
        """Get lap timings for a race, or for a single lap when given."""
        if lap:
            return await self.fetch(Resource.LAP, {"year": year, "round": round, "lap": lap})
        return await self.fetch(Resource.LAPS, {"year": year, "round": round})

    async def get_pit_stops(self, year: str, round: str) -> Any:
        return await self.fetch(Resource.PIT_STOPS, {"year": year, "round": round})

    async def get_standings(self, year: str, type: str = "drivers") -> Any:
        """Get championship standings.

        Args:
            year: Season year or "current"
            type: "drivers" or "constructors"
        """
        resource = standings_resource(type)
        return await self.fetch(resource, {"year": year})

    async def get_results(self, year: str, round: str) -> Any:
        return await self.fetch(Resource.RESULTS, {"year": year, "round": round})


def standings_resource(type: str) -> Resource:
    if type == "constructors":
        return Resource.CONSTRUCTOR_STANDINGS
    return Resource.DRIVER_STANDINGS
