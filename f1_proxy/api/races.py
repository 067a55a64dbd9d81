"""Race endpoints: schedule, qualifying, lap times and pit stops."""
import structlog
from fastapi import APIRouter, Depends

from f1_proxy.api.deps import envelope, get_data_service, validated
from f1_proxy.core.validation import LapTimesParams, RoundParams, Schema, YearParams
from f1_proxy.integrations.jolpica import Resource
from f1_proxy.services.f1_data import F1DataService

router = APIRouter(tags=["races"])

logger = structlog.get_logger(__name__)


@router.get("/races/{year}")
async def get_races(
    params: YearParams = Depends(validated(Schema.RACES)),
    service: F1DataService = Depends(get_data_service),
):
    """Get the race schedule for a season."""
    endpoint = f"/races/{params.year}"
    logger.info("fetching_races", year=params.year)
    data, cached = await service.get(
        Resource.RACES, endpoint, params.echo(), f"races for {params.year}"
    )
    return envelope(data, endpoint, params, cached)


@router.get("/races/{year}/{round}")
async def get_race(
    params: RoundParams = Depends(validated(Schema.RACE)),
    service: F1DataService = Depends(get_data_service),
):
    endpoint = f"/races/{params.year}/{params.round}"
    logger.info("fetching_race", year=params.year, round=params.round)
    data, cached = await service.get(
        Resource.RACE, endpoint, params.echo(), f"race {params.year}/{params.round} data"
    )
    return envelope(data, endpoint, params, cached)


@router.get("/qualifying/{year}/{round}")
async def get_qualifying(
    params: RoundParams = Depends(validated(Schema.QUALIFYING)),
    service: F1DataService = Depends(get_data_service),
):
    endpoint = f"/qualifying/{params.year}/{params.round}"
    logger.info("fetching_qualifying", year=params.year, round=params.round)
    data, cached = await service.get(
        Resource.QUALIFYING,
        endpoint,
        params.echo(),
        f"qualifying for {params.year}/{params.round}",
    )
    return envelope(data, endpoint, params, cached)


@router.get("/laps/{year}/{round}")
@router.get("/laps/{year}/{round}/{lap}")
async def get_lap_times(
    params: LapTimesParams = Depends(validated(Schema.LAP_TIMES)),
    service: F1DataService = Depends(get_data_service),
):
    """
    Get lap timings for a race.

    A single lap can be selected with a path segment or ``?lap=``.
    """
    endpoint = f"/laps/{params.year}/{params.round}"
    if params.lap:
        endpoint += f"/{params.lap}"
    resource = Resource.LAP if params.lap else Resource.LAPS

    logger.info("fetching_lap_times", year=params.year, round=params.round, lap=params.lap)
    data, cached = await service.get(
        resource, endpoint, params.echo(), f"lap times for {endpoint.removeprefix('/laps/')}"
    )
    return envelope(data, endpoint, params, cached)


@router.get("/pitstops/{year}/{round}")
async def get_pit_stops(
    params: RoundParams = Depends(validated(Schema.PIT_STOPS)),
    service: F1DataService = Depends(get_data_service),
):
    endpoint = f"/pitstops/{params.year}/{params.round}"
    logger.info("fetching_pit_stops", year=params.year, round=params.round)
    data, cached = await service.get(
        Resource.PIT_STOPS,
        endpoint,
        params.echo(),
        f"pit stops for {params.year}/{params.round}",
    )
    return envelope(data, endpoint, params, cached)
