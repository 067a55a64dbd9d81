"""Constructor (team) and championship standings endpoints."""
import structlog
from fastapi import APIRouter, Depends

from f1_proxy.api.deps import envelope, get_data_service, validated
from f1_proxy.core.validation import ConstructorParams, OptionalYearParams, Schema, StandingsParams
from f1_proxy.integrations.jolpica import Resource, standings_resource
from f1_proxy.services.f1_data import F1DataService

router = APIRouter(tags=["constructors"])

logger = structlog.get_logger(__name__)


@router.get("/constructors")
@router.get("/constructors/{year}")
async def get_constructors(
    params: OptionalYearParams = Depends(validated(Schema.CONSTRUCTORS)),
    service: F1DataService = Depends(get_data_service),
):
    """Get constructors for a season (defaults to the current one)."""
    endpoint = f"/constructors/{params.year}"
    logger.info("fetching_constructors", year=params.year)
    data, cached = await service.get(
        Resource.CONSTRUCTORS, endpoint, params.echo(), f"constructors for {params.year}"
    )
    return envelope(data, endpoint, params, cached)


@router.get("/constructors/{year}/{constructorId}")
async def get_constructor(
    params: ConstructorParams = Depends(validated(Schema.CONSTRUCTOR)),
    service: F1DataService = Depends(get_data_service),
):
    endpoint = f"/constructors/{params.year}/{params.constructor_id}"
    logger.info(
        "fetching_constructor", year=params.year, constructor_id=params.constructor_id
    )
    data, cached = await service.get(
        Resource.CONSTRUCTOR,
        endpoint,
        params.echo(),
        f"constructor {params.constructor_id} for {params.year}",
    )
    return envelope(data, endpoint, params, cached)


@router.get("/standings/{year}")
@router.get("/standings/{year}/{type}")
async def get_standings(
    params: StandingsParams = Depends(validated(Schema.STANDINGS)),
    service: F1DataService = Depends(get_data_service),
):
    """
    Get championship standings.

    Type: drivers (default) or constructors
    """
    endpoint = f"/standings/{params.year}/{params.type}"
    logger.info("fetching_standings", year=params.year, type=params.type)
    data, cached = await service.get(
        standings_resource(params.type),
        endpoint,
        {"year": params.year},
        f"{params.type} standings for {params.year}",
    )
    return envelope(data, endpoint, params, cached)
