"""Season endpoints."""
import structlog
from fastapi import APIRouter, Depends

from f1_proxy.api.deps import envelope, get_data_service, validated
from f1_proxy.core.validation import NoParams, Schema, YearParams
from f1_proxy.integrations.jolpica import Resource
from f1_proxy.services.f1_data import F1DataService

router = APIRouter(tags=["seasons"])

logger = structlog.get_logger(__name__)


@router.get("/seasons")
async def get_seasons(
    params: NoParams = Depends(validated(Schema.SEASONS)),
    service: F1DataService = Depends(get_data_service),
):
    """Get all F1 seasons."""
    logger.info("fetching_seasons")
    data, cached = await service.get(
        Resource.SEASONS, "/seasons", params.echo(), "F1 seasons data"
    )
    return envelope(data, "/seasons", params, cached)


@router.get("/seasons/{year}")
async def get_season(
    params: YearParams = Depends(validated(Schema.SEASON)),
    service: F1DataService = Depends(get_data_service),
):
    """Get a single season."""
    endpoint = f"/seasons/{params.year}"
    logger.info("fetching_season", year=params.year)
    data, cached = await service.get(
        Resource.SEASON, endpoint, params.echo(), f"F1 season {params.year} data"
    )
    return envelope(data, endpoint, params, cached)
