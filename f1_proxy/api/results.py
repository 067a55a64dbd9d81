"""Race results endpoint."""
import structlog
from fastapi import APIRouter, Depends

from f1_proxy.api.deps import envelope, get_data_service, validated
from f1_proxy.core.validation import RoundParams, Schema
from f1_proxy.integrations.jolpica import Resource
from f1_proxy.services.f1_data import F1DataService

router = APIRouter(tags=["results"])

logger = structlog.get_logger(__name__)


@router.get("/results/{year}/{round}")
async def get_results(
    params: RoundParams = Depends(validated(Schema.RESULTS)),
    service: F1DataService = Depends(get_data_service),
):
    """Get race results."""
    endpoint = f"/results/{params.year}/{params.round}"
    logger.info("fetching_results", year=params.year, round=params.round)
    data, cached = await service.get(
        Resource.RESULTS,
        endpoint,
        params.echo(),
        f"results for {params.year}/{params.round}",
    )
    return envelope(data, endpoint, params, cached)
