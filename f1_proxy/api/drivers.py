"""Driver endpoints."""
import structlog
from fastapi import APIRouter, Depends

from f1_proxy.api.deps import envelope, get_data_service, validated
from f1_proxy.core.validation import DriverParams, OptionalYearParams, Schema
from f1_proxy.integrations.jolpica import Resource
from f1_proxy.services.f1_data import F1DataService

router = APIRouter(tags=["drivers"])

logger = structlog.get_logger(__name__)


@router.get("/drivers")
@router.get("/drivers/{year}")
async def get_drivers(
    params: OptionalYearParams = Depends(validated(Schema.DRIVERS)),
    service: F1DataService = Depends(get_data_service),
):
    """Get drivers for a season (defaults to the current one)."""
    endpoint = f"/drivers/{params.year}"
    logger.info("fetching_drivers", year=params.year)
    data, cached = await service.get(
        Resource.DRIVERS, endpoint, params.echo(), f"drivers for {params.year}"
    )
    return envelope(data, endpoint, params, cached)


@router.get("/drivers/{year}/{driverId}")
async def get_driver(
    params: DriverParams = Depends(validated(Schema.DRIVER)),
    service: F1DataService = Depends(get_data_service),
):
    endpoint = f"/drivers/{params.year}/{params.driver_id}"
    logger.info("fetching_driver", year=params.year, driver_id=params.driver_id)
    data, cached = await service.get(
        Resource.DRIVER,
        endpoint,
        params.echo(),
        f"driver {params.driver_id} for {params.year}",
    )
    return envelope(data, endpoint, params, cached)
