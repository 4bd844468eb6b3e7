from fastapi import APIRouter, Depends

from app.core.core_endpoints import schemas_core
from app.core.utils.config import Settings
from app.dependencies import get_settings
from app.types.module import CoreModule

router = APIRouter(tags=["Core"])

core_module = CoreModule(
    root="core",
    tag="Core",
    router=router,
)


@router.get(
    "/information",
    response_model=schemas_core.CoreInformation,
    status_code=200,
)
async def read_information(
    settings: Settings = Depends(get_settings),
):
    """
    Return information about Conference Hub. This endpoint can be used to check if the API is up.
    """

    return schemas_core.CoreInformation(
        ready=True,
        version=settings.CONFERENCE_HUB_VERSION,
        facility_timezone=settings.FACILITY_TIMEZONE,
        blocking_policy=settings.BOOKING_BLOCKING_POLICY,
    )
