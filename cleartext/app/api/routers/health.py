import time
from datetime import datetime, timezone

from fastapi import APIRouter, Depends

from ...config import Settings, get_app_settings
from ...models.moderation import HealthStatus

router = APIRouter(tags=["health"])

_STARTED_AT = time.monotonic()


def health_payload(settings: Settings) -> HealthStatus:
    return HealthStatus(
        status="ok",
        service=settings.SERVICE_NAME,
        version=settings.VERSION,
        timestamp=datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z"),
        uptime=f"{int(time.monotonic() - _STARTED_AT)}s",
    )


@router.get("/", response_model=HealthStatus)
async def root(settings: Settings = Depends(get_app_settings)):
    return health_payload(settings)


@router.get("/health", response_model=HealthStatus)
async def health_check(settings: Settings = Depends(get_app_settings)):
    return health_payload(settings)
