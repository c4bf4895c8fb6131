"""RPC-style liveness ping."""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from ..core.dependencies import BookingEvents
from ..core.events import EventBus
from ..core.observability import SERVICE_NAME, SERVICE_VERSION
from ..schemas.health import HealthResponse, HealthStatus
from .common import json_response

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/health", tags=["health"])


@router.post("/ping", response_model=HealthResponse)
async def health_ping(event_bus: EventBus = BookingEvents) -> JSONResponse:
    """Report liveness together with the number of open booking-event subscriptions."""
    subscribers = event_bus.subscriber_count()
    logger.debug("Ping", extra={"subscribers": subscribers})

    return json_response(
        HealthResponse(
            status=HealthStatus.HEALTHY,
            service=SERVICE_NAME,
            timestamp=datetime.now(timezone.utc),
            version=SERVICE_VERSION,
            subscribers=subscribers,
        )
    )
