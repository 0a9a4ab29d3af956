import logging

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from ..core.config import settings
from ..core.database import get_db_health

logger = logging.getLogger(__name__)
router = APIRouter(tags=["health"])


@router.get("/healthz")
async def health():
    """Health check with real dependency verification."""
    services = {"database": await get_db_health()}

    if settings.use_redis:
        from ..services.redis import ping
        services["redis"] = ping()

    # Skip the external Gemini check in dev/test to keep healthz fast
    if settings.service_env in {"dev", "test"}:
        services["gemini"] = True
    else:
        from ..services.gemini import health_check as gemini_health
        services["gemini"] = await gemini_health()

    if not all(services.values()):
        logger.warning("Health check degraded", extra={"services": services})
        return JSONResponse(status_code=503, content={"ok": False, "status": "degraded", "services": services})
    return {"ok": True, "status": "healthy", "services": services}
