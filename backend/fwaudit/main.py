import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from fwaudit.core.config import Settings, get_settings
from fwaudit.services.risk_engine import CORE_CHECKS, EXTENDED_CHECKS

logging.basicConfig(level=get_settings().log_level)
logger = logging.getLogger(__name__)


def _active_check_count(extended: bool) -> int:
    return len(CORE_CHECKS) + (len(EXTENDED_CHECKS) if extended else 0)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    logger.info(
        "Starting config auditor: environment=%s checks=%d (extended=%s) upload_limit=%d bytes",
        settings.environment,
        _active_check_count(settings.extended_checks),
        settings.extended_checks,
        settings.max_config_bytes,
    )
    yield
    logger.info("Config auditor stopped")


def create_app() -> FastAPI:
    settings = get_settings()
    app = FastAPI(
        title="Firewall Config Auditor API",
        version="1.0.0",
        description="Parses firewall configuration exports and scores their security risk",
        lifespan=lifespan,
    )

    if settings.environment == "development":
        app.add_middleware(
            CORSMiddleware,
            allow_origins=["*"],
            allow_methods=["GET", "POST"],
            allow_headers=["*"],
        )

    from fwaudit.api.v1 import router as v1_router
    app.include_router(v1_router, prefix="/api/v1")

    @app.get("/health", tags=["health"])
    def health(settings: Settings = Depends(get_settings)):
        return {"status": "ok", "checks": _active_check_count(settings.extended_checks)}

    return app


app = create_app()
