from fastapi import APIRouter
from fwaudit.api.v1 import config

router = APIRouter()
router.include_router(config.router, prefix="/config", tags=["config"])
