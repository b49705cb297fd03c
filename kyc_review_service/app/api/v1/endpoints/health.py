# API Router for Health Checks
from fastapi import APIRouter, Depends
import logging
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorDatabase

from kyc_review_service.app.config import settings
from kyc_review_service.app.dependencies.engine import get_preview_manager, get_submission_store
from kyc_review_service.app.service.previews import PreviewResourceManager
from kyc_review_service.app.service.store import SubmissionStore
from kyc_review_service.infrastructure.database.connection import get_optional_db

logger = logging.getLogger(__name__)
router = APIRouter()

@router.get("/health", tags=["Monitoring"])
async def health_check(
    db: Optional[AsyncIOMotorDatabase] = Depends(get_optional_db),
    store: SubmissionStore = Depends(get_submission_store),
    previews: PreviewResourceManager = Depends(get_preview_manager),
):
    if db is None:
        persistence_status = "inmemory"
    else:
        persistence_status = "connected"
        try:
            await db.command('ping')
        except Exception as e:
            logger.error(f"MongoDB health check ping failed: {e}")
            persistence_status = "disconnected"
    return {
        "status": "ok",
        "components": {
            "persistence": persistence_status,
            "kafka": "enabled" if settings.KAFKA_BOOTSTRAP_SERVERS else "disabled",
        },
        "submissions": len(store),
        "live_preview_handles": previews.live_count,
        "service_name": settings.SERVICE_NAME_API,
    }
