# FastAPI Application Entry Point
import logging
from typing import Optional

from fastapi import FastAPI
import httpx

# Configuration and Observability
from kyc_review_service.app.config import settings
from kyc_review_service.app.observability import setup_opentelemetry, logger

# Initialize OpenTelemetry
setup_opentelemetry(service_name=settings.SERVICE_NAME_API)

# Import instrumentors after OTel SDK is initialized
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.httpx import HTTPXClientInstrumentor

from kyc_review_service.app.dependencies.engine import get_submission_store
from kyc_review_service.app.service.interfaces.submission_persistence import AbstractSubmissionPersistence
# Database connection and persistence mirror
from kyc_review_service.infrastructure.database.connection import connect_to_mongo, close_mongo_connection, get_database
from kyc_review_service.infrastructure.database.submission_persistence import (
    InMemorySubmissionPersistence,
    MongoSubmissionPersistence,
    PersistenceMirror,
)
# Kafka Producer lifecycle
from kyc_review_service.infrastructure.kafka.producer import (
    SubmissionChangePublisher,
    shutdown_kafka_producer,
    startup_kafka_producer,
)

# API Routers
from kyc_review_service.app.api.v1.endpoints import health as health_router
from kyc_review_service.app.api.v1.endpoints import submissions as submissions_router
from kyc_review_service.app.api.v1.endpoints import amendments as amendments_router
from kyc_review_service.app.api.v1.endpoints import compliance as compliance_router

# --- FastAPI Application Instance ---
app = FastAPI(
    title="KYC Review Service",
    description="Submission lifecycle, review decisions and amendment resolution for KYC document packages.",
    version="0.1.0"
)


def build_persistence() -> AbstractSubmissionPersistence:
    if settings.PERSISTENCE_BACKEND == "mongo":
        connect_to_mongo()
        return MongoSubmissionPersistence(get_database())
    return InMemorySubmissionPersistence()


# --- Event Handlers for Collaborators & OTel Instrumentation ---
@app.on_event("startup")
async def startup_event():
    logger.info("FastAPI application startup...")
    try:
        app.state.http_client = httpx.AsyncClient(timeout=settings.DEFAULT_HTTP_TIMEOUT)
        HTTPXClientInstrumentor().instrument()
        logger.info(f"HTTPX AsyncClient initialized with timeout {settings.DEFAULT_HTTP_TIMEOUT} and instrumented.")

        store = get_submission_store()
        persistence = build_persistence()
        if isinstance(persistence, MongoSubmissionPersistence):
            await persistence.ensure_indexes()
        mirror = PersistenceMirror(store, persistence)
        loaded = await mirror.hydrate()
        await mirror.start()
        app.state.persistence_mirror = mirror
        logger.info(f"Persistence mirror ({settings.PERSISTENCE_BACKEND}) started; {loaded} submissions hydrated.")

        producer = await startup_kafka_producer()
        if producer is not None:
            publisher = SubmissionChangePublisher(producer)
            publisher.attach(store)
            app.state.change_publisher = publisher
            logger.info("Submission change publisher attached to the store.")

    except Exception as e:
        logger.error(f"Failed during startup: {e}", exc_info=True)

@app.on_event("shutdown")
async def shutdown_event():
    logger.info("FastAPI application shutdown...")

    publisher: Optional[SubmissionChangePublisher] = getattr(app.state, "change_publisher", None)
    if publisher is not None:
        publisher.detach()
    await shutdown_kafka_producer()

    mirror: Optional[PersistenceMirror] = getattr(app.state, "persistence_mirror", None)
    if mirror is not None:
        await mirror.stop()
        logger.info("Persistence mirror flushed and stopped.")

    if getattr(app.state, 'http_client', None):
        await app.state.http_client.aclose()
        logger.info("HTTPX AsyncClient closed.")

    close_mongo_connection()

FastAPIInstrumentor.instrument_app(app)
logger.info("FastAPI instrumentation complete.")

# Include API Routers
app.include_router(health_router.router, prefix="/api/v1")
app.include_router(submissions_router.router, prefix="/api/v1")
app.include_router(amendments_router.router, prefix="/api/v1")
app.include_router(compliance_router.router, prefix="/api/v1")

logger.info("API routers included. Application setup complete.")

# To run: uvicorn kyc_review_service.app.main:app --reload --port 8000
