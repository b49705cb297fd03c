# Application Configuration using Pydantic BaseSettings
import logging
from typing import List, Optional

from pydantic_settings import BaseSettings

DEFAULT_REGULATORY_GUIDELINES = """
1.  **Identity Verification**: The document must be a government-issued photo ID (e.g., Passport, National ID, Driver's License).
2.  **Full Name Match**: The name on the document must exactly match the customer's registered name. For example, 'Alice Johnson' not 'A. Johnson'.
3.  **Expiry Date**: The document must not be expired. The expiration date must be clearly visible and in the future.
4.  **Date of Birth**: The date of birth must be present and match the customer's records.
5.  **Document Integrity**: The document should not show signs of tampering, alteration, or damage that obscures information.
6.  **Image Quality**: The photo on the ID must be clear and recognizable.
"""


class AppSettings(BaseSettings):
    # Persistence mirror
    PERSISTENCE_BACKEND: str = "inmemory"  # "inmemory" or "mongo"
    MONGO_DETAILS: str = "mongodb://mongo:27017"
    DB_NAME: str = "kyc_review_db"
    SUBMISSIONS_COLLECTION_NAME: str = "submissions"
    PERSISTENCE_MAX_WRITE_ATTEMPTS: int = 3  # per snapshot, before the mirror gives up on it

    # Kafka change feed; publishing is disabled when no brokers are configured
    KAFKA_BOOTSTRAP_SERVERS: Optional[str] = None
    SUBMISSION_EVENTS_TOPIC: str = "kyc_submission_events"

    # Observability
    LOG_LEVEL: str = "INFO"
    OTEL_EXPORTER_OTLP_TRACES_ENDPOINT: Optional[str] = None
    OTEL_EXPORTER_OTLP_METRICS_ENDPOINT: Optional[str] = None
    SERVICE_NAME_API: str = "kyc-review-api"

    # Collaborator services
    STORAGE_SERVICE_URL: Optional[str] = None  # e.g. http://localhost:8090/api/v1
    COMPLIANCE_SERVICE_URL: Optional[str] = None
    DEFAULT_HTTP_TIMEOUT: float = 10.0
    REGULATORY_GUIDELINES: str = DEFAULT_REGULATORY_GUIDELINES

    # Review policy
    MIN_AMENDMENT_REASON_LENGTH: int = 5
    MIN_RESPONSE_COMMENT_LENGTH: int = 10
    MIN_CUSTOMER_NAME_LENGTH: int = 3
    MAX_UPLOAD_SIZE_BYTES: int = 5 * 1024 * 1024
    ACCEPTED_UPLOAD_FORMATS: List[str] = ["image/jpeg", "image/png", "application/pdf"]

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

# Instantiate settings to be imported by other modules
settings = AppSettings()

logger = logging.getLogger(__name__)
logger.info("Application settings module initialized.")
