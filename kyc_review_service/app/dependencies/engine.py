# Dependency providers wiring the review engine for the API layer
import logging
from typing import Optional

from fastapi import Depends, Header, HTTPException

from kyc_review_service.app.models import Role
from kyc_review_service.app.service.amendments import AmendmentManager
from kyc_review_service.app.service.intake import SubmissionIntake
from kyc_review_service.app.service.interfaces.document_storage import AbstractDocumentStorage
from kyc_review_service.app.service.previews import PreviewResourceManager
from kyc_review_service.app.service.roles import parse_role
from kyc_review_service.app.service.store import SubmissionStore
from kyc_review_service.app.service.workflow import WorkflowEngine
from kyc_review_service.infrastructure.storage_client import get_document_storage

logger = logging.getLogger(__name__)

# One store and one preview manager per process; main.py attaches the persistence
# mirror and the Kafka publisher to this same store at startup.
_submission_store: Optional[SubmissionStore] = None
_preview_manager: Optional[PreviewResourceManager] = None

def get_submission_store() -> SubmissionStore:
    global _submission_store
    if _submission_store is None:
        _submission_store = SubmissionStore()
        logger.info("Submission store created.")
    return _submission_store

def get_preview_manager() -> PreviewResourceManager:
    global _preview_manager
    if _preview_manager is None:
        _preview_manager = PreviewResourceManager()
    return _preview_manager

def reset_engine() -> None:
    global _submission_store, _preview_manager
    _submission_store = None
    _preview_manager = None

def get_workflow_engine(store: SubmissionStore = Depends(get_submission_store)) -> WorkflowEngine:
    return WorkflowEngine(store)

def get_amendment_manager(
    store: SubmissionStore = Depends(get_submission_store),
    workflow_engine: WorkflowEngine = Depends(get_workflow_engine),
    storage: AbstractDocumentStorage = Depends(get_document_storage),
    previews: PreviewResourceManager = Depends(get_preview_manager),
) -> AmendmentManager:
    return AmendmentManager(store, workflow_engine, storage, previews)

def get_submission_intake(
    store: SubmissionStore = Depends(get_submission_store),
    storage: AbstractDocumentStorage = Depends(get_document_storage),
    previews: PreviewResourceManager = Depends(get_preview_manager),
) -> SubmissionIntake:
    return SubmissionIntake(store, storage, previews)

def get_current_role(x_user_role: Optional[str] = Header(default=None)) -> Role:
    role = parse_role(x_user_role)
    if role is None:
        raise HTTPException(status_code=401, detail="Missing or unknown X-User-Role header.")
    return role

def get_current_actor(x_user_id: Optional[str] = Header(default=None)) -> Optional[str]:
    return x_user_id
