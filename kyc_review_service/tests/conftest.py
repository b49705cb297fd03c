# Shared fixtures for the KYC review service tests
import base64
from unittest.mock import AsyncMock

import httpx
import pytest
import pytest_asyncio

from kyc_review_service.app.dependencies.engine import get_preview_manager, get_submission_store
from kyc_review_service.app.main import app
from kyc_review_service.app.models import DocumentType, StagedFile, Submission
from kyc_review_service.app.service.amendments import AmendmentManager, AmendmentResponse, ResponseFile
from kyc_review_service.app.service.intake import IntakeFile, SubmissionIntake
from kyc_review_service.app.service.interfaces.compliance_checker import AbstractComplianceChecker
from kyc_review_service.app.service.previews import PreviewResourceManager
from kyc_review_service.app.service.revisions import DocumentUpload, materialize_batch
from kyc_review_service.app.service.store import SubmissionStore
from kyc_review_service.app.service.workflow import WorkflowEngine
from kyc_review_service.infrastructure.compliance_client import get_compliance_checker
from kyc_review_service.infrastructure.storage_client import InMemoryDocumentStorage, get_document_storage

PDF = "application/pdf"
JPEG = "image/jpeg"


def make_staged_file(name: str = "passport.pdf", content_type: str = PDF, data: bytes = b"%PDF-1.4 test") -> StagedFile:
    return StagedFile(file_name=name, content_type=content_type, data=data)


def make_submission(*document_types: DocumentType, **fields) -> Submission:
    """A Pending submission holding one v1 document per given type."""
    uploads = [
        DocumentUpload(
            document_type=document_type,
            file_name=f"{document_type.value.lower().replace(' ', '_')}.pdf",
            size=1024,
            format=PDF,
            url=f"memory://documents/seed/{index}",
        )
        for index, document_type in enumerate(document_types)
    ]
    fields.setdefault("customer_name", "Alice Johnson")
    fields.setdefault("branch", "Downtown")
    fields.setdefault("officer", "officer-1")
    return Submission(documents=tuple(materialize_batch((), uploads)), **fields)


@pytest.fixture
def store() -> SubmissionStore:
    return SubmissionStore()


@pytest.fixture
def previews() -> PreviewResourceManager:
    return PreviewResourceManager()


@pytest.fixture
def storage() -> InMemoryDocumentStorage:
    return InMemoryDocumentStorage()


@pytest.fixture
def workflow_engine(store) -> WorkflowEngine:
    return WorkflowEngine(store)


@pytest.fixture
def amendment_manager(store, workflow_engine, storage, previews) -> AmendmentManager:
    return AmendmentManager(store, workflow_engine, storage, previews)


@pytest.fixture
def intake(store, storage, previews) -> SubmissionIntake:
    return SubmissionIntake(store, storage, previews)


@pytest.fixture
def national_id_submission(store) -> Submission:
    return store.add(make_submission(DocumentType.NATIONAL_ID))


@pytest.fixture
def response_file(previews):
    """Builds a ResponseFile whose handle is allocated from the shared preview manager."""
    def _make(document_type: DocumentType, name: str = "upload.pdf", **kwargs) -> ResponseFile:
        handle = previews.create(make_staged_file(name))
        return ResponseFile(handle=handle, document_type=document_type.value, **kwargs)
    return _make


@pytest.fixture
def intake_file(previews):
    def _make(document_type: DocumentType, name: str = "upload.pdf", data: bytes = b"%PDF-1.4 test") -> IntakeFile:
        handle = previews.create(make_staged_file(name, data=data))
        return IntakeFile(handle=handle, document_type=document_type.value)
    return _make


def response(comment: str = "Uploaded a clearer copy of the document.", files=None, response_type=None) -> AmendmentResponse:
    return AmendmentResponse(response_comment=comment, files=files or [], response_type=response_type)


# --- API client ---
OFFICER = {"X-User-Role": "Officer", "X-User-Id": "officer-1"}
SUPERVISOR = {"X-User-Role": "Supervisor", "X-User-Id": "supervisor-1"}
BRANCH_MANAGER = {"X-User-Role": "Branch Manager", "X-User-Id": "branch-1"}


def upload_json(document_type: DocumentType, name: str = "upload.pdf", content_type: str = PDF,
                data: bytes = b"%PDF-1.4 test", **fields) -> dict:
    """A FileUpload body entry with base64 content."""
    return {
        "file_name": name,
        "content_type": content_type,
        "content": base64.b64encode(data).decode("ascii"),
        "document_type": document_type.value,
        **fields,
    }


@pytest.fixture
def compliance_checker():
    return AsyncMock(spec=AbstractComplianceChecker)


@pytest_asyncio.fixture
async def test_app_client(store, previews, storage, compliance_checker):
    """AsyncClient bound to the app with the engine collaborators swapped for test instances."""
    app.dependency_overrides[get_submission_store] = lambda: store
    app.dependency_overrides[get_preview_manager] = lambda: previews
    app.dependency_overrides[get_document_storage] = lambda: storage
    app.dependency_overrides[get_compliance_checker] = lambda: compliance_checker
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client
    app.dependency_overrides.clear()
