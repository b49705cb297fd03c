import pytest
from httpx import AsyncClient

from kyc_review_service.app import config as app_config
from kyc_review_service.app.models import DocumentType
from kyc_review_service.app.service.exceptions import ComplianceCheckError
from kyc_review_service.app.service.interfaces.compliance_checker import ComplianceCheckResult, KycSummaryResult

from conftest import BRANCH_MANAGER, OFFICER, SUPERVISOR, make_submission


@pytest.fixture
def submission_with_details(store):
    return store.add(make_submission(DocumentType.PASSPORT, details="Passport X1234567, expires 2031-04-02"))

@pytest.mark.asyncio
async def test_compliance_check_api_defaults_to_submission_details(
    test_app_client: AsyncClient, submission_with_details, compliance_checker
):
    compliance_checker.check_compliance.return_value = ComplianceCheckResult(
        compliance_summary="Passport is valid and matches the application.", is_compliant=True
    )

    response = await test_app_client.post(
        f"/api/v1/submissions/{submission_with_details.id}/compliance-check", headers=OFFICER
    )

    assert response.status_code == 200
    assert response.json() == {"compliance_summary": "Passport is valid and matches the application.", "is_compliant": True}
    compliance_checker.check_compliance.assert_awaited_once_with(
        "Passport X1234567, expires 2031-04-02", app_config.settings.REGULATORY_GUIDELINES
    )

@pytest.mark.asyncio
async def test_compliance_check_api_with_explicit_text(test_app_client: AsyncClient, submission_with_details, compliance_checker):
    compliance_checker.check_compliance.return_value = ComplianceCheckResult(compliance_summary="Missing address.", is_compliant=False)

    response = await test_app_client.post(
        f"/api/v1/submissions/{submission_with_details.id}/compliance-check",
        headers=SUPERVISOR,
        json={"document_text": "Name only", "regulatory_guidelines": "Address is mandatory"},
    )

    assert response.status_code == 200
    assert response.json()["is_compliant"] is False
    compliance_checker.check_compliance.assert_awaited_once_with("Name only", "Address is mandatory")

@pytest.mark.asyncio
async def test_compliance_check_api_without_text(test_app_client: AsyncClient, national_id_submission, compliance_checker):
    response = await test_app_client.post(
        f"/api/v1/submissions/{national_id_submission.id}/compliance-check", headers=OFFICER
    )
    assert response.status_code == 422
    compliance_checker.check_compliance.assert_not_called()

@pytest.mark.asyncio
async def test_compliance_check_api_service_failure(test_app_client: AsyncClient, submission_with_details, compliance_checker):
    compliance_checker.check_compliance.side_effect = ComplianceCheckError("Compliance service failed with status 500.")
    response = await test_app_client.post(
        f"/api/v1/submissions/{submission_with_details.id}/compliance-check", headers=OFFICER
    )
    assert response.status_code == 502

@pytest.mark.asyncio
async def test_compliance_check_api_forbidden_for_branch(test_app_client: AsyncClient, submission_with_details):
    response = await test_app_client.post(
        f"/api/v1/submissions/{submission_with_details.id}/compliance-check", headers=BRANCH_MANAGER
    )
    assert response.status_code == 403

@pytest.mark.asyncio
async def test_summary_api(test_app_client: AsyncClient, submission_with_details, compliance_checker):
    compliance_checker.summarize.return_value = KycSummaryResult(summary="Retail customer, passport verified.")

    response = await test_app_client.post(f"/api/v1/submissions/{submission_with_details.id}/summary", headers=SUPERVISOR)

    assert response.status_code == 200
    assert response.json() == {"summary": "Retail customer, passport verified."}
    documents, case_details = compliance_checker.summarize.await_args.args
    assert "Passport v1" in documents
    assert "Customer: Alice Johnson" in case_details

@pytest.mark.asyncio
async def test_summary_api_unknown_submission(test_app_client: AsyncClient):
    response = await test_app_client.post("/api/v1/submissions/unknown-id/summary", headers=SUPERVISOR)
    assert response.status_code == 404
