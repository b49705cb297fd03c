# Unit Tests for the compliance service client
import httpx
import pytest
from unittest.mock import AsyncMock

from kyc_review_service.app.service.exceptions import ComplianceCheckError
from kyc_review_service.app.service.interfaces.compliance_checker import ComplianceCheckResult, KycSummaryResult
from kyc_review_service.infrastructure.compliance_client import ComplianceServiceClient

BASE_URL = "http://compliance.test"


def _response(status_code: int, path: str, **kwargs) -> httpx.Response:
    return httpx.Response(status_code, request=httpx.Request("POST", f"{BASE_URL}{path}"), **kwargs)


@pytest.fixture
def mock_http_client():
    return AsyncMock(spec=httpx.AsyncClient)


@pytest.mark.asyncio
async def test_check_compliance_success(mock_http_client):
    mock_http_client.post.return_value = _response(
        200, "/compliance-check", json={"compliance_summary": "Proof of address is outdated.", "is_compliant": False}
    )
    client = ComplianceServiceClient(mock_http_client, base_url=BASE_URL)

    result = await client.check_compliance("Utility bill dated 2020", "Address proof within 3 months")

    assert result == ComplianceCheckResult(compliance_summary="Proof of address is outdated.", is_compliant=False)
    mock_http_client.post.assert_awaited_once_with(
        f"{BASE_URL}/compliance-check",
        json={"document_text": "Utility bill dated 2020", "regulatory_guidelines": "Address proof within 3 months"},
    )


@pytest.mark.asyncio
async def test_summarize_success(mock_http_client):
    mock_http_client.post.return_value = _response(200, "/summaries", json={"summary": "Low risk retail customer."})
    client = ComplianceServiceClient(mock_http_client, base_url=BASE_URL)

    result = await client.summarize("Passport (v1)", "Customer: Alice Johnson")

    assert result == KycSummaryResult(summary="Low risk retail customer.")
    assert mock_http_client.post.call_args.kwargs["json"] == {
        "documents": "Passport (v1)",
        "case_details": "Customer: Alice Johnson",
    }


@pytest.mark.asyncio
async def test_http_status_error_is_wrapped(mock_http_client):
    mock_http_client.post.return_value = _response(500, "/compliance-check", text="model overloaded")
    with pytest.raises(ComplianceCheckError, match="status 500"):
        await ComplianceServiceClient(mock_http_client, base_url=BASE_URL).check_compliance("text", "rules")


@pytest.mark.asyncio
async def test_request_error_is_wrapped(mock_http_client):
    mock_http_client.post.side_effect = httpx.ConnectTimeout("timed out")
    with pytest.raises(ComplianceCheckError, match="unreachable"):
        await ComplianceServiceClient(mock_http_client, base_url=BASE_URL).summarize("docs", "case")


@pytest.mark.asyncio
async def test_malformed_response_is_wrapped(mock_http_client):
    mock_http_client.post.return_value = _response(200, "/compliance-check", json={"unexpected": True})
    with pytest.raises(ComplianceCheckError, match="malformed"):
        await ComplianceServiceClient(mock_http_client, base_url=BASE_URL).check_compliance("text", "rules")


@pytest.mark.asyncio
async def test_unconfigured_service_raises(mock_http_client, monkeypatch):
    from kyc_review_service.app import config as app_config
    monkeypatch.setattr(app_config.settings, "COMPLIANCE_SERVICE_URL", None)
    with pytest.raises(ComplianceCheckError, match="not configured"):
        await ComplianceServiceClient(mock_http_client).check_compliance("text", "rules")
    mock_http_client.post.assert_not_called()
