# Client for the AI-assisted compliance pre-screen service
import logging
from typing import Any, Dict, Optional, Type, TypeVar

import httpx
from fastapi import Depends
from pydantic import BaseModel, ValidationError as PydanticValidationError

from kyc_review_service.app.config import settings
from kyc_review_service.app.dependencies.http_client import get_http_client
from kyc_review_service.app.service.exceptions import ComplianceCheckError
from kyc_review_service.app.service.interfaces.compliance_checker import (
    AbstractComplianceChecker,
    ComplianceCheckResult,
    KycSummaryResult,
)

logger = logging.getLogger(__name__)

ResultT = TypeVar("ResultT", bound=BaseModel)


class ComplianceServiceClient(AbstractComplianceChecker):
    def __init__(self, http_client: httpx.AsyncClient, base_url: Optional[str] = None):
        self.http_client = http_client
        self.base_url = base_url or settings.COMPLIANCE_SERVICE_URL

    async def check_compliance(self, document_text: str, regulatory_guidelines: str) -> ComplianceCheckResult:
        payload = {"document_text": document_text, "regulatory_guidelines": regulatory_guidelines}
        return await self._post("/compliance-check", payload, ComplianceCheckResult)

    async def summarize(self, documents: str, case_details: str) -> KycSummaryResult:
        payload = {"documents": documents, "case_details": case_details}
        return await self._post("/summaries", payload, KycSummaryResult)

    async def _post(self, path: str, payload: Dict[str, Any], result_type: Type[ResultT]) -> ResultT:
        if not self.base_url:
            logger.warning("COMPLIANCE_SERVICE_URL not set. Cannot run compliance pre-screen.")
            raise ComplianceCheckError("Compliance service is not configured.")

        request_url = f"{self.base_url}{path}"
        logger.debug(f"Calling compliance service: {request_url}")
        try:
            response = await self.http_client.post(request_url, json=payload)
            response.raise_for_status()
            return result_type.model_validate(response.json())
        except httpx.HTTPStatusError as e:
            logger.error(f"HTTP error calling compliance service: {e.response.status_code} - {e.response.text}", exc_info=True)
            raise ComplianceCheckError(f"Compliance service failed with status {e.response.status_code}.") from e
        except httpx.RequestError as e:
            logger.error(f"Request error calling compliance service: {e}", exc_info=True)
            raise ComplianceCheckError(f"Compliance service unreachable: {e}") from e
        except (ValueError, PydanticValidationError) as e:
            logger.error(f"Error parsing compliance service response: {e}", exc_info=True)
            raise ComplianceCheckError("Compliance service returned a malformed response.") from e

# DI provider for ComplianceServiceClient
def get_compliance_checker(
    http_client: httpx.AsyncClient = Depends(get_http_client)
) -> AbstractComplianceChecker:
    return ComplianceServiceClient(http_client=http_client)
