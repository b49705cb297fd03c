from abc import ABC, abstractmethod

from pydantic import BaseModel


class ComplianceCheckResult(BaseModel):
    compliance_summary: str
    is_compliant: bool


class KycSummaryResult(BaseModel):
    summary: str


class AbstractComplianceChecker(ABC):
    @abstractmethod
    async def check_compliance(self, document_text: str, regulatory_guidelines: str) -> ComplianceCheckResult:
        """
        Screens extracted document text against the regulatory guidelines.
        Advisory only; raises ComplianceCheckError when the service fails.
        """
        pass

    @abstractmethod
    async def summarize(self, documents: str, case_details: str) -> KycSummaryResult:
        """Produces a short supervisor-facing summary of a case and its documents."""
        pass
