# Closed vocabularies of the review domain
from enum import Enum


class SubmissionStatus(str, Enum):
    PENDING = "Pending"
    AMENDMENT = "Amendment"  # legacy label, treated like ACTION_REQUIRED
    ACTION_REQUIRED = "Action Required"
    AMENDED_PENDING_REVIEW = "Amended - Pending Review"
    ESCALATED = "Escalated"
    APPROVED = "Approved"
    REJECTED = "Rejected"


# Statuses in which pending_amendments must be non-empty, and vice versa
AMENDMENT_STATUSES = frozenset({SubmissionStatus.AMENDMENT, SubmissionStatus.ACTION_REQUIRED})
TERMINAL_STATUSES = frozenset({SubmissionStatus.APPROVED, SubmissionStatus.REJECTED})


class WorkflowEvent(str, Enum):
    SUBMIT = "submit"
    APPROVE = "approve"
    REJECT = "reject"
    ESCALATE = "escalate"
    REQUEST_AMENDMENT = "request_amendment"
    RESOLVE_AMENDMENT = "resolve_amendment"


class AmendmentRequestType(str, Enum):
    ADD_NEW = "ADD_NEW"
    REPLACE_EXISTING = "REPLACE_EXISTING"
    REQUEST_INFO = "REQUEST_INFO"  # answered with a comment only


class AmendmentRequestStatus(str, Enum):
    PENDING = "PENDING"
    RESOLVED = "RESOLVED"


class DocumentType(str, Enum):
    NATIONAL_ID = "National ID"
    PASSPORT = "Passport"
    DRIVERS_LICENSE = "Driver's License"
    UTILITY_BILL = "Utility Bill"
    BUSINESS_LICENSE = "Business License"
    MEMORANDUM_OF_ASSOCIATION = "Memorandum of Association"
    APPLICATION_FORM = "Application Form"
    SUPPORTING_DOCUMENT = "Supporting Document"


class Role(str, Enum):
    OFFICER = "Officer"
    SUPERVISOR = "Supervisor"
    ADMIN = "Admin"
    BRANCH_MANAGER = "Branch Manager"


# Labels a branch may choose when answering; any other free-form label is accepted too
RESPONSE_TYPE_FILE_SUBMITTED = "File Submitted"
RESPONSE_TYPE_COMMENT_ONLY = "Comment Only"
RESPONSE_TYPES = ["Fully Amended", "Partially Amended", "Unable to Amend"]
