"""
State models shared by the consultation workflow and its persistence sinks.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict
from uuid import uuid4

from pydantic import BaseModel, ConfigDict


class UserRole(str, Enum):
    CONTRACTOR = "Contractor"
    LANDLORD = "Landlord (property owner)"
    TENANT = "Tenant (occupant)"
    CLIENT = "Client (owner-occupier)"


class IssueType(str, Enum):
    LEAK = "Leak"
    CLOG = "Clog/backflow"
    ODOR = "Odor"
    FROZEN = "Frozen pipe"
    OTHER = "Other construction defect"


class FormValidationError(ValueError):
    """Raised when the submitted form is missing required input."""


@dataclass(frozen=True, slots=True)
class DisputeForm:
    """Snapshot of what the user typed into the consultation form."""

    role: str = UserRole.TENANT.value
    issue_type: str = IssueType.CLOG.value
    symptoms: str = ""
    history: str = ""
    other_party_info: str = ""
    phone: str = ""
    email: str = ""

    def validate(self) -> None:
        if not self.symptoms.strip():
            raise FormValidationError("Please describe the symptoms and current situation.")
        if not self.phone.strip() and not self.email.strip():
            raise FormValidationError("Either a phone number or an email address is required.")

    def to_dict(self) -> Dict[str, str]:
        return {
            "role": self.role,
            "issueType": self.issue_type,
            "symptoms": self.symptoms,
            "history": self.history,
            "otherPartyInfo": self.other_party_info,
            "phone": self.phone,
            "email": self.email,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DisputeForm":
        if not isinstance(data, dict):
            raise TypeError(f"formData must be an object, got {type(data).__name__}")
        return cls(
            role=str(data.get("role", "")),
            issue_type=str(data.get("issueType", "")),
            symptoms=str(data.get("symptoms", "")),
            history=str(data.get("history", "")),
            other_party_info=str(data.get("otherPartyInfo", "")),
            phone=str(data.get("phone", "")),
            email=str(data.get("email", "")),
        )


class AnalysisResult(BaseModel):
    """Structured opinion returned by the analysis model."""

    model_config = ConfigDict(frozen=True)

    isConsultationPossible: bool
    refusalReason: str = ""
    coreIssue: str = ""
    technicalEstimation: str = ""
    responsibilityJudgment: str = ""
    legalBasis: str = ""
    supremeCourtPrecedent: str = ""
    recommendedScript: str = ""
    suhoonSolution: str = ""


@dataclass(frozen=True, slots=True)
class ConsultationRecord:
    """One persisted consultation: the form and result captured together."""

    timestamp: int
    form_data: DisputeForm
    result: AnalysisResult
    id: str = field(default_factory=lambda: str(uuid4()))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "timestamp": self.timestamp,
            "formData": self.form_data.to_dict(),
            "result": self.result.model_dump(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ConsultationRecord":
        if not isinstance(data, dict):
            raise TypeError(f"record must be an object, got {type(data).__name__}")
        return cls(
            id=str(data["id"]),
            timestamp=int(data["timestamp"]),
            form_data=DisputeForm.from_dict(data["formData"]),
            result=AnalysisResult.model_validate(data["result"]),
        )
