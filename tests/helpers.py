from __future__ import annotations

import asyncio
import json
import threading
from typing import List, Optional

from consultation_state import AnalysisResult, ConsultationRecord, DisputeForm
from persistence.storage_backend import MemoryStorageBackend, WriteStatus


def make_form(**overrides: str) -> DisputeForm:
    fields = {
        "role": "Tenant (occupant)",
        "issue_type": "Clog/backflow",
        "symptoms": "Kitchen drain backs up three days after the contractor cleared it.",
        "history": "Moved in two months ago.",
        "other_party_info": "Landlord says it is my fault.",
        "phone": "010-1234-5678",
        "email": "",
    }
    fields.update(overrides)
    return DisputeForm(**fields)


def make_result(**overrides) -> AnalysisResult:
    fields = {
        "isConsultationPossible": True,
        "refusalReason": "",
        "coreIssue": "Drain clogged again three days after repair",
        "technicalEstimation": "Scale build-up left in the main stack",
        "responsibilityJudgment": "Contractor warranty applies",
        "legalBasis": "Civil Act art. 667",
        "supremeCourtPrecedent": "2012Da12345",
        "recommendedScript": "Please re-do the work under warranty.",
        "suhoonSolution": "Book an endoscope inspection.",
    }
    fields.update(overrides)
    return AnalysisResult(**fields)


def make_records(count: int, *, start: int = 1_000) -> List[ConsultationRecord]:
    return [
        ConsultationRecord(
            id=f"rec-{idx:03d}",
            timestamp=start + idx,
            form_data=make_form(symptoms=f"symptom {idx}"),
            result=make_result(coreIssue=f"issue {idx}"),
        )
        for idx in range(count)
    ]


def encode(records: List[ConsultationRecord]) -> bytes:
    return json.dumps([record.to_dict() for record in records]).encode("utf-8")


class RecordQuotaBackend(MemoryStorageBackend):
    """Rejects any write holding more than `max_records` records."""

    def __init__(self, *, max_records: Optional[int] = None, available: bool = True) -> None:
        super().__init__(available=available)
        self.max_records = max_records
        self.written_counts: List[int] = []

    def write_all(self, payload: bytes) -> WriteStatus:
        count = len(json.loads(payload.decode("utf-8")))
        self.written_counts.append(count)
        if self.max_records is not None and count > self.max_records:
            self.write_attempts += 1
            return WriteStatus.QUOTA_EXCEEDED
        return super().write_all(payload)


class GatedSync:
    """Remote sink stand-in that holds every send until `gate` is set."""

    def __init__(self, gate: threading.Event, error: Optional[BaseException] = None) -> None:
        self.gate = gate
        self.error = error
        self.sent = 0

    async def send(self, form_data: DisputeForm, result: AnalysisResult) -> None:
        await asyncio.to_thread(self.gate.wait, 5)
        if self.error is not None:
            raise self.error
        self.sent += 1
