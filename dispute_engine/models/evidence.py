"""Evidence items uploaded by dispute parties."""

from datetime import datetime
from enum import Enum
from uuid import uuid4

from pydantic import BaseModel, Field

from .dispute import DisputeRole


class EvidenceType(str, Enum):
    IMAGE = "IMAGE"
    VIDEO = "VIDEO"
    CHAT_RECORD = "CHAT_RECORD"
    DOCUMENT = "DOCUMENT"
    OTHER = "OTHER"


class EvidenceValidity(str, Enum):
    VALID = "VALID"
    INVALID = "INVALID"
    DOUBTFUL = "DOUBTFUL"


class EvidenceItem(BaseModel):
    """Material submitted by one party, assessed for validity at most once."""

    id: str = Field(default_factory=lambda: str(uuid4()), description="Unique evidence ID")
    dispute_id: str = Field(description="Owning dispute")
    uploader_id: str = Field(description="Party who uploaded the item")
    uploader_role: DisputeRole = Field(description="Buyer/seller role of the uploader")
    evidence_type: EvidenceType = Field(default=EvidenceType.OTHER)
    file_url: str = Field(description="Reference into the external file store")
    file_name: str | None = Field(default=None)
    file_size: int | None = Field(default=None, ge=0)
    description: str = Field(default="")
    validity: EvidenceValidity | None = Field(default=None)
    validity_reason: str | None = Field(default=None)
    evaluated_by: str | None = Field(default=None)
    evaluated_at: datetime | None = Field(default=None)
    created_at: datetime = Field(default_factory=datetime.now)

    @property
    def is_evaluated(self) -> bool:
        return self.validity is not None

    def to_display_dict(self) -> dict:
        """Return a dictionary suitable for display."""
        return {
            "id": self.id,
            "type": self.evidence_type.value,
            "uploader_role": self.uploader_role.value,
            "file": self.file_name or self.file_url,
            "description": self.description,
            "validity": self.validity.value if self.validity else "UNEVALUATED",
            "validity_reason": self.validity_reason,
            "uploaded_at": self.created_at.strftime("%Y-%m-%d %H:%M"),
        }


class EvidenceSummary(BaseModel):
    """Counts of a dispute's evidence by side and by validity."""

    dispute_id: str
    total_count: int = 0
    buyer_count: int = 0
    seller_count: int = 0
    valid_count: int = 0
    invalid_count: int = 0
    doubtful_count: int = 0
    unevaluated_count: int = 0

    @classmethod
    def from_items(cls, dispute_id: str, items: list[EvidenceItem]) -> "EvidenceSummary":
        summary = cls(dispute_id=dispute_id, total_count=len(items))
        for item in items:
            if item.uploader_role is DisputeRole.BUYER:
                summary.buyer_count += 1
            else:
                summary.seller_count += 1

            if item.validity is EvidenceValidity.VALID:
                summary.valid_count += 1
            elif item.validity is EvidenceValidity.INVALID:
                summary.invalid_count += 1
            elif item.validity is EvidenceValidity.DOUBTFUL:
                summary.doubtful_count += 1
            else:
                summary.unevaluated_count += 1
        return summary
