"""Lead entity: a prospective client produced by a completed analysis."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .common import DocumentId, UserId

DEFAULT_LEAD_STATUS = "new"


@dataclass
class Lead:
    """A sales lead as stored in the document store."""
    name: str
    email: str
    aura_score: Optional[int]
    est_value: str  # formatted, e.g. '$12,400'
    full_roadmap: List[Dict[str, Any]] = field(default_factory=list)
    user_id: Optional[UserId] = None
    status: str = DEFAULT_LEAD_STATUS
    touches: int = 0
    created_at: Optional[float] = None  # epoch seconds, assigned by the store
    id: Optional[DocumentId] = None

    def to_document(self) -> Dict[str, Any]:
        """Serialises to the camelCase document layout (without id/createdAt)."""
        return {
            "name": self.name,
            "email": self.email,
            "auraScore": self.aura_score,
            "estValue": self.est_value,
            "fullRoadmap": list(self.full_roadmap),
            "userId": self.user_id,
            "status": self.status,
            "touches": self.touches,
        }

    @classmethod
    def from_document(cls, doc_id: str, data: Dict[str, Any]) -> "Lead":
        return cls(
            id=DocumentId(doc_id),
            name=str(data.get("name", "")),
            email=str(data.get("email", "")),
            aura_score=data.get("auraScore"),
            est_value=str(data.get("estValue", "$0")),
            full_roadmap=list(data.get("fullRoadmap") or []),
            user_id=data.get("userId"),
            status=str(data.get("status", DEFAULT_LEAD_STATUS)),
            touches=int(data.get("touches") or 0),
            created_at=data.get("createdAt"),
        )
