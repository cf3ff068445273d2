"""Domain models for the cosmetic assessment returned by the inference endpoint."""

import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .common import MimeType

_NON_DIGITS = re.compile(r"[^0-9]")


@dataclass(frozen=True)
class EncodedImage:
    """A photo ready to be sent inline: base64 text plus its MIME type."""
    data_b64: str
    mime_type: MimeType = MimeType("image/png")


@dataclass(frozen=True)
class MorphImage:
    """A decoded image returned by the morph endpoint."""
    data: bytes
    mime_type: MimeType = MimeType("image/png")


@dataclass
class RoadmapItem:
    """One recommended treatment."""
    name: str = ""
    benefit: str = ""
    rationale: str = ""
    estimated_value: str = ""

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "RoadmapItem":
        return cls(
            name=str(payload.get("name", "")),
            benefit=str(payload.get("benefit", "")),
            rationale=str(payload.get("rationale", "")),
            estimated_value=str(payload.get("estimatedValue", "")),
        )

    def to_payload(self) -> Dict[str, str]:
        return {
            "name": self.name,
            "benefit": self.benefit,
            "rationale": self.rationale,
            "estimatedValue": self.estimated_value,
        }


@dataclass
class AnalysisResult:
    """Structured diagnostic extracted from the inference payload."""
    aura_score: Optional[int] = None
    face_type: str = ""
    clinical_roadmap: List[RoadmapItem] = field(default_factory=list)
    halos: List[Any] = field(default_factory=list)
    raw: Dict[str, Any] = field(default_factory=dict)  # the nested document as parsed

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "AnalysisResult":
        """Builds a result from the camelCase document the model produces.

        Missing keys fall back to empty values; a non-list roadmap is ignored.
        """
        roadmap_payload = payload.get("clinicalRoadmap") or []
        if not isinstance(roadmap_payload, list):
            roadmap_payload = []
        halos = payload.get("halos") or []
        return cls(
            aura_score=_coerce_score(payload.get("auraScore")),
            face_type=str(payload.get("faceType") or ""),
            clinical_roadmap=[
                RoadmapItem.from_payload(item) for item in roadmap_payload if isinstance(item, dict)
            ],
            halos=list(halos) if isinstance(halos, list) else [],
            raw=payload,
        )

    @property
    def total_potential(self) -> int:
        return total_potential(self.clinical_roadmap)


def _coerce_score(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def parse_estimated_value(value: Any) -> int:
    """'$3,200' -> 3200. Anything without digits counts as 0."""
    digits = _NON_DIGITS.sub("", str(value if value is not None else ""))
    return int(digits) if digits else 0


def total_potential(roadmap: List[RoadmapItem]) -> int:
    """Sums the estimated value of every roadmap item."""
    return sum(parse_estimated_value(item.estimated_value) for item in roadmap)


def format_currency(amount: int) -> str:
    return f"${amount:,}"
