"""Client for the generative-AI inference endpoint.

Builds ``generateContent`` requests for the diagnostic and the morph image,
sends them exclusively through the ``ResilientRequestExecutor`` and unpacks the
vendor envelopes. Envelope parsing happens here, after the executor returned a
successful raw payload, so parse failures are never retried.
"""

import base64
import binascii
import json
import logging
import re
from typing import Any, Dict, Optional

from auracli.domain.models.common import MimeType
from auracli.domain.models.diagnostics import AnalysisResult, EncodedImage, MorphImage
from auracli.domain.models.errors import AnalysisParseError, ConfigurationError
from auracli.infrastructure.resilience.api_retry import ResilientRequestExecutor

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"
DEFAULT_ANALYSIS_MODEL = "gemini-2.5-flash-preview-09-2025"
DEFAULT_MORPH_MODEL = "gemini-2.5-flash-image-preview"

SYSTEM_PROMPT = (
    'MedSpa Diagnostics v5.0. Output STRICT JSON. { "auraScore": 750, "faceType": "", '
    '"clinicalRoadmap": [{"name": "", "benefit": "", "rationale": "", "estimatedValue": "$3,200"}], '
    '"halos": [] }'
)
ANALYSIS_INSTRUCTION = "Full diagnostic. 2026 Pricing."
DEFAULT_MORPH_MONTHS = 6
DEFAULT_MORPH_PROTOCOL = "Signature Rejuvenation"
MORPH_INSTRUCTION = (
    "Simulate this face {months} month(s) into the '{protocol}' treatment protocol. "
    "Keep identity, pose and lighting. Return the edited image."
)

# Greedy: from the first '{' to the last '}' across newlines
_JSON_SPAN = re.compile(r"\{[\s\S]*\}")


class GeminiClient:
    """Talks to the inference endpoint through the request executor."""

    def __init__(
        self,
        executor: ResilientRequestExecutor,
        api_key: Optional[str],
        base_url: str = DEFAULT_BASE_URL,
        analysis_model: str = DEFAULT_ANALYSIS_MODEL,
        morph_model: str = DEFAULT_MORPH_MODEL,
        max_retries: Optional[int] = None,
        initial_backoff_ms: Optional[float] = None,
    ):
        self.executor = executor
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.analysis_model = analysis_model
        self.morph_model = morph_model
        self.max_retries = max_retries
        self.initial_backoff_ms = initial_backoff_ms
        logger.info(f"GeminiClient initialized: analysis_model={analysis_model}, morph_model={morph_model}")

    def _endpoint(self, model: str) -> str:
        if not self.api_key:
            raise ConfigurationError("AI Key Missing. Configure GEMINI_API_KEY.")
        return f"{self.base_url}/models/{model}:generateContent?key={self.api_key}"

    async def _generate(self, model: str, body: Dict[str, Any]) -> Any:
        return await self.executor.execute(
            self._endpoint(model),
            {"method": "POST", "headers": {"Content-Type": "application/json"}, "body": body},
            max_retries=self.max_retries,
            initial_backoff_ms=self.initial_backoff_ms,
        )

    async def analyze_image(self, image: EncodedImage) -> AnalysisResult:
        """Requests a cosmetic assessment for the photo.

        Raises:
            ConfigurationError: If no API key is configured.
            MaxRetryError / DecodingError: From the executor.
            AnalysisParseError: If the envelope has no parsable nested document.
        """
        body = {
            "contents": [{"parts": [
                {"text": ANALYSIS_INSTRUCTION},
                {"inlineData": {"mimeType": image.mime_type, "data": image.data_b64}},
            ]}],
            "systemInstruction": {"parts": [{"text": SYSTEM_PROMPT}]},
            "generationConfig": {"responseMimeType": "application/json"},
        }
        logger.info(f"Requesting analysis from model {self.analysis_model}")
        payload = await self._generate(self.analysis_model, body)
        document = extract_nested_document(payload)
        result = AnalysisResult.from_payload(document)
        logger.info(
            f"Analysis received: auraScore={result.aura_score}, "
            f"{len(result.clinical_roadmap)} roadmap item(s)"
        )
        return result

    async def generate_morph(
        self,
        image: EncodedImage,
        months: int = DEFAULT_MORPH_MONTHS,
        protocol: str = DEFAULT_MORPH_PROTOCOL,
        patient_name: Optional[str] = None,
    ) -> MorphImage:
        """Requests a simulated image of the face ``months`` into ``protocol``.

        Raises:
            ValueError: If ``months`` is below 1 or ``protocol`` is blank.
        """
        if months < 1:
            raise ValueError(f"Morph horizon must be at least 1 month, got {months}")
        protocol = (protocol or "").strip()
        if not protocol:
            raise ValueError("Treatment protocol is required.")
        instruction = MORPH_INSTRUCTION.format(months=months, protocol=protocol)
        patient_name = (patient_name or "").strip()
        if patient_name:
            instruction += f" Patient: {patient_name}."
        body = {
            "contents": [{"parts": [
                {"text": instruction},
                {"inlineData": {"mimeType": image.mime_type, "data": image.data_b64}},
            ]}],
            "generationConfig": {"responseModalities": ["TEXT", "IMAGE"]},
        }
        logger.info(f"Requesting morph image from model {self.morph_model} ({months} month(s), '{protocol}')")
        payload = await self._generate(self.morph_model, body)
        return extract_inline_image(payload)


def _first_candidate_parts(payload: Any) -> list:
    try:
        parts = payload["candidates"][0]["content"]["parts"]
    except (KeyError, IndexError, TypeError):
        return []
    return parts if isinstance(parts, list) else []


def extract_nested_document(payload: Any) -> Dict[str, Any]:
    """Pulls the JSON document embedded as text in the first candidate part."""
    parts = _first_candidate_parts(payload)
    text = parts[0].get("text") if parts and isinstance(parts[0], dict) else None
    if not isinstance(text, str):
        raise AnalysisParseError("Inference payload carries no text part")

    match = _JSON_SPAN.search(text)
    if match is None:
        raise AnalysisParseError("No JSON object found in inference text")
    try:
        document = json.loads(match.group(0))
    except ValueError as e:
        raise AnalysisParseError(f"Embedded JSON is malformed: {e}") from e
    if not isinstance(document, dict):
        raise AnalysisParseError("Embedded JSON is not an object")
    return document


def extract_inline_image(payload: Any) -> MorphImage:
    """Finds the first inline image in either supported envelope."""
    for part in _first_candidate_parts(payload):
        inline = part.get("inlineData") if isinstance(part, dict) else None
        if isinstance(inline, dict) and inline.get("data"):
            return MorphImage(
                data=_b64decode(inline["data"]),
                mime_type=MimeType(inline.get("mimeType") or "image/png"),
            )

    predictions = payload.get("predictions") if isinstance(payload, dict) else None
    if isinstance(predictions, list) and predictions and isinstance(predictions[0], dict):
        encoded = predictions[0].get("bytesBase64Encoded")
        if encoded:
            return MorphImage(
                data=_b64decode(encoded),
                mime_type=MimeType(predictions[0].get("mimeType") or "image/png"),
            )

    raise AnalysisParseError("Inference payload carries no image")


def _b64decode(data: str) -> bytes:
    try:
        return base64.b64decode(data, validate=True)
    except (binascii.Error, ValueError) as e:
        raise AnalysisParseError(f"Image payload is not valid base64: {e}") from e
