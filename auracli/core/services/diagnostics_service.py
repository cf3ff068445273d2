"""Diagnostics use cases: load a photo, analyze it, generate a morph image.

Every failure of the inference path (exhausted retries, undecodable payload,
unexpected envelope) is reported to callers as a single ``ServiceBusyError``;
the underlying error is logged and kept as ``__cause__``.
"""

import base64
import logging
import mimetypes
from typing import Optional

from auracli.domain.interfaces.filesystem import FileSystem
from auracli.domain.models.common import FilePath, MimeType
from auracli.domain.models.diagnostics import AnalysisResult, EncodedImage, MorphImage
from auracli.domain.models.errors import DecodingError, MaxRetryError, ServiceBusyError
from auracli.infrastructure.ai.gemini_client import (
    DEFAULT_MORPH_MONTHS, DEFAULT_MORPH_PROTOCOL, GeminiClient,
)

logger = logging.getLogger(__name__)

DEFAULT_IMAGE_MIME = MimeType("image/png")
BUSY_MESSAGE = "AI Engine Busy."


def guess_image_mime(file_path: str) -> MimeType:
    mime, _ = mimetypes.guess_type(file_path)
    if mime and mime.startswith("image/"):
        return MimeType(mime)
    return DEFAULT_IMAGE_MIME


class DiagnosticsService:
    """Runs photo diagnostics against the inference endpoint."""

    def __init__(self, inference: GeminiClient, file_system: FileSystem):
        self.inference = inference
        self.file_system = file_system

    async def load_photo(self, file_path: FilePath) -> EncodedImage:
        content = await self.file_system.read_bytes(file_path)
        if not content:
            raise ValueError(f"Photo is empty: {file_path}")
        return EncodedImage(
            data_b64=base64.b64encode(content).decode("ascii"),
            mime_type=guess_image_mime(str(file_path)),
        )

    async def analyze(self, file_path: FilePath) -> AnalysisResult:
        image = await self.load_photo(file_path)
        try:
            return await self.inference.analyze_image(image)
        except (MaxRetryError, DecodingError) as e:
            logger.error(f"Analysis failed for {file_path}: {type(e).__name__}: {e}")
            raise ServiceBusyError(BUSY_MESSAGE, detail=str(e)) from e

    async def morph(
        self,
        file_path: FilePath,
        output_path: FilePath,
        months: int = DEFAULT_MORPH_MONTHS,
        protocol: str = DEFAULT_MORPH_PROTOCOL,
        patient_name: Optional[str] = None,
    ) -> MorphImage:
        """Writes a simulated image of the photo ``months`` into ``protocol`` to ``output_path``."""
        image = await self.load_photo(file_path)
        try:
            morph = await self.inference.generate_morph(image, months, protocol, patient_name)
        except (MaxRetryError, DecodingError) as e:
            logger.error(f"Morph generation failed for {file_path}: {type(e).__name__}: {e}")
            raise ServiceBusyError(BUSY_MESSAGE, detail=str(e)) from e
        await self.file_system.write_bytes(output_path, morph.data)
        logger.info(f"Morph image ({morph.mime_type}, {len(morph.data)} bytes) written to {output_path}")
        return morph
