import asyncio
import io
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Protocol, Union

import httpx
import pytesseract
from PIL import Image, UnidentifiedImageError
from loguru import logger

from app.core.config import settings
from app.core.exceptions import ExtractionFailure
from app.services.kyc.field_matcher import match_fields

_extractor: "DocumentTextExtractor | None" = None


class TextExtractor(Protocol):
    async def extract(self, locator: str) -> str:
        ...


@dataclass(frozen=True)
class OcrEvidence:
    """What OCR could read from the identity document"""
    candidate_id: Optional[str]
    candidate_name: Optional[str]


@dataclass(frozen=True)
class OcrUnavailable:
    """The OCR engine produced nothing usable; no evidence either way"""
    reason: str


OcrResult = Union[OcrEvidence, OcrUnavailable]


class DocumentTextExtractor:
    """Tesseract-backed text extraction for remote or local images"""

    def __init__(self, language: str = "eng", timeout: float = 20.0, tesseract_cmd: Optional[str] = None):
        self.language = language
        self.timeout = timeout
        if tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = tesseract_cmd

    async def _load(self, locator: str) -> bytes:
        if locator.startswith(("http://", "https://")):
            try:
                async with httpx.AsyncClient(timeout=self.timeout, follow_redirects=True) as client:
                    response = await client.get(locator)
                    response.raise_for_status()
                    return response.content
            except httpx.HTTPError as e:
                raise ExtractionFailure(locator, f"failed to fetch image: {e}") from e

        path = Path(locator).expanduser().resolve()
        try:
            return await asyncio.to_thread(path.read_bytes)
        except OSError as e:
            raise ExtractionFailure(locator, f"failed to read image: {e}") from e

    def _recognize(self, data: bytes) -> str:
        with Image.open(io.BytesIO(data)) as image:
            return pytesseract.image_to_string(image.convert("RGB"), lang=self.language, timeout=self.timeout)

    async def extract(self, locator: str) -> str:
        data = await self._load(locator)
        try:
            text = await asyncio.wait_for(asyncio.to_thread(self._recognize, data), timeout=self.timeout + 1)
        except asyncio.TimeoutError as e:
            raise ExtractionFailure(locator, "OCR timed out") from e
        except UnidentifiedImageError as e:
            raise ExtractionFailure(locator, "not a readable image") from e
        except (pytesseract.TesseractError, RuntimeError, OSError) as e:
            # pytesseract raises RuntimeError on its own timeout and
            # TesseractNotFoundError (an OSError) when the binary is missing
            raise ExtractionFailure(locator, str(e)) from e

        logger.debug(f"OCR read {len(text)} characters from {locator}")
        return text


class DocumentEvidenceService:
    """
    Turns identity-document images into OCR evidence.

    Extraction problems never propagate: they collapse into OcrUnavailable so
    the caller can branch on the result type.
    """

    def __init__(self, extractor: Optional[TextExtractor]):
        self.extractor = extractor

    async def collect(self, *locators: str) -> OcrResult:
        if self.extractor is None:
            return OcrUnavailable("OCR is disabled")

        texts: list[str] = []
        failures: list[str] = []
        for locator in locators:
            try:
                texts.append(await self.extractor.extract(locator))
            except ExtractionFailure as e:
                logger.warning(f"OCR unavailable for {e.locator}: {e.reason}")
                failures.append(e.reason)

        if not texts:
            return OcrUnavailable("; ".join(failures))

        match = match_fields("\n".join(texts))
        return OcrEvidence(candidate_id=match.candidate_id, candidate_name=match.candidate_name)


def get_text_extractor() -> Optional[DocumentTextExtractor]:
    """
    Lazy singleton; None when OCR is switched off in settings.
    """
    global _extractor
    if not settings.OCR_ENABLED:
        return None
    if _extractor is None:
        _extractor = DocumentTextExtractor(
            language=settings.OCR_LANGUAGE,
            timeout=settings.OCR_TIMEOUT_SECONDS,
            tesseract_cmd=settings.TESSERACT_CMD,
        )
    return _extractor
