import pytest

from app.services.kyc.ocr_service import DocumentEvidenceService, OcrEvidence, OcrUnavailable


@pytest.mark.asyncio
async def test_disabled_ocr_is_unavailable():
    result = await DocumentEvidenceService(None).collect("front.jpg", "back.jpg")

    assert isinstance(result, OcrUnavailable)


@pytest.mark.asyncio
async def test_all_sides_failing_is_unavailable(extractor):
    result = await DocumentEvidenceService(extractor).collect("front.jpg", "back.jpg")

    assert isinstance(result, OcrUnavailable)
    assert "engine unavailable" in result.reason


@pytest.mark.asyncio
async def test_readable_side_is_used_when_other_fails(extractor):
    extractor.texts["back.jpg"] = "Jane Wanjiru\n23456789"

    result = await DocumentEvidenceService(extractor).collect("front.jpg", "back.jpg")

    assert result == OcrEvidence(candidate_id="23456789", candidate_name="Jane Wanjiru")


@pytest.mark.asyncio
async def test_text_from_both_sides_is_combined(extractor):
    extractor.texts["front.jpg"] = "Jane Wanjiru"
    extractor.texts["back.jpg"] = "serial 23456789"

    result = await DocumentEvidenceService(extractor).collect("front.jpg", "back.jpg")

    assert result == OcrEvidence(candidate_id="23456789", candidate_name="Jane Wanjiru")
