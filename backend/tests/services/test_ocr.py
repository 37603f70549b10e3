# tests/services/test_ocr.py
import time

import pytest

from scandms.errors import OCRError
from scandms.services.ocr import OCRResult, OCRService, TesseractEngine


class SlowEngine:
    def recognize(self, image_path, language):
        time.sleep(0.5)
        return OCRResult(text="late", confidence=50.0, word_count=1)


@pytest.mark.asyncio
async def test_recognize_returns_normalized_result(fake_ocr_engine, image_factory, tmp_path):
    fake_ocr_engine.results = [OCRResult(text="  Invoice #123 \n", confidence=104.0, word_count=2)]
    service = OCRService(fake_ocr_engine, timeout_seconds=5, default_language="deu")
    image = image_factory(tmp_path / "page.png")

    result = await service.recognize(image)

    assert result.text == "Invoice #123"
    assert result.confidence == 100.0
    assert result.word_count == 2
    assert fake_ocr_engine.calls == [(image, "deu")]


@pytest.mark.asyncio
async def test_engine_failure_becomes_ocr_error(fake_ocr_engine, tmp_path):
    fake_ocr_engine.results = [RuntimeError("tesseract crashed")]
    service = OCRService(fake_ocr_engine, timeout_seconds=5)

    with pytest.raises(OCRError) as exc_info:
        await service.recognize(tmp_path / "page.png", "eng")

    assert "tesseract crashed" in exc_info.value.message


@pytest.mark.asyncio
async def test_timeout_becomes_ocr_error(tmp_path):
    service = OCRService(SlowEngine(), timeout_seconds=0.05)

    with pytest.raises(OCRError) as exc_info:
        await service.recognize(tmp_path / "page.png", "eng")

    assert "timed out" in exc_info.value.message


def test_normalize_counts_words_when_engine_does_not():
    result = OCRService.normalize(OCRResult(text="one two three", confidence=-3.0, word_count=0))

    assert result.word_count == 3
    assert result.confidence == 0.0


def test_normalize_blank_text_has_no_words():
    result = OCRService.normalize(OCRResult(text="   ", confidence=40.0, word_count=5))

    assert result.text == ""
    assert result.word_count == 0
    assert not result.has_text


def test_tesseract_engine_groups_words_into_lines(monkeypatch, image_factory, tmp_path):
    data = {
        "text": ["", "Invoice", "#123", "", "Total", "42.00", " "],
        "conf": [-1, 96.0, 88.0, -1, 90.0, 86.0, -1],
        "block_num": [1, 1, 1, 1, 1, 1, 1],
        "par_num": [1, 1, 1, 1, 1, 1, 1],
        "line_num": [0, 1, 1, 2, 2, 2, 2],
    }
    captured = {}

    def fake_image_to_data(image, lang, output_type, timeout):
        captured.update(lang=lang, timeout=timeout)
        return data

    monkeypatch.setattr("scandms.services.ocr.pytesseract.image_to_data", fake_image_to_data)
    engine = TesseractEngine(timeout_seconds=12)

    result = engine.recognize(image_factory(tmp_path / "page.png"), "eng")

    assert result.text == "Invoice #123\nTotal 42.00"
    assert result.word_count == 4
    assert result.confidence == pytest.approx(90.0)
    assert captured == {"lang": "eng", "timeout": 12}
