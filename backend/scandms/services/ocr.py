# backend/scandms/services/ocr.py
import asyncio
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

import pytesseract
from PIL import Image
from pytesseract import Output

from ..errors import OCRError
from ..utils.logging import ocr_logger


@dataclass(frozen=True)
class OCRResult:
    text: str
    confidence: float
    word_count: int

    @property
    def has_text(self) -> bool:
        return bool(self.text.strip())


class OCREngine(Protocol):
    def recognize(self, image_path: Path, language: str) -> OCRResult:
        ...


class TesseractEngine:
    """OCR engine backed by the tesseract binary through pytesseract"""

    def __init__(self, tesseract_cmd: str | None = None, timeout_seconds: int = 0):
        if tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = tesseract_cmd
        self.timeout_seconds = timeout_seconds

    def recognize(self, image_path: Path, language: str) -> OCRResult:
        with Image.open(image_path) as img:
            if img.mode != "RGB":
                img = img.convert("RGB")
            data = pytesseract.image_to_data(
                img,
                lang=language,
                output_type=Output.DICT,
                timeout=self.timeout_seconds,
            )

        lines: dict[tuple[int, int, int], list[str]] = {}
        confidences = []
        for i, word in enumerate(data["text"]):
            word = (word or "").strip()
            conf = float(data["conf"][i])
            if not word or conf < 0:
                continue
            key = (data["block_num"][i], data["par_num"][i], data["line_num"][i])
            lines.setdefault(key, []).append(word)
            confidences.append(conf)

        text = "\n".join(" ".join(words) for words in lines.values())
        confidence = sum(confidences) / len(confidences) if confidences else 0.0
        return OCRResult(text=text, confidence=confidence, word_count=len(confidences))


class OCRService:
    """Runs the engine off the event loop with a per-page time bound.

    Every engine failure, including a timeout, comes back as OCRError so a
    batch can record it against the page and move on.
    """

    def __init__(self, engine: OCREngine, timeout_seconds: float, default_language: str = "eng"):
        self.engine = engine
        self.timeout_seconds = timeout_seconds
        self.default_language = default_language
        ocr_logger.info("OCR Service initialized", extra={
            "engine": type(engine).__name__,
            "timeout_seconds": timeout_seconds,
            "default_language": default_language
        })

    async def recognize(self, image_path: Path, language: str | None = None) -> OCRResult:
        language = language or self.default_language
        start_time = time.perf_counter()

        try:
            raw = await asyncio.wait_for(
                asyncio.to_thread(self.engine.recognize, image_path, language),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError as e:
            ocr_logger.error("OCR timed out", extra={
                "image_path": str(image_path),
                "timeout_seconds": self.timeout_seconds
            })
            raise OCRError(f"OCR timed out after {self.timeout_seconds}s") from e
        except OCRError:
            raise
        except Exception as e:
            ocr_logger.error("OCR engine failed", extra={
                "image_path": str(image_path),
                "error_type": type(e).__name__,
                "error": str(e)
            })
            raise OCRError(f"OCR processing failed: {e}") from e

        result = self.normalize(raw)
        ocr_logger.info("OCR completed", extra={
            "image_path": str(image_path),
            "language": language,
            "word_count": result.word_count,
            "confidence": round(result.confidence, 2),
            "processing_time_ms": round((time.perf_counter() - start_time) * 1000, 2)
        })
        return result

    @staticmethod
    def normalize(raw: OCRResult) -> OCRResult:
        text = (raw.text or "").strip()
        confidence = min(max(float(raw.confidence or 0.0), 0.0), 100.0)
        word_count = raw.word_count if raw.word_count else len(text.split())
        return OCRResult(text=text, confidence=confidence, word_count=word_count if text else 0)
