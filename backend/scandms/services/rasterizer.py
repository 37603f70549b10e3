# backend/scandms/services/rasterizer.py
from dataclasses import dataclass
from pathlib import Path
from typing import List, Protocol
from uuid import uuid4

from pdf2image import convert_from_path
from pdf2image.exceptions import (
    PDFInfoNotInstalledError,
    PDFPageCountError,
    PDFPopplerTimeoutError,
    PDFSyntaxError,
)

from ..errors import RasterizationError, UnsupportedFileTypeError
from ..utils.logging import service_logger

PDF_MIME_TYPE = "application/pdf"
IMAGE_MIME_TYPES = frozenset({
    "image/jpeg",
    "image/jpg",
    "image/png",
    "image/tiff",
    "image/tif",
})


@dataclass(frozen=True)
class RasterizedPage:
    image_path: Path
    source_index: int


class Renderer(Protocol):
    def render_pdf(self, pdf_path: Path, output_dir: Path) -> List[Path]:
        """Render every page of the PDF into output_dir, in page order"""
        ...


class PdfImageRenderer:
    """Renderer backed by poppler through pdf2image"""

    def __init__(self, density: int, fmt: str = "jpeg", timeout_seconds: int | None = None):
        self.density = density
        self.fmt = fmt
        self.timeout_seconds = timeout_seconds

    def render_pdf(self, pdf_path: Path, output_dir: Path) -> List[Path]:
        output_dir.mkdir(parents=True, exist_ok=True)
        try:
            paths = convert_from_path(
                str(pdf_path),
                dpi=self.density,
                fmt=self.fmt,
                output_folder=str(output_dir),
                output_file=uuid4().hex,
                paths_only=True,
                timeout=self.timeout_seconds,
            )
        except PDFPopplerTimeoutError as e:
            raise RasterizationError(
                f"Failed to process PDF: rendering exceeded {self.timeout_seconds}s"
            ) from e
        except (PDFPageCountError, PDFSyntaxError, PDFInfoNotInstalledError) as e:
            raise RasterizationError(f"Failed to process PDF: {e}") from e

        # pdf2image zero-pads page numbers in the generated names
        return sorted(Path(p) for p in paths)


class PageSplitter:
    """Turns one uploaded file into an ordered list of page images"""

    def __init__(self, renderer: Renderer):
        self.renderer = renderer

    @staticmethod
    def classify(mime_type: str | None) -> str:
        mime_type = (mime_type or "").lower()
        if mime_type == PDF_MIME_TYPE:
            return "pdf"
        if mime_type in IMAGE_MIME_TYPES:
            return "image"
        raise UnsupportedFileTypeError(f"Unsupported file type: {mime_type or 'unknown'}")

    def split_into_pages(self, source_path: Path, mime_type: str, output_dir: Path) -> List[RasterizedPage]:
        kind = self.classify(mime_type)

        if kind == "image":
            return [RasterizedPage(image_path=source_path, source_index=0)]

        service_logger.info("Rasterizing PDF", extra={
            "source_path": str(source_path),
            "output_dir": str(output_dir)
        })
        image_paths = self.renderer.render_pdf(source_path, output_dir)
        if not image_paths:
            raise RasterizationError("Failed to process PDF: no pages rendered")

        service_logger.info("PDF rasterized", extra={
            "source_path": str(source_path),
            "page_count": len(image_paths)
        })
        return [
            RasterizedPage(image_path=path, source_index=index)
            for index, path in enumerate(image_paths)
        ]
