# backend/scandms/services/thumbnails.py
from pathlib import Path

from PIL import Image, ImageOps

from ..utils.files import delete_file
from ..utils.logging import service_logger


class ThumbnailGenerator:
    """Fixed-box JPEG previews: fit inside the box, never enlarge, pad the rest"""

    def __init__(self, width: int, height: int, quality: int = 80, background: str = "#ffffff"):
        self.size = (width, height)
        self.quality = quality
        self.background = background

    def generate(self, source_path: Path, destination_path: Path) -> bool:
        try:
            with Image.open(source_path) as img:
                img = ImageOps.exif_transpose(img)
                if img.mode != "RGB":
                    img = img.convert("RGB")
                img.thumbnail(self.size, Image.Resampling.LANCZOS)

                canvas = Image.new("RGB", self.size, self.background)
                offset = ((self.size[0] - img.width) // 2, (self.size[1] - img.height) // 2)
                canvas.paste(img, offset)

                destination_path.parent.mkdir(parents=True, exist_ok=True)
                canvas.save(destination_path, "JPEG", quality=self.quality, progressive=True)
            return True

        except (OSError, ValueError, Image.DecompressionBombError) as e:
            service_logger.warning("Thumbnail creation failed", extra={
                "source_path": str(source_path),
                "destination_path": str(destination_path),
                "error": str(e)
            })
            delete_file(destination_path)
            return False
