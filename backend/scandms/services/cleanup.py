# backend/scandms/services/cleanup.py
import shutil
from pathlib import Path
from typing import Iterable

from ..utils.files import delete_file
from ..utils.logging import service_logger


class CleanupService:
    """Removes files left behind by an ingestion batch that did not commit"""

    @staticmethod
    def discard_files(paths: Iterable[Path]) -> int:
        """Delete every listed file; returns how many were removed"""
        removed = 0
        for path in paths:
            if delete_file(path):
                removed += 1
                service_logger.info(f"Discarded file: {path}")
        return removed

    @staticmethod
    def remove_directory(directory: Path | None) -> None:
        """Remove a scratch directory and anything still inside it"""
        if directory is None or not directory.exists():
            return
        try:
            shutil.rmtree(directory)
            service_logger.debug(f"Removed scratch directory: {directory}")
        except OSError as e:
            service_logger.warning(f"Error removing directory: {e}", extra={
                "directory": str(directory)
            })


cleanup_service = CleanupService()
