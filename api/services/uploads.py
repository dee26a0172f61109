"""
Upload storage: streams multipart uploads to disk under a size limit.
"""
from pathlib import Path

import aiofiles
from fastapi import UploadFile
import structlog

from api.utils.error_handlers import PayloadTooLargeError
from api.utils.validators import storage_filename
from worker.utils.files import format_file_size

logger = structlog.get_logger()

CHUNK_SIZE = 1024 * 1024


class UploadStore:
    """Writes uploaded videos into ``upload_dir``."""

    def __init__(self, upload_dir: Path, max_size: int):
        self.upload_dir = Path(upload_dir)
        self.max_size = max_size

    async def save(self, upload: UploadFile, original_name: str) -> Path:
        """
        Stream ``upload`` to a uniquely named file.

        Raises PayloadTooLargeError once more than ``max_size`` bytes have
        arrived; the partial file is removed.
        """
        self.upload_dir.mkdir(parents=True, exist_ok=True)
        path = self.upload_dir / storage_filename(original_name)

        bytes_written = 0
        try:
            async with aiofiles.open(path, "wb") as f:
                while chunk := await upload.read(CHUNK_SIZE):
                    bytes_written += len(chunk)
                    if bytes_written > self.max_size:
                        raise PayloadTooLargeError(
                            f"File too large. Maximum size is {format_file_size(self.max_size)}"
                        )
                    await f.write(chunk)
        except BaseException:
            path.unlink(missing_ok=True)
            raise

        logger.info("Upload stored", path=str(path), size=bytes_written)
        return path
