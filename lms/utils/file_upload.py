# lms/utils/file_upload.py

import logging
import uuid
from pathlib import Path
from typing import Iterable

from fastapi import HTTPException, UploadFile

from lms.core.config import settings
from lms.schemas.enrollment import ProofArtifact

logger = logging.getLogger(__name__)

RECEIPTS_FOLDER = "receipts"


class FileUploadService:
    """Stores payment receipts under UUID names and hands back a stable reference."""

    def __init__(
        self,
        base_storage_path: str = "storage",
        allowed_extensions: Iterable[str] = ("jpg", "jpeg", "png", "pdf"),
        max_size_mb: int = 5,
        public_prefix: str = "/storage",
    ):
        """
        Initialize the file upload service.

        Args:
            base_storage_path: Base directory for file storage
            allowed_extensions: Accepted extensions, without the dot
            max_size_mb: Upper bound for one upload
            public_prefix: URL prefix the storage directory is served under
        """
        self.base_storage_path = Path(base_storage_path)
        self.allowed_extensions = {f".{ext.lower().lstrip('.')}" for ext in allowed_extensions}
        self.max_size = max_size_mb * 1024 * 1024
        self.public_prefix = public_prefix.rstrip("/")

    def _get_file_extension(self, filename: str) -> str:
        """Extract file extension from filename."""
        return Path(filename).suffix.lower()

    def _validate_receipt(self, file: UploadFile) -> None:
        """
        Validate an uploaded receipt.

        Raises:
            HTTPException: If file is invalid
        """
        if not file.filename:
            raise HTTPException(status_code=400, detail="No filename provided")

        extension = self._get_file_extension(file.filename)
        if extension not in self.allowed_extensions:
            raise HTTPException(
                status_code=400,
                detail=f"Invalid file type. Allowed types: {', '.join(sorted(self.allowed_extensions))}",
            )

    async def save_receipt(self, file: UploadFile) -> ProofArtifact:
        """
        Save a payment receipt with UUID naming.

        Returns:
            ProofArtifact with the artifact id and the public URL

        Raises:
            HTTPException: If file validation fails or save fails
        """
        self._validate_receipt(file)

        try:
            contents = await file.read()
        finally:
            await file.seek(0)

        if not contents:
            raise HTTPException(status_code=400, detail="Empty file uploaded")
        if len(contents) > self.max_size:
            raise HTTPException(
                status_code=400,
                detail=f"File size exceeds maximum allowed size of {self.max_size / (1024*1024)}MB",
            )

        artifact_id = str(uuid.uuid4())
        filename = f"{artifact_id}{self._get_file_extension(file.filename)}"

        folder_path = self.base_storage_path / RECEIPTS_FOLDER
        folder_path.mkdir(parents=True, exist_ok=True)

        try:
            with open(folder_path / filename, "wb") as f:
                f.write(contents)
        except OSError as e:
            logger.error(f"Error saving receipt: {e}")
            raise HTTPException(status_code=500, detail="Error saving file")

        return ProofArtifact(
            artifact_id=artifact_id,
            url=f"{self.public_prefix}/{RECEIPTS_FOLDER}/{filename}",
        )

    def delete_receipt(self, artifact: ProofArtifact) -> bool:
        """
        Remove a stored receipt, e.g. when the enrollment it was uploaded for
        is refused.

        Returns:
            True if a file was deleted
        """
        file_path = self.base_storage_path / RECEIPTS_FOLDER / Path(artifact.url).name
        if not file_path.is_file():
            return False
        try:
            file_path.unlink()
        except OSError as e:
            logger.error(f"Error deleting receipt {artifact.artifact_id}: {e}")
            return False
        return True


# Create a singleton instance
file_upload_service = FileUploadService(
    base_storage_path=settings.upload_dir,
    allowed_extensions=settings.allowed_receipt_types,
    max_size_mb=settings.max_receipt_size_mb,
)
