import logging
import os
import time
import uuid
from typing import Dict, List

from fastapi import UploadFile

from app.core.config import settings
from app.core.exceptions import UpstreamFailure, ValidationError
from app.schemas.uploads import UploadOperation, UploadOperationRequest, UploadOperationResponse, UploadResponse
from app.utils.storage import GcsStorage

logger = logging.getLogger(__name__)

# Leading bytes each accepted content type must start with.
FILE_SIGNATURES: Dict[str, List[bytes]] = {
    "application/pdf": [b"%PDF"],
    "application/msword": [b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1"],
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document": [b"PK\x03\x04"],
    "image/jpeg": [b"\xff\xd8\xff"],
    "image/png": [b"\x89PNG\r\n\x1a\n"],
    "image/gif": [b"GIF87a", b"GIF89a"],
}

STALE_MARKERS = ("failed-", "cancelled-")


def validate_upload(content: bytes, content_type: str) -> None:
    if len(content) > settings.MAX_UPLOAD_BYTES:
        limit_mb = settings.MAX_UPLOAD_BYTES // (1024 * 1024)
        raise ValidationError(f"File size exceeds {limit_mb}MB limit")
    signatures = FILE_SIGNATURES.get(content_type)
    if signatures is None:
        raise ValidationError("File type not allowed. Only PDF, DOC, DOCX, JPEG, PNG, GIF are accepted")
    if not any(content.startswith(signature) for signature in signatures):
        raise ValidationError("File content does not match the declared file type")


def _safe_filename(filename: str) -> str:
    name = os.path.basename(filename.replace("\\", "/")).strip()
    if not name or name in (".", ".."):
        raise ValidationError("Invalid file name")
    return name


async def _remove_partial_upload(storage: GcsStorage, blob_name: str) -> None:
    try:
        if await storage.delete_blob_async(blob_name):
            logger.info(f"Cleaned up orphaned upload: {blob_name}")
    except Exception as e:
        logger.error(f"Failed to clean up orphaned upload {blob_name}: {e}")


async def upload_file(file: UploadFile, user_id: uuid.UUID, storage: GcsStorage) -> UploadResponse:
    """Validate and store a proposal file under the caller's prefix."""
    if file is None or not file.filename:
        raise ValidationError("No file provided")

    # One extra byte is enough to tell an oversized file apart.
    content = await file.read(settings.MAX_UPLOAD_BYTES + 1)
    content_type = file.content_type or ""
    validate_upload(content, content_type)

    blob_name = f"{user_id}/{int(time.time() * 1000)}-{_safe_filename(file.filename)}"
    try:
        await storage.upload_bytes_async(content, blob_name, content_type)
        file_url = storage.public_url(blob_name)
    except Exception as e:
        logger.error(f"Upload of {blob_name} failed: {e}", exc_info=True)
        await _remove_partial_upload(storage, blob_name)
        raise UpstreamFailure("Failed to upload file") from e

    return UploadResponse(
        file_name=file.filename,
        file_url=file_url,
        file_size=len(content),
        file_type=content_type,
    )


async def run_operation(
    operation_in: UploadOperationRequest, user_id: uuid.UUID, storage: GcsStorage
) -> UploadOperationResponse:
    """Batch housekeeping for the upload queue: cancel one item or purge stale objects."""
    prefix = f"{user_id}/"
    try:
        if operation_in.operation == UploadOperation.CANCEL:
            removed = 0
            if operation_in.item_id:
                item = _safe_filename(operation_in.item_id)
                removed = int(await storage.delete_blob_async(prefix + item))
            return UploadOperationResponse(message="Upload cancelled", removed=removed)

        names = await storage.list_blob_names_async(prefix)
        stale = [name for name in names if any(marker in name[len(prefix):] for marker in STALE_MARKERS)]
        removed = 0
        for name in stale:
            if await storage.delete_blob_async(name):
                removed += 1
        logger.info(f"Removed {removed} stale upload(s) for user {user_id}")
        return UploadOperationResponse(message="Cleanup completed", removed=removed)
    except ValidationError:
        raise
    except Exception as e:
        logger.error(f"Upload operation '{operation_in.operation.value}' failed: {e}", exc_info=True)
        raise UpstreamFailure("Upload operation failed") from e
