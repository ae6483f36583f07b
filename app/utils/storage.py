import asyncio
import logging
import os
from datetime import timedelta
from typing import List, Optional

import google.auth
from google.auth import impersonated_credentials
from google.cloud import storage

from app.core.config import settings

logger = logging.getLogger(__name__)


class GcsStorage:
    """Object storage for uploaded proposal files, backed by one GCS bucket."""

    def __init__(self):
        self.storage_client: storage.Client | None = None
        self.bucket: storage.bucket.Bucket | None = None
        self._initialize_client()

    def _initialize_client(self):
        try:
            # A service account key file wins when one is configured.
            if settings.GOOGLE_APPLICATION_CREDENTIALS and os.path.exists(settings.GOOGLE_APPLICATION_CREDENTIALS):
                logger.info(f"Initializing GCS client from service account file: {settings.GOOGLE_APPLICATION_CREDENTIALS}")
                self.storage_client = storage.Client.from_service_account_json(
                    settings.GOOGLE_APPLICATION_CREDENTIALS
                )
            # Local development impersonates the target service account.
            elif settings.TARGET_SERVICE_ACCOUNT_EMAIL:
                source_credentials, project_id = google.auth.default()
                logger.info(f"Impersonating service account: {settings.TARGET_SERVICE_ACCOUNT_EMAIL}")
                scoped_credentials = impersonated_credentials.Credentials(
                    source_credentials=source_credentials,
                    target_principal=settings.TARGET_SERVICE_ACCOUNT_EMAIL,
                    target_scopes=['https://www.googleapis.com/auth/devstorage.read_write'],
                    lifetime=3600,
                )
                self.storage_client = storage.Client(credentials=scoped_credentials, project=project_id)
            else:
                logger.error("No Google Cloud credentials configured. GCS client not initialized.")
                return

            if settings.GCS_BUCKET_NAME:
                self.bucket = self.storage_client.bucket(settings.GCS_BUCKET_NAME)
                logger.info(f"GCS bucket {settings.GCS_BUCKET_NAME} obtained.")
            else:
                logger.error("GCS_BUCKET_NAME is not set. Uploads are unavailable.")
        except Exception as e:
            logger.error(f"Failed to initialize Google Cloud Storage client or bucket: {e}", exc_info=True)

    def _require_bucket(self) -> storage.bucket.Bucket:
        if not self.bucket or not self.storage_client:
            raise ConnectionAbortedError("GCS not initialized")
        return self.bucket

    async def upload_bytes_async(self, data: bytes, blob_name: str, content_type: str) -> str:
        blob = self._require_bucket().blob(blob_name)
        loop = asyncio.get_running_loop()
        # if_generation_match=0 refuses to overwrite an existing object
        await loop.run_in_executor(
            None,
            lambda: blob.upload_from_string(data, content_type=content_type, if_generation_match=0),
        )
        logger.info(f"Uploaded {len(data)} bytes to GCS: {settings.GCS_BUCKET_NAME}/{blob_name}")
        return blob_name

    def public_url(self, blob_name: str) -> str:
        return self._require_bucket().blob(blob_name).public_url

    def generate_signed_url(self, blob_name: str, expiration_minutes: int = 60) -> str:
        blob = self._require_bucket().blob(blob_name)
        return blob.generate_signed_url(version="v4", expiration=timedelta(minutes=expiration_minutes))

    async def delete_blob_async(self, blob_name: str) -> bool:
        bucket = self._require_bucket()

        def _delete() -> bool:
            blob = bucket.blob(blob_name)
            if not blob.exists():
                return False
            blob.delete()
            return True

        deleted = await asyncio.get_running_loop().run_in_executor(None, _delete)
        if deleted:
            logger.info(f"Blob {blob_name} deleted from GCS bucket {settings.GCS_BUCKET_NAME}.")
        return deleted

    async def list_blob_names_async(self, prefix: str) -> List[str]:
        bucket = self._require_bucket()
        return await asyncio.get_running_loop().run_in_executor(
            None, lambda: [blob.name for blob in bucket.list_blobs(prefix=prefix)]
        )


_gcs_storage: Optional[GcsStorage] = None


def get_storage() -> GcsStorage:
    """Returns the process-wide storage client, creating it on first use."""
    global _gcs_storage
    if _gcs_storage is None:
        _gcs_storage = GcsStorage()
    return _gcs_storage
