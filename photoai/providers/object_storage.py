"""Presigned upload URLs for the S3-compatible asset bucket."""

import time
import uuid
from typing import Optional

import boto3
from botocore.config import Config as BotoConfig

from ..models.schemas import PresignedUpload
from ..utils.config import UploadConfig
from ..utils.logger import get_logger

logger = get_logger(__name__)


class UploadGateway:
    """
    Issues short-lived, PUT-only URLs so clients upload training archives
    straight to the bucket. Holds no state and never touches the database:
    the client reports the key back when it submits training.
    """

    def __init__(
        self,
        bucket: str,
        access_key: str,
        secret_key: str,
        settings: UploadConfig,
        endpoint_url: Optional[str] = None,
        region: str = "auto",
        s3_client=None,
    ):
        self.bucket = bucket
        self.settings = settings
        self._s3 = s3_client or boto3.client(
            "s3",
            endpoint_url=endpoint_url,
            aws_access_key_id=access_key,
            aws_secret_access_key=secret_key,
            region_name=region,
            config=BotoConfig(signature_version="s3v4"),
        )

    def new_key(self) -> str:
        """Object key: timestamp plus a random suffix."""
        return f"{self.settings.key_prefix}/{int(time.time() * 1000)}_{uuid.uuid4().hex[:12]}.zip"

    def presign_upload(self) -> PresignedUpload:
        """Return a presigned PUT URL and the key it writes to."""
        key = self.new_key()
        url = self._s3.generate_presigned_url(
            "put_object",
            Params={
                "Bucket": self.bucket,
                "Key": key,
                "ContentType": self.settings.content_type,
            },
            ExpiresIn=self.settings.expires_seconds,
            HttpMethod="PUT",
        )

        logger.info(
            "Issued presigned upload URL",
            extra={"key": key, "expires_seconds": self.settings.expires_seconds}
        )

        return PresignedUpload(url=url, key=key)
