import logging
import mimetypes
import uuid
from datetime import datetime

import boto3
from botocore.exceptions import ClientError
from fastapi import UploadFile

from utils.errors import InternalError, ValidationError

logger = logging.getLogger(__name__)

ALLOWED_IMAGE_TYPES = {"image/jpeg", "image/png", "image/gif", "image/webp"}


class S3Service:
    def __init__(self, bucket_name: str, client: boto3.client, max_size_mb: int = 5):
        """
        Initialize the S3 service with bucket name and a configured client
        """
        self.bucket_name = bucket_name
        self.s3 = client
        self.max_size_mb = max_size_mb

    async def upload_image(self, file: UploadFile, user_id: str) -> str:
        """
        Upload a post image to S3 with user ownership metadata

        Args:
            file: The image to upload
            user_id: The ID of the user uploading the image

        Returns:
            The unique S3 key for the uploaded image

        Raises:
            ValidationError: If the file is not a supported image or is too large
            InternalError: If the upload fails
        """
        content_type = file.content_type or mimetypes.guess_type(file.filename or "")[0]
        if content_type not in ALLOWED_IMAGE_TYPES:
            raise ValidationError("Only JPEG, PNG, GIF or WebP images are allowed")

        extension = mimetypes.guess_extension(content_type) or ""
        timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
        unique_filename = f"posts/{user_id}/{timestamp}-{uuid.uuid4()}{extension}"

        file_content = await file.read()
        if len(file_content) > self.max_size_mb * 1024 * 1024:
            raise ValidationError(f"File size exceeds {self.max_size_mb}MB limit")

        try:
            self.s3.put_object(
                Bucket=self.bucket_name,
                Key=unique_filename,
                Body=file_content,
                ContentType=content_type,
                Metadata={
                    'user_id': user_id
                }
            )
        except ClientError:
            logger.exception("S3 upload failed for %s", unique_filename)
            raise InternalError("Failed to upload image")

        return unique_filename

    def get_presigned_url(self, key: str, expiration_seconds: int = 3600) -> str:
        """
        Generate a presigned URL for reading an uploaded image
        """
        try:
            return self.s3.generate_presigned_url(
                'get_object',
                Params={
                    'Bucket': self.bucket_name,
                    'Key': key
                },
                ExpiresIn=expiration_seconds
            )
        except ClientError:
            logger.exception("Could not presign %s", key)
            raise InternalError("Failed to generate image URL")

    def delete_file(self, key: str) -> bool:
        """
        Delete an uploaded object

        Returns:
            True if the object was deleted, False if S3 refused
        """
        try:
            self.s3.delete_object(Bucket=self.bucket_name, Key=key)
            return True
        except ClientError:
            logger.exception("Could not delete %s", key)
            return False
