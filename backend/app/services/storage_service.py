"""
Object storage access for audio files.

Wraps a boto3 S3 client (path-style addressing so MinIO works) and exposes
presigned URLs plus the multipart upload lifecycle used by chunked uploads.
Object keys are stored in the database; presigned URLs are issued on read.
"""
from functools import lru_cache
from typing import Any, Dict, List, Optional
import logging
import re
import time

import boto3
from botocore.config import Config
from botocore.exceptions import ClientError

from app.config import settings

logger = logging.getLogger(__name__)

_UNSAFE_FILENAME_CHARS = re.compile(r"[^a-zA-Z0-9.-]")


def sanitize_file_name(file_name: str) -> str:
    """Replace every character outside [a-zA-Z0-9.-] with an underscore"""
    return _UNSAFE_FILENAME_CHARS.sub("_", file_name)


def build_object_key(project_id: str, file_name: str, timestamp_ms: Optional[int] = None) -> str:
    """
    Build a unique object key namespaced by project and upload time

    Args:
        project_id: Owning project UUID
        file_name: Client supplied file name
        timestamp_ms: Milliseconds since epoch (defaults to now)

    Returns:
        Key of the form "<project_id>/<timestamp>-<sanitized name>"
    """
    if timestamp_ms is None:
        timestamp_ms = int(time.time() * 1000)
    return f"{project_id}/{timestamp_ms}-{sanitize_file_name(file_name)}"


class StorageService:
    """S3-compatible storage for uploaded audio"""

    def __init__(self, client=None, bucket: Optional[str] = None):
        """
        Initialize storage service

        Args:
            client: Preconfigured boto3 S3 client (built from settings when omitted)
            bucket: Bucket name (defaults to settings.s3_bucket)
        """
        self.bucket = bucket or settings.s3_bucket
        self.client = client or boto3.client(
            "s3",
            endpoint_url=settings.s3_endpoint,
            region_name=settings.s3_region,
            aws_access_key_id=settings.s3_access_key_id or None,
            aws_secret_access_key=settings.s3_secret_access_key or None,
            config=Config(
                signature_version="s3v4",
                s3={"addressing_style": "path" if settings.s3_force_path_style else "auto"},
            ),
        )

    def ensure_bucket(self) -> None:
        """Create the bucket if it does not exist yet"""
        try:
            self.client.head_bucket(Bucket=self.bucket)
            logger.info(f"S3 bucket '{self.bucket}' already exists")
        except ClientError as e:
            status = e.response.get("ResponseMetadata", {}).get("HTTPStatusCode")
            code = e.response.get("Error", {}).get("Code")
            if status == 404 or code in ("404", "NoSuchBucket", "NotFound"):
                logger.info(f"Creating S3 bucket: {self.bucket}")
                self.client.create_bucket(Bucket=self.bucket)
            else:
                logger.error(f"Error ensuring bucket exists: {e}")
                raise

    def issue_put_url(self, object_key: str, content_type: Optional[str] = None,
                      expires_in: Optional[int] = None) -> str:
        """Presigned URL for a single-shot PUT of a whole object"""
        params: Dict[str, Any] = {"Bucket": self.bucket, "Key": object_key}
        if content_type:
            params["ContentType"] = content_type
        return self.client.generate_presigned_url(
            "put_object",
            Params=params,
            ExpiresIn=expires_in or settings.presigned_put_ttl,
        )

    def issue_get_url(self, object_key: str, expires_in: Optional[int] = None) -> str:
        """Presigned URL for streaming an object"""
        return self.client.generate_presigned_url(
            "get_object",
            Params={"Bucket": self.bucket, "Key": object_key},
            ExpiresIn=expires_in or settings.presigned_get_ttl,
        )

    def open_multipart_session(self, object_key: str, content_type: Optional[str] = None) -> str:
        """
        Start a multipart upload

        Returns:
            Upload id issued by storage
        """
        params: Dict[str, Any] = {"Bucket": self.bucket, "Key": object_key}
        if content_type:
            params["ContentType"] = content_type
        response = self.client.create_multipart_upload(**params)
        upload_id = response.get("UploadId")
        if not upload_id:
            raise RuntimeError("Failed to initiate multipart upload")
        logger.info(f"Opened multipart upload {upload_id} for {object_key}")
        return upload_id

    def issue_part_urls(self, object_key: str, upload_id: str, part_numbers: List[int],
                        expires_in: Optional[int] = None) -> List[Dict[str, Any]]:
        """
        Presigned single-use URLs, one per part number

        Returns:
            List of {"part_number", "url"} in the order requested
        """
        ttl = expires_in or settings.presigned_part_ttl
        return [
            {
                "part_number": part_number,
                "url": self.client.generate_presigned_url(
                    "upload_part",
                    Params={
                        "Bucket": self.bucket,
                        "Key": object_key,
                        "UploadId": upload_id,
                        "PartNumber": part_number,
                    },
                    ExpiresIn=ttl,
                ),
            }
            for part_number in part_numbers
        ]

    def complete_multipart_session(self, object_key: str, upload_id: str,
                                   parts: List[Dict[str, Any]]) -> None:
        """
        Assemble uploaded parts into the final object

        Args:
            parts: [{"part_number": int, "etag": str}], sorted here by part number
        """
        ordered = sorted(parts, key=lambda p: p["part_number"])
        self.client.complete_multipart_upload(
            Bucket=self.bucket,
            Key=object_key,
            UploadId=upload_id,
            MultipartUpload={
                "Parts": [{"PartNumber": p["part_number"], "ETag": p["etag"]} for p in ordered]
            },
        )
        logger.info(f"Completed multipart upload {upload_id} with {len(ordered)} parts")

    def abort_multipart_session(self, object_key: str, upload_id: str) -> None:
        """Discard a multipart upload and any parts stored so far"""
        self.client.abort_multipart_upload(Bucket=self.bucket, Key=object_key, UploadId=upload_id)
        logger.info(f"Aborted multipart upload {upload_id} for {object_key}")

    def delete_object(self, object_key: str) -> None:
        """Delete an object"""
        self.client.delete_object(Bucket=self.bucket, Key=object_key)

    def read_header(self, object_key: str, length: int = 64) -> bytes:
        """Read the first `length` bytes of an object"""
        response = self.client.get_object(
            Bucket=self.bucket,
            Key=object_key,
            Range=f"bytes=0-{length - 1}",
        )
        return response["Body"].read()


def delete_object_best_effort(storage: StorageService, object_key: str) -> bool:
    """
    Delete an object, logging instead of raising on failure

    Database rows are the source of truth; an orphaned object is acceptable.

    Returns:
        True if the object was deleted
    """
    try:
        storage.delete_object(object_key)
        return True
    except Exception as e:
        logger.error(f"Error deleting object {object_key} from storage: {e}")
        return False


@lru_cache(maxsize=1)
def get_storage() -> StorageService:
    """Dependency returning the shared storage service"""
    return StorageService()
