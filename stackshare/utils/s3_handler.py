import json
import logging
from typing import Any, Dict, List, Optional

from boto3.exceptions import S3UploadFailedError
from botocore.exceptions import BotoCoreError, ClientError

logger = logging.getLogger(__name__)

PUBLIC_READ = "public-read"


class S3Handler:
    """
    Thin wrapper around the boto3 S3 client used by a share run.

    Errors from S3 are logged and re-raised as they are, nothing is retried.
    """

    def __init__(self, s3_client, region_name="us-east-1"):
        self.s3 = s3_client
        logger.debug("S3Handler initialized in region: %s", region_name)

    def list_common_prefixes(self, bucket: str, prefix: str, delimiter: str = "/") -> List[str]:
        """Returns every common prefix directly under ``prefix``, across all pages."""
        try:
            paginator = self.s3.get_paginator("list_objects_v2")
            prefixes = []
            for page in paginator.paginate(Bucket=bucket, Prefix=prefix, Delimiter=delimiter):
                for entry in page.get("CommonPrefixes", []):
                    prefixes.append(entry["Prefix"])
            logger.debug("Found %d prefixes under s3://%s/%s", len(prefixes), bucket, prefix)
            return prefixes
        except (ClientError, BotoCoreError) as e:
            logger.error("Failed to list s3://%s/%s: %s", bucket, prefix, e)
            raise

    def get_json(self, bucket: str, key: str) -> Dict[str, Any]:
        """Downloads and returns a JSON object from S3."""
        try:
            logger.info("Downloading object from s3://%s/%s", bucket, key)
            response = self.s3.get_object(Bucket=bucket, Key=key)
            content = response["Body"].read().decode("utf-8")
            return json.loads(content)
        except ClientError as e:
            logger.error("AWS ClientError downloading s3://%s/%s: %s", bucket, key, e)
            raise

    def put_json(self, bucket: str, key: str, data: dict, acl: Optional[str] = PUBLIC_READ):
        """Uploads a JSON document to the specified bucket/key."""
        extra = {"ACL": acl} if acl else {}
        try:
            logger.info("Uploading object to s3://%s/%s", bucket, key)
            response = self.s3.put_object(
                Bucket=bucket,
                Key=key,
                Body=json.dumps(data).encode("utf-8"),
                ContentType="application/json",
                **extra,
            )
            status_code = response.get("ResponseMetadata", {}).get("HTTPStatusCode", 0)
            if status_code != 200:
                logger.warning("Upload returned status code %s", status_code)
            return response
        except ClientError as e:
            logger.error("AWS ClientError uploading to s3://%s/%s: %s", bucket, key, e)
            raise

    def download_file(self, bucket: str, key: str, local_path: str) -> None:
        try:
            self.s3.download_file(Bucket=bucket, Key=key, Filename=str(local_path))
            logger.info("Downloaded s3://%s/%s to %s", bucket, key, local_path)
        except ClientError as e:
            logger.exception("Failed to download %s/%s to %s: %s", bucket, key, local_path, e)
            raise

    def upload_file(self, local_path: str, bucket: str, key: str,
                    content_type: str = None, acl: Optional[str] = PUBLIC_READ):
        """
        Uploads any local file to S3 with optional content-type and canned ACL.
        """
        extra = {}
        if content_type:
            extra["ContentType"] = content_type
        if acl:
            extra["ACL"] = acl

        try:
            self.s3.upload_file(
                Filename=str(local_path),
                Bucket=bucket,
                Key=key,
                ExtraArgs=extra,
            )
            logger.info("Successfully uploaded file to %s/%s", bucket, key)
            return True
        # upload_file wraps S3 errors in S3UploadFailedError
        except (ClientError, S3UploadFailedError) as e:
            logger.exception("Failed to upload file %s to %s/%s: %s", local_path, bucket, key, e)
            raise

    def get_bucket_region(self, bucket: str) -> str:
        """Region of ``bucket``. S3 reports us-east-1 as no constraint and eu-west-1 as 'EU'."""
        response = self.s3.get_bucket_location(Bucket=bucket)
        location = response.get("LocationConstraint")
        if not location:
            return "us-east-1"
        if location == "EU":
            return "eu-west-1"
        return location
