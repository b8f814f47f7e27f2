# stackshare/services/deployment_fetcher.py
from __future__ import annotations

import logging

from botocore.exceptions import BotoCoreError, ClientError

from stackshare.models.share_config import Deployment, ShareError
from stackshare.utils.s3_handler import S3Handler
from stackshare.utils.serverless_config import ServiceSettings

logger = logging.getLogger(__name__)

DEPLOYMENT_BUCKET_LOGICAL_ID = "ServerlessDeploymentBucket"


class VersionNotFoundError(ShareError):
    """Raised when the deployment bucket holds no deployed version."""


def deployment_prefix(service: str, stage: str) -> str:
    """Folder the framework uploads every deployment of ``service``/``stage`` under."""
    return f"serverless/{service}/{stage}/"


class DeploymentFetcher:
    """Locates the deployment bucket and the most recent version uploaded to it."""

    def __init__(self, s3_handler: S3Handler, cloudformation_client=None):
        self.s3_handler = s3_handler
        self._cfn = cloudformation_client

    def deployment_bucket(self, settings: ServiceSettings) -> str:
        if settings.deployment_bucket:
            logger.debug("Using configured deployment bucket %s", settings.deployment_bucket)
            return settings.deployment_bucket

        if self._cfn is None:
            raise ShareError("No deployment bucket configured and no CloudFormation client to look it up")

        stack_name = f"{settings.service}-{settings.stage}"
        try:
            response = self._cfn.describe_stack_resource(
                StackName=stack_name,
                LogicalResourceId=DEPLOYMENT_BUCKET_LOGICAL_ID,
            )
        except (ClientError, BotoCoreError) as e:
            logger.error("Could not read %s from stack %s: %s",
                         DEPLOYMENT_BUCKET_LOGICAL_ID, stack_name, e)
            raise
        bucket = response["StackResourceDetail"]["PhysicalResourceId"]
        logger.debug("Deployment bucket of stack %s is %s", stack_name, bucket)
        return bucket

    def latest_version(self, bucket: str, service: str, stage: str) -> str:
        """
        Most recent version prefix under the deployment folder.

        Version folders are named after the deployment timestamp, so the
        lexicographically greatest one is the latest.
        """
        prefixes = self.s3_handler.list_common_prefixes(bucket, deployment_prefix(service, stage))
        if not prefixes:
            raise VersionNotFoundError("Version not found")
        return sorted(prefixes, reverse=True)[0]

    def fetch(self, settings: ServiceSettings) -> Deployment:
        bucket = self.deployment_bucket(settings)
        version = self.latest_version(bucket, settings.service, settings.stage)
        logger.info("Deploying version %s..", version)
        return Deployment(
            bucket=bucket,
            service=settings.service,
            stage=settings.stage,
            region=settings.region,
            version=version,
        )
