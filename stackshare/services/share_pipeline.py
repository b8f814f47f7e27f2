# stackshare/services/share_pipeline.py
import logging
import tempfile
from pathlib import Path
from typing import Callable, Optional, Sequence
from urllib.parse import urlencode

from stackshare.models.share_config import Deployment, ShareConfig
from stackshare.services.template_elaborator import elaborate
from stackshare.utils.s3_handler import S3Handler

logger = logging.getLogger(__name__)

CONSOLE_NEW_STACK_URL = "https://console.aws.amazon.com/cloudformation/home#/stacks/new"

Stage = Callable[[ShareConfig, Deployment, S3Handler], Optional[str]]


def build_share_link(stack_name: str, region: str, bucket: str, template_key: str) -> str:
    template_url = f"https://{region}.amazonaws.com/{bucket}/{template_key}"
    query = urlencode({"stackName": stack_name, "templateURL": template_url}, safe=":/")
    return f"{CONSOLE_NEW_STACK_URL}?{query}"


def share_template(config: ShareConfig, deployment: Deployment, s3: S3Handler) -> None:
    logger.info("Deploying CloudFormation template..")
    template = s3.get_json(deployment.bucket, deployment.template_key)
    template = elaborate(template, config.parameters, config.bucket, config.code_key)
    s3.put_json(config.bucket, config.template_key, template)
    logger.info("CloudFormation template is ready to share!")


def share_code(config: ShareConfig, deployment: Deployment, s3: S3Handler) -> None:
    logger.info("Deploying code archive..")
    # the archive only lives on disk between download and upload
    with tempfile.TemporaryDirectory(prefix="stackshare-") as tmp_dir:
        local_path = Path(tmp_dir) / "code.zip"
        s3.download_file(deployment.bucket, deployment.code_key, str(local_path))
        s3.upload_file(str(local_path), config.bucket, config.code_key,
                       content_type="application/zip")
    logger.info("Code archive is ready to share!")


def share_link(config: ShareConfig, deployment: Deployment, s3: S3Handler) -> str:
    logger.info("Version %s deployed!", deployment.version)
    region = s3.get_bucket_region(config.bucket)
    link = build_share_link(config.stack_name, region, config.bucket, config.template_key)
    logger.info("Share link: %s", link)
    return link


STAGES: Sequence[Stage] = (share_template, share_code, share_link)


def run_pipeline(config: ShareConfig, deployment: Deployment, s3: S3Handler,
                 stages: Sequence[Stage] = STAGES) -> Optional[str]:
    """
    Run ``stages`` in order and return the last stage's result (the share link).

    The first failing stage aborts the run, its exception is left to the caller.
    """
    result = None
    for stage in stages:
        logger.debug("Running stage %s", stage.__name__)
        result = stage(config, deployment, s3)
    return result
