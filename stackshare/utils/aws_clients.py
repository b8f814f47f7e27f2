import os
from typing import Optional

import boto3


def session(profile: Optional[str] = None, region: Optional[str] = None) -> boto3.Session:
    kwargs = {}
    if profile:
        kwargs["profile_name"] = profile
    if region:
        kwargs["region_name"] = region
    return boto3.Session(**kwargs)


def s3(sess: boto3.Session, region: str):
    kwargs = {"region_name": region}
    # local endpoints (moto server, LocalStack)
    ep = os.environ.get("AWS_ENDPOINT_URL_S3")
    if ep:
        kwargs["endpoint_url"] = ep
    return sess.client("s3", **kwargs)


def cloudformation(sess: boto3.Session, region: str):
    return sess.client("cloudformation", region_name=region)
