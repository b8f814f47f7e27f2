# stackshare/services/template_elaborator.py
import copy
import logging
from typing import Any, Dict, Mapping

from stackshare.models.share_config import ParameterRule

logger = logging.getLogger(__name__)

DEPLOYMENT_BUCKET_RESOURCE = "ServerlessDeploymentBucket"
LAMBDA_FUNCTION_TYPE = "AWS::Lambda::Function"


def _points_at_deployment_bucket(location: Any) -> bool:
    if not isinstance(location, dict):
        return False
    bucket = location.get("S3Bucket")
    return isinstance(bucket, dict) and bucket.get("Ref") == DEPLOYMENT_BUCKET_RESOURCE


def _apply_rule(parameters: Dict[str, Any], name: str, rule: str) -> None:
    parameter = parameters.get(name)
    if parameter is None:
        logger.warning("Rule %s cannot be applied, parameter not found", name)
        return

    if rule == ParameterRule.REQUIRED:
        parameter.pop("Default", None)
    elif rule == ParameterRule.OPTIONAL:
        parameter["Default"] = ""
    else:
        logger.warning("Unknown rule %r for parameter %s, skipped", rule, name)


def _relocate_code(resources: Dict[str, Any], bucket: str, key: str) -> int:
    relocated = 0
    for name, resource in resources.items():
        if not isinstance(resource, dict) or resource.get("Type") != LAMBDA_FUNCTION_TYPE:
            continue
        properties = resource.get("Properties") or {}
        if "Code" not in properties:
            continue

        # CloudFormation nests the location under Code, older compiled
        # templates carried it next to Code
        if _points_at_deployment_bucket(properties["Code"]):
            location = properties["Code"]
        elif _points_at_deployment_bucket(properties):
            location = properties
        else:
            continue

        location["S3Bucket"] = bucket
        location["S3Key"] = key
        relocated += 1
        logger.debug("Code of %s now points at s3://%s/%s", name, bucket, key)
    return relocated


def elaborate(
    document: Mapping[str, Any],
    rules: Mapping[str, str],
    destination_bucket: str,
    destination_code_key: str,
) -> Dict[str, Any]:
    """
    Turn a compiled deployment template into a self-contained shareable one.

    The deployment bucket resource is dropped, parameter defaults follow
    ``rules`` (``required`` removes ``Default``, ``optional`` blanks it) and
    every Lambda function whose code lives in the deployment bucket is pointed
    at ``destination_bucket``/``destination_code_key``.

    The input is left untouched, a modified copy is returned.
    """
    template = copy.deepcopy(dict(document))
    resources = template["Resources"]

    if resources.pop(DEPLOYMENT_BUCKET_RESOURCE, None) is not None:
        logger.info("Removed %s from template resources", DEPLOYMENT_BUCKET_RESOURCE)

    parameters = template.get("Parameters") or {}
    for name, rule in rules.items():
        _apply_rule(parameters, name, rule)

    relocated = _relocate_code(resources, destination_bucket, destination_code_key)
    logger.info("Relocated code of %d function(s) to s3://%s/%s",
                relocated, destination_bucket, destination_code_key)

    return template
