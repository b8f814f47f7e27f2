# stackshare/utils/serverless_config.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from stackshare.models.share_config import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_STAGE = "dev"
DEFAULT_REGION = "us-east-1"


class _ServerlessLoader(yaml.SafeLoader):
    """SafeLoader that keeps CloudFormation short-form tags (!Ref, !GetAtt, ...) as plain data."""


def _construct_tagged(loader, tag_suffix, node):
    if isinstance(node, yaml.ScalarNode):
        value = loader.construct_scalar(node)
    elif isinstance(node, yaml.SequenceNode):
        value = loader.construct_sequence(node, deep=True)
    else:
        value = loader.construct_mapping(node, deep=True)
    if tag_suffix in ("Ref", "Condition"):
        return {tag_suffix: value}
    return {f"Fn::{tag_suffix}": value}


_ServerlessLoader.add_multi_constructor("!", _construct_tagged)


@dataclass(frozen=True)
class ServiceSettings:
    service: str
    stage: str
    region: str
    profile: Optional[str] = None
    deployment_bucket: Optional[str] = None
    share: Dict[str, Any] = field(default_factory=dict)


def _service_name(raw: Any) -> str:
    # `service` may be a plain string or the older `{name: ...}` form
    if isinstance(raw, dict):
        raw = raw.get("name")
    if not raw:
        raise ConfigError("serverless.yml does not define a service name")
    return str(raw)


def _deployment_bucket(raw: Any) -> Optional[str]:
    if isinstance(raw, dict):
        return raw.get("name")
    return raw or None


def _contains_variable(value: Any) -> bool:
    if isinstance(value, str):
        return "${" in value
    if isinstance(value, dict):
        return any(_contains_variable(k) or _contains_variable(v) for k, v in value.items())
    if isinstance(value, (list, tuple)):
        return any(_contains_variable(v) for v in value)
    return False


def _check_resolved(settings: ServiceSettings, path: Path) -> None:
    # variables are resolved by the framework, values read here are taken literally
    used = {
        "service": settings.service,
        "provider.stage": settings.stage,
        "provider.region": settings.region,
        "provider.profile": settings.profile,
        "provider.deploymentBucket": settings.deployment_bucket,
    }
    used.update({f"custom.share.{name}": value for name, value in settings.share.items()})
    for name, value in used.items():
        if _contains_variable(value):
            raise ConfigError(
                f"{name} in {path} uses a Serverless variable ({value!r}), "
                "use a literal value or the matching command line flag"
            )


def load_service_settings(
    path: str | Path = "serverless.yml",
    *,
    stage: Optional[str] = None,
    region: Optional[str] = None,
    profile: Optional[str] = None,
) -> ServiceSettings:
    """
    Read the parts of serverless.yml a share run needs.

    Explicit ``stage``/``region``/``profile`` arguments take precedence over
    the ``provider`` block, like the framework's own --stage/--region flags.
    """
    path = Path(path)
    if not path.exists():
        raise ConfigError(f"Service configuration not found: {path}")

    try:
        with path.open("r", encoding="utf-8") as f:
            data = yaml.load(f, Loader=_ServerlessLoader) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Could not parse {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"{path} is not a mapping")

    provider = data.get("provider") or {}
    custom = data.get("custom") or {}
    share = custom.get("share") or {}
    if not isinstance(share, dict):
        raise ConfigError("custom.share must be a mapping")

    settings = ServiceSettings(
        service=_service_name(data.get("service")),
        stage=stage or provider.get("stage") or DEFAULT_STAGE,
        region=region or provider.get("region") or DEFAULT_REGION,
        profile=profile or provider.get("profile"),
        deployment_bucket=_deployment_bucket(provider.get("deploymentBucket")),
        share=dict(share),
    )
    _check_resolved(settings, path)
    logger.debug("Loaded %s: service=%s stage=%s region=%s",
                 path, settings.service, settings.stage, settings.region)
    return settings
