# stackshare/models/share_config.py
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional

DEFAULT_TEMPLATE_KEY = "template.json"
COMPILED_TEMPLATE_NAME = "compiled-cloudformation-template.json"


class ShareError(RuntimeError):
    """Base error for a share run that cannot continue."""


class ConfigError(ShareError):
    """Raised when the merged share configuration is unusable."""


class ParameterRule(str, Enum):
    REQUIRED = "required"
    OPTIONAL = "optional"


# What was deployed last: where it lives and which version folder holds it
@dataclass(frozen=True)
class Deployment:
    bucket: str
    service: str
    stage: str
    region: str
    version: str  # prefix as listed, e.g. "serverless/svc/dev/1700000000000-2023-11-14T22:13:20.000Z/"

    @property
    def template_key(self) -> str:
        return f"{self.version}{COMPILED_TEMPLATE_NAME}"

    @property
    def code_key(self) -> str:
        return f"{self.version}{self.service}.zip"


@dataclass(frozen=True)
class ShareConfig:
    """Destination of the republished bundle. Built once, read by every stage."""
    bucket: str
    code_key: str
    template_key: str
    stack_name: str
    parameters: Mapping[str, ParameterRule] = field(
        default_factory=lambda: MappingProxyType({})
    )


def _parse_rules(raw: Optional[Mapping[str, Any]]) -> Mapping[str, ParameterRule]:
    rules: Dict[str, ParameterRule] = {}
    for name, value in (raw or {}).items():
        try:
            rules[name] = ParameterRule(value)
        except ValueError:
            allowed = ", ".join(rule.value for rule in ParameterRule)
            raise ConfigError(
                f"Invalid rule {value!r} for parameter {name!r} (expected one of: {allowed})"
            ) from None
    return MappingProxyType(rules)


def build_share_config(
    deployment: Deployment,
    custom: Optional[Mapping[str, Any]] = None,
    *,
    bucket: Optional[str] = None,
    code_key: Optional[str] = None,
    template_key: Optional[str] = None,
    stack: Optional[str] = None,
) -> ShareConfig:
    """
    Merge defaults, the ``custom.share`` block and command line overrides.

    Command line values win over ``custom.share`` which wins over the defaults
    derived from the deployment. Every override is applied on its own.
    """
    custom = dict(custom or {})
    if not isinstance(custom.get("parameters") or {}, Mapping):
        raise ConfigError("custom.share.parameters must be a mapping of name -> rule")

    dest_bucket = bucket or custom.get("bucket")
    if not dest_bucket:
        raise ConfigError(
            "Destination bucket not set, pass --bucket or set custom.share.bucket"
        )

    return ShareConfig(
        bucket=dest_bucket,
        code_key=code_key or custom.get("codeKey") or deployment.code_key,
        template_key=template_key or custom.get("templateKey") or DEFAULT_TEMPLATE_KEY,
        stack_name=stack or custom.get("stack") or custom.get("stackName") or deployment.service,
        parameters=_parse_rules(custom.get("parameters")),
    )


__all__ = [
    "ShareError",
    "ConfigError",
    "ParameterRule",
    "Deployment",
    "ShareConfig",
    "build_share_config",
]
