"""Configuration loading.

Rule configuration lives in a YAML file with one section per resource type::

    rds_instance:
      target_state: Deleted
      required_tags:
        - name: owner
          pattern: "^[a-z]+@example\\.com$"
      allowed_types: [db.t3.micro]
      ignore: [prod-db]
      idle_rules:
        - name: CPUUtilization
          statistic: Average
          duration: 7d
          period: 1h
          op: lt
          value: 5
      termination_protection:
        ignore: true
      naming_prefix:
        pattern: "^(dev|test)-"
      max_run_time: 12h

Run-level settings come from the environment.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union

import yaml

from ..models.resource import ResourceType, TargetState
from ..models.resource_config import (
    FilterOp,
    IdleRule,
    MetricDimension,
    MetricStatistic,
    NamingPrefix,
    RequiredTag,
    ResourceConfig,
    TerminationProtection,
)
from ..utils.duration import parse_duration

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = "nuker.yaml"

_RESOURCE_KEYS = {
    "target_state",
    "required_tags",
    "allowed_types",
    "ignore",
    "idle_rules",
    "termination_protection",
    "naming_prefix",
    "max_run_time",
    "disable_additional_rules",
}


class ConfigError(Exception):
    """Raised when the configuration file is unreadable or invalid."""


@dataclass
class Config:
    """Run-level settings.

    Attributes:
        config_path: Rule configuration file (optional)
        log_level: Log level name
        aws_profile: AWS credentials profile (optional)
    """

    config_path: Optional[str] = None
    log_level: str = "WARNING"
    aws_profile: Optional[str] = None

    @classmethod
    def load(cls) -> "Config":
        """Load settings from the environment.

        Reads ``NUKER_CONFIG``, ``NUKER_LOG_LEVEL`` and ``AWS_PROFILE``. When no
        config path is set, ``nuker.yaml`` in the working directory is used if
        it exists.
        """
        config_path = os.environ.get("NUKER_CONFIG")
        if not config_path and Path(DEFAULT_CONFIG_FILE).is_file():
            config_path = DEFAULT_CONFIG_FILE

        return cls(
            config_path=config_path,
            log_level=os.environ.get("NUKER_LOG_LEVEL", "WARNING").upper(),
            aws_profile=os.environ.get("AWS_PROFILE"),
        )


def load_config(path: Optional[Union[str, Path]]) -> Dict[ResourceType, ResourceConfig]:
    """Load rule configuration from a YAML file.

    Args:
        path: Configuration file; None gives the default configuration

    Returns:
        Configuration for every actionable resource type

    Raises:
        ConfigError: If the file cannot be read or is invalid
    """
    if path is None:
        logger.debug("No configuration file given, using defaults")
        return parse_config({})

    config_file = Path(path)
    try:
        with open(config_file, "r") as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise ConfigError(f"Cannot read configuration file {config_file}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {config_file}: {e}") from e

    logger.debug(f"Loaded configuration from {config_file}")
    return parse_config(data or {})


def parse_config(data: Any) -> Dict[ResourceType, ResourceConfig]:
    """Build typed configuration from parsed YAML.

    Resource types without a section get the default ResourceConfig.

    Raises:
        ConfigError: If a section or value is invalid
    """
    if not isinstance(data, Mapping):
        raise ConfigError("Configuration must be a mapping of resource type to rules")

    configs: Dict[ResourceType, ResourceConfig] = {t: ResourceConfig() for t in ResourceType.actionable()}

    for name, section in data.items():
        try:
            resource_type = ResourceType.from_name(str(name))
        except ValueError as e:
            raise ConfigError(str(e)) from e

        configs[resource_type] = parse_resource_config(resource_type.value, section or {})

    return configs


def parse_resource_config(name: str, section: Any) -> ResourceConfig:
    """Build one resource type's configuration.

    Raises:
        ConfigError: If the section or any value in it is invalid
    """
    if not isinstance(section, Mapping):
        raise ConfigError(f"{name}: section must be a mapping")

    unknown = set(section) - _RESOURCE_KEYS
    if unknown:
        raise ConfigError(f"{name}: unknown keys {', '.join(sorted(unknown))}")

    try:
        config = ResourceConfig(
            target_state=TargetState.parse(section.get("target_state", TargetState.DELETED.value)),
            required_tags=[_parse_required_tag(item) for item in _as_list(section.get("required_tags"))],
            allowed_types=[str(t) for t in _as_list(section.get("allowed_types"))],
            ignore=[str(i) for i in _as_list(section.get("ignore"))],
            idle_rules=[_parse_idle_rule(item) for item in _as_list(section.get("idle_rules"))],
            termination_protection=_parse_termination_protection(section.get("termination_protection")),
            naming_prefix=_parse_naming_prefix(section.get("naming_prefix")),
            max_run_time=_parse_optional_duration(section.get("max_run_time")),
            disable_additional_rules=bool(section.get("disable_additional_rules", False)),
        )
    except (AttributeError, KeyError, TypeError, ValueError) as e:
        raise ConfigError(f"{name}: {e}") from e

    return config


def _as_list(value: Any) -> List[Any]:
    if value is None:
        return []
    if isinstance(value, list):
        return value
    raise TypeError(f"expected a list, got {type(value).__name__}")


def _parse_required_tag(item: Any) -> RequiredTag:
    if isinstance(item, str):
        return RequiredTag(name=item)
    pattern = item.get("pattern")
    return RequiredTag(name=str(item["name"]), pattern=str(pattern) if pattern is not None else None)


def _parse_idle_rule(item: Mapping[str, Any]) -> IdleRule:
    return IdleRule(
        name=str(item["name"]),
        duration=parse_duration(item["duration"]),
        period=parse_duration(item["period"]),
        value=float(item["value"]),
        statistic=MetricStatistic(item.get("statistic", MetricStatistic.AVERAGE.value)),
        op=FilterOp(str(item.get("op", FilterOp.LT.value)).lower()),
        dimensions=[
            MetricDimension(name=str(d["name"]), value=str(d["value"])) for d in _as_list(item.get("dimensions"))
        ],
    )


def _parse_termination_protection(value: Any) -> TerminationProtection:
    if value is None:
        return TerminationProtection()
    return TerminationProtection(ignore=bool(value.get("ignore", True)))


def _parse_naming_prefix(value: Any) -> Optional[NamingPrefix]:
    if value is None:
        return None
    if isinstance(value, str):
        return NamingPrefix(pattern=value)
    return NamingPrefix(pattern=str(value["pattern"]))


def _parse_optional_duration(value: Any) -> Optional[timedelta]:
    if value is None:
        return None
    return parse_duration(value)
