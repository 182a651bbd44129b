"""Per-resource-type rule configuration.

Typed form of one resource type's section in the configuration file.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import timedelta
from enum import Enum
from typing import List, Optional, Pattern

from .resource import TargetState

logger = logging.getLogger(__name__)


def compile_regex(pattern: str) -> Optional[Pattern[str]]:
    """Compile a regular expression, returning None if it is malformed.

    A malformed pattern is logged and otherwise ignored.
    """
    try:
        return re.compile(pattern)
    except re.error as e:
        logger.warning(f"Failed compiling regex: {pattern} - {e}")
        return None


class FilterOp(Enum):
    """Comparison operator for idle metric thresholds."""

    LT = "lt"
    GT = "gt"
    LE = "le"
    GE = "ge"

    def compare(self, left: float, right: float) -> bool:
        if self is FilterOp.LT:
            return left < right
        if self is FilterOp.GT:
            return left > right
        if self is FilterOp.LE:
            return left <= right
        return left >= right


class MetricStatistic(Enum):
    """CloudWatch statistic to aggregate datapoints with."""

    SAMPLE_COUNT = "SampleCount"
    AVERAGE = "Average"
    SUM = "Sum"
    MINIMUM = "Minimum"
    MAXIMUM = "Maximum"


@dataclass
class RequiredTag:
    """Tag that a compliant resource must carry.

    Attributes:
        name: Tag key that must be present
        pattern: Regular expression the tag value must match (optional)
        regex: Compiled pattern; None when no pattern or compilation failed
    """

    name: str
    pattern: Optional[str] = None
    regex: Optional[Pattern[str]] = field(default=None, compare=False, repr=False)

    def __post_init__(self) -> None:
        if self.pattern is not None and self.regex is None:
            self.regex = compile_regex(self.pattern)


@dataclass
class MetricDimension:
    name: str
    value: str


@dataclass
class IdleRule:
    """CloudWatch metric condition describing an idle resource.

    A resource is idle under this rule when ``aggregate <op> value`` holds,
    e.g. ``CPUUtilization lt 5``.
    """

    name: str
    duration: timedelta
    period: timedelta
    value: float
    statistic: MetricStatistic = MetricStatistic.AVERAGE
    op: FilterOp = FilterOp.LT
    dimensions: List[MetricDimension] = field(default_factory=list)


@dataclass
class TerminationProtection:
    """Whether to clear provider-side delete protection before deleting."""

    ignore: bool = True


@dataclass
class NamingPrefix:
    """Naming convention a compliant resource id must match."""

    pattern: str
    regex: Optional[Pattern[str]] = field(default=None, compare=False, repr=False)

    def __post_init__(self) -> None:
        if self.regex is None:
            self.regex = compile_regex(self.pattern)


@dataclass
class ResourceConfig:
    """Rule configuration for one resource type.

    Attributes:
        target_state: Goal applied when a rule fails (default: Deleted)
        required_tags: Tags every resource must carry
        allowed_types: Allow-list of instance/node types; empty disables the rule
        ignore: Resource ids that are never enforced
        idle_rules: Metric thresholds; empty disables the idle rule
        termination_protection: Delete protection handling
        naming_prefix: Required naming convention (optional)
        max_run_time: Maximum age of a running resource (optional)
        disable_additional_rules: Skip adapter-specific extra checks
    """

    target_state: TargetState = TargetState.DELETED
    required_tags: List[RequiredTag] = field(default_factory=list)
    allowed_types: List[str] = field(default_factory=list)
    ignore: List[str] = field(default_factory=list)
    idle_rules: List[IdleRule] = field(default_factory=list)
    termination_protection: TerminationProtection = field(default_factory=TerminationProtection)
    naming_prefix: Optional[NamingPrefix] = None
    max_run_time: Optional[timedelta] = None
    disable_additional_rules: bool = False
