"""Policy evaluation.

Maps a scanned resource and its resource type's rule configuration to a
single enforcement decision.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, List, Optional, Sequence, Tuple

from ..adapters.base import AdapterError, ResourceAdapter
from ..models.lookup import LookupResult
from ..models.resource import EnforcementReason, EnforcementState, Resource, ResourceState, Tag
from ..models.resource_config import IdleRule, NamingPrefix, RequiredTag, ResourceConfig

logger = logging.getLogger(__name__)


class RuleOutcome(Enum):
    """Result of evaluating one compliance rule."""

    PASS = "pass"
    FAIL = "fail"
    DISABLED = "disabled"
    INCONCLUSIVE = "inconclusive"


@dataclass(frozen=True)
class Decision:
    """Enforcement decision for one resource.

    Attributes:
        state: Action to take
        reason: Rule that fired (optional)
        inconclusive: Rules that could not be evaluated because a lookup failed
    """

    state: EnforcementState
    reason: Optional[EnforcementReason] = None
    inconclusive: Tuple[EnforcementReason, ...] = ()


def tags_comply(tags: Sequence[Tag], required_tags: Sequence[RequiredTag]) -> bool:
    """Check that every required tag is present with a matching value.

    A required tag without a compiled regex accepts any value.
    """
    for required in required_tags:
        values = [tag.value for tag in tags if tag.key == required.name]
        if not values:
            return False

        if required.regex is not None:
            if not any(required.regex.search(value or "") for value in values):
                return False

    return True


def check_required_tags(required_tags: Sequence[RequiredTag], lookup: LookupResult) -> RuleOutcome:
    if not required_tags:
        return RuleOutcome.DISABLED
    if lookup.is_failed:
        return RuleOutcome.INCONCLUSIVE

    tags = lookup.value if lookup.is_present else []
    return RuleOutcome.PASS if tags_comply(tags, required_tags) else RuleOutcome.FAIL


def check_allowed_types(allowed_types: Sequence[str], lookup: LookupResult) -> RuleOutcome:
    if not allowed_types:
        return RuleOutcome.DISABLED
    if lookup.is_failed:
        return RuleOutcome.INCONCLUSIVE

    bound_types = lookup.value if lookup.is_present else []
    if set(bound_types).issubset(allowed_types):
        return RuleOutcome.PASS
    return RuleOutcome.FAIL


def check_idle(idle_rules: Sequence[IdleRule], lookup: LookupResult) -> RuleOutcome:
    if not idle_rules:
        return RuleOutcome.DISABLED
    if lookup.is_failed:
        return RuleOutcome.INCONCLUSIVE
    if not lookup.is_present:
        return RuleOutcome.DISABLED

    # The oracle answers "is active"; an inactive resource is idle
    return RuleOutcome.PASS if lookup.value else RuleOutcome.FAIL


def check_naming_prefix(naming_prefix: Optional[NamingPrefix], resource_id: str) -> RuleOutcome:
    if naming_prefix is None or naming_prefix.regex is None:
        return RuleOutcome.DISABLED
    return RuleOutcome.PASS if naming_prefix.regex.match(resource_id) else RuleOutcome.FAIL


def check_max_run_time(resource: Resource, config: ResourceConfig, as_of: Optional[datetime]) -> RuleOutcome:
    if config.max_run_time is None or as_of is None:
        return RuleOutcome.DISABLED
    if resource.start_time is None:
        return RuleOutcome.PASS

    run_time = _as_utc(as_of) - _as_utc(resource.start_time)
    return RuleOutcome.FAIL if run_time > config.max_run_time else RuleOutcome.PASS


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class PolicyEngine:
    """Policy engine for one resource type.

    Evaluation order, first match wins:
        1. id in ignore list -> SKIP_CONFIG
        2. state unknown -> SKIP_UNKNOWN_STATE
        3. state not active for the type -> SKIP_STOPPED
        4. required tags, allowed types, idle, naming prefix, max run time,
           adapter additional filter; the first configured rule that fails
           decides the target state
        5. otherwise SKIP

    Lookups are made lazily, so a rule's lookup only runs when every rule
    before it passed. No clock is read here; time-based rules use ``as_of``.

    Attributes:
        config: Rule configuration for the resource type
    """

    def __init__(self, config: ResourceConfig) -> None:
        self.config = config

    def evaluate(
        self,
        resource: Resource,
        lookups: ResourceAdapter,
        as_of: Optional[datetime] = None,
    ) -> Decision:
        """Decide the enforcement state of a resource.

        Args:
            resource: Scanned resource
            lookups: Adapter providing tag, type, idle and additional-filter lookups
            as_of: Reference time for the max-run-time rule (optional)

        Returns:
            Decision with state, reason and any inconclusive rules
        """
        if resource.id in self.config.ignore:
            return Decision(EnforcementState.SKIP_CONFIG)

        if resource.state == ResourceState.UNKNOWN:
            return Decision(EnforcementState.SKIP_UNKNOWN_STATE)

        if resource.state not in lookups.active_states:
            return Decision(EnforcementState.SKIP_STOPPED)

        inconclusive: List[EnforcementReason] = []

        for reason, rule in self._rules(resource, lookups, as_of):
            outcome = rule()

            if outcome == RuleOutcome.INCONCLUSIVE:
                logger.warning(f"Rule {reason.value} could not be evaluated for {resource.id}, lookup failed")
                inconclusive.append(reason)
            elif outcome == RuleOutcome.FAIL:
                logger.debug(f"{resource.id} is not compliant: {reason.value}")
                return Decision(
                    EnforcementState.from_target_state(self.config.target_state),
                    reason,
                    tuple(inconclusive),
                )

        return Decision(EnforcementState.SKIP, None, tuple(inconclusive))

    def apply(
        self,
        resource: Resource,
        lookups: ResourceAdapter,
        as_of: Optional[datetime] = None,
    ) -> Decision:
        """Evaluate a resource and record the decision, and any failed lookups, on it."""
        decision = self.evaluate(resource, lookups, as_of)
        resource.enforcement_state = decision.state
        resource.enforcement_reason = decision.reason
        resource.lookup_failures = list(decision.inconclusive)
        return decision

    def _rules(
        self,
        resource: Resource,
        lookups: ResourceAdapter,
        as_of: Optional[datetime],
    ) -> List[Tuple[EnforcementReason, Callable[[], RuleOutcome]]]:
        config = self.config
        return [
            (EnforcementReason.TAG_RULE, lambda: check_required_tags(config.required_tags, lookups.tags(resource))),
            (
                EnforcementReason.ALLOWED_TYPE_RULE,
                lambda: check_allowed_types(config.allowed_types, lookups.instance_types(resource)),
            ),
            (EnforcementReason.IDLE, lambda: check_idle(config.idle_rules, lookups.is_active(resource))),
            (EnforcementReason.NAME_RULE, lambda: check_naming_prefix(config.naming_prefix, resource.id)),
            (EnforcementReason.RUNTIME, lambda: check_max_run_time(resource, config, as_of)),
            (EnforcementReason.ADDITIONAL_RULES, lambda: self._check_additional(resource, lookups)),
        ]

    def _check_additional(self, resource: Resource, lookups: ResourceAdapter) -> RuleOutcome:
        if self.config.disable_additional_rules:
            return RuleOutcome.DISABLED

        try:
            compliant = lookups.additional_filters(resource, self.config)
        except AdapterError as e:
            logger.warning(f"Additional filters failed for {resource.id}: {e}")
            return RuleOutcome.INCONCLUSIVE

        if compliant is None:
            return RuleOutcome.DISABLED
        return RuleOutcome.PASS if compliant else RuleOutcome.FAIL
