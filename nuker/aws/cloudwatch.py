"""CloudWatch-backed idle oracle."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from botocore.exceptions import ClientError

from ..adapters.base import AdapterError
from ..models.resource_config import IdleRule

logger = logging.getLogger(__name__)


class CloudWatchIdleOracle:
    """Decides whether a resource is active from CloudWatch metrics.

    Each idle rule describes an idle condition. A resource is idle only when
    every rule with datapoints holds; a rule without datapoints gives no
    evidence of idleness and counts as active.

    Attributes:
        client: boto3 CloudWatch client
        idle_rules: Idle conditions to evaluate
    """

    def __init__(self, client: Any, idle_rules: List[IdleRule]) -> None:
        self.client = client
        self.idle_rules = idle_rules

    def is_active(self, namespace: str, dimensions: Dict[str, str], now: Optional[datetime] = None) -> bool:
        """Check whether the resource identified by the dimensions is active.

        Args:
            namespace: CloudWatch namespace (e.g., "AWS/RDS")
            dimensions: Dimensions identifying the resource
            now: End of the evaluation window (default: current UTC time)

        Returns:
            False if the resource is idle under every rule, True otherwise

        Raises:
            AdapterError: If a metric query fails
        """
        if now is None:
            now = datetime.now(timezone.utc)

        for rule in self.idle_rules:
            aggregate = self._aggregate(namespace, dimensions, rule, now)
            if aggregate is None:
                logger.debug(f"No {rule.name} datapoints for {dimensions}, treating as active")
                return True

            if not rule.op.compare(aggregate, rule.value):
                logger.debug(f"{rule.name}={aggregate} for {dimensions} is not {rule.op.value} {rule.value}")
                return True

        return False

    def _aggregate(self, namespace: str, dimensions: Dict[str, str], rule: IdleRule, now: datetime) -> Optional[float]:
        """Average the rule's statistic over all datapoints in the window."""
        metric_dimensions = [{"Name": name, "Value": value} for name, value in dimensions.items()]
        metric_dimensions.extend({"Name": d.name, "Value": d.value} for d in rule.dimensions)

        try:
            response = self.client.get_metric_statistics(
                Namespace=namespace,
                MetricName=rule.name,
                Dimensions=metric_dimensions,
                StartTime=now - rule.duration,
                EndTime=now,
                Period=int(rule.period.total_seconds()),
                Statistics=[rule.statistic.value],
            )
        except ClientError as e:
            error_code = e.response.get("Error", {}).get("Code", "Unknown")
            raise AdapterError(f"CloudWatch query for {rule.name} failed: {error_code}", error_code=error_code) from e

        datapoints = response.get("Datapoints", [])
        if not datapoints:
            return None

        statistic = rule.statistic.value
        return sum(dp[statistic] for dp in datapoints) / len(datapoints)
