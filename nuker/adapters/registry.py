"""Mapping from resource types to adapter classes."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence, Type

from ..aws.client import create_boto_client
from ..aws.cloudwatch import CloudWatchIdleOracle
from ..models.resource import ResourceType
from ..models.resource_config import ResourceConfig
from .aurora import AuroraClusterAdapter
from .base import ResourceAdapter
from .ec2_subnet import Ec2SubnetAdapter
from .rds import RdsInstanceAdapter
from .redshift import RedshiftClusterAdapter

logger = logging.getLogger(__name__)

ADAPTERS: Dict[ResourceType, Type[ResourceAdapter]] = {
    ResourceType.RDS_INSTANCE: RdsInstanceAdapter,
    ResourceType.RDS_CLUSTER: AuroraClusterAdapter,
    ResourceType.RS_CLUSTER: RedshiftClusterAdapter,
    ResourceType.EC2_SUBNET: Ec2SubnetAdapter,
}


def select_resource_types(
    targets: Optional[Sequence[ResourceType]] = None,
    exclude: Optional[Sequence[ResourceType]] = None,
) -> List[ResourceType]:
    """Resolve which resource types a run covers.

    Args:
        targets: Only these types (optional)
        exclude: Every type except these (optional)

    Returns:
        Resource types in declaration order

    Raises:
        ValueError: If both targets and exclude are given
    """
    if targets and exclude:
        raise ValueError("targets and exclude are mutually exclusive")

    selected = [t for t in ResourceType.actionable() if t in ADAPTERS]

    if targets:
        selected = [t for t in selected if t in targets]
    if exclude:
        selected = [t for t in selected if t not in exclude]

    return selected


def build_adapters(
    session: Any,
    regions: Sequence[str],
    config: Dict[ResourceType, ResourceConfig],
    resource_types: Sequence[ResourceType],
) -> List[ResourceAdapter]:
    """Instantiate one adapter per region and resource type.

    An idle oracle is attached only when the type has idle rules configured.

    Args:
        session: boto3 session
        regions: Regions to cover
        config: Rule configuration by resource type
        resource_types: Resource types to cover

    Returns:
        Adapters ordered by region, then resource type
    """
    adapters: List[ResourceAdapter] = []

    for region in regions:
        for resource_type in resource_types:
            resource_config = config.get(resource_type, ResourceConfig())

            idle_oracle = None
            if resource_config.idle_rules:
                cw_client = create_boto_client("cloudwatch", region_name=region, session=session)
                idle_oracle = CloudWatchIdleOracle(cw_client, resource_config.idle_rules)

            adapter_class = ADAPTERS[resource_type]
            adapters.append(adapter_class(session, region, resource_config, idle_oracle=idle_oracle))
            logger.debug(f"Configured {resource_type.value} adapter for {region}")

    return adapters
