"""EC2 subnet adapter."""

from __future__ import annotations

from typing import Any, Dict, List

from ..models.resource import Resource, ResourceState, ResourceType, Tag
from .base import ResourceAdapter


class Ec2SubnetAdapter(ResourceAdapter):
    """Adapter for EC2 subnets. Subnets can only be deleted, not stopped."""

    not_found_codes = frozenset({"InvalidSubnetID.NotFound"})

    @property
    def resource_type(self) -> ResourceType:
        return ResourceType.EC2_SUBNET

    @property
    def service_name(self) -> str:
        return "ec2"

    def scan(self) -> List[Resource]:
        self.logger.debug("Initialized EC2 Subnet resource scanner")
        subnets = self._paginate("describe_subnets", "Subnets")
        return [self._package_subnet(subnet) for subnet in subnets]

    def stop(self, resource: Resource) -> None:
        self.logger.debug(f"Subnet {resource.id} cannot be stopped, nothing to do")

    def delete(self, resource: Resource) -> None:
        self.logger.debug(f"Deleting subnet: {resource.id}")
        self._invoke("delete_subnet", resource.id, SubnetId=resource.id)

    def _package_subnet(self, subnet: Dict[str, Any]) -> Resource:
        return Resource(
            id=subnet["SubnetId"],
            arn=subnet.get("SubnetArn"),
            type=self.resource_type,
            region=self.region,
            tags=[Tag(key=tag["Key"], value=tag.get("Value")) for tag in subnet.get("Tags", [])],
            state=ResourceState.from_status(subnet.get("State")),
        )
